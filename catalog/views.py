import logging

from rest_framework import generics, status, permissions, filters
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, OpenApiParameter

from accounts.exceptions import error_body
from accounts.permissions import IsXstoreAdmin, IsAdminOrReadOnly
from .filters import ProductFilter, ALL_PRODUCTS
from .middleware import remember_city, forget_city
from .models import City, Product
from .serializers import (
    CitySerializer, SelectCitySerializer, ProductSerializer,
    ProductCreateUpdateSerializer, ImageUploadSerializer
)
from . import storage

logger = logging.getLogger(__name__)

CITY_IN_USE_MESSAGE = "This city is associated with products. Remove these associations first."


def request_is_admin(request):
    return IsXstoreAdmin().has_permission(request, None)


# =============== CITIES ===============

class CityListCreateView(generics.ListCreateAPIView):
    """
    get: List active cities by name (admins may pass include_inactive=true)
    post: Create a city (admins only)
    """
    serializer_class = CitySerializer
    permission_classes = [IsAdminOrReadOnly]
    filter_backends = [filters.SearchFilter]
    search_fields = ['name']

    def get_queryset(self):
        queryset = City.objects.all().order_by('name')
        include_inactive = self.request.query_params.get('include_inactive', '').lower() == 'true'
        if not (include_inactive and request_is_admin(self.request)):
            queryset = queryset.filter(is_active=True)
        return queryset

    @extend_schema(parameters=[OpenApiParameter('include_inactive', bool, description='Admins only')])
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def perform_create(self, serializer):
        city = serializer.save()
        logger.info("City %s created by %s", city.name, self.request.user.email)


class CityRetrieveUpdateDestroyView(generics.RetrieveUpdateDestroyAPIView):
    """
    get: City details
    put/patch: Rename or (de)activate a city (admins only)
    delete: Delete a city that no product references (admins only)
    """
    queryset = City.objects.all()
    serializer_class = CitySerializer
    permission_classes = [IsAdminOrReadOnly]

    def destroy(self, request, *args, **kwargs):
        city = self.get_object()
        if city.is_referenced:
            return Response(
                error_body('Validation error', {'non_field_errors': [CITY_IN_USE_MESSAGE]}, 400),
                status=status.HTTP_400_BAD_REQUEST
            )

        city.delete()
        logger.info("City %s deleted by %s", city.name, request.user.email)
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(
    summary="Delivery City",
    description="""
    GET returns the city remembered in the session (or sent as X-City).
    POST selects a city by name. DELETE clears the selection.
    """,
    request=SelectCitySerializer,
)
@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([permissions.AllowAny])
def current_city(request):
    if request.method == 'POST':
        serializer = SelectCitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        remember_city(request, serializer.context['city'])
    elif request.method == 'DELETE':
        forget_city(request)
        return Response({'city': None})

    city = request.current_city
    return Response({'city': CitySerializer(city).data if city else None})


# =============== PRODUCTS ===============

class ProductListCreateView(generics.ListCreateAPIView):
    """
    get: Products in the selected city, hot deals first
    post: Create a product (admins only)
    """
    queryset = Product.objects.prefetch_related('city_links__city')
    permission_classes = [IsAdminOrReadOnly]
    parser_classes = [JSONParser, MultiPartParser, FormParser]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = ProductFilter
    ordering_fields = ['name', 'selling_price', 'expiry_date', 'created_at']
    ordering = ['-is_hot_deal', 'name']

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return ProductCreateUpdateSerializer
        return ProductSerializer

    def get_queryset(self):
        queryset = super().get_queryset()
        # Fall back to the session city when no explicit filter is given
        if 'city' not in self.request.query_params and getattr(self.request, 'current_city', None):
            queryset = queryset.in_city(self.request.current_city.name)
        return queryset

    def perform_create(self, serializer):
        product = serializer.save()
        logger.info("Product %s created by %s", product.name, self.request.user.email)


class ProductRetrieveUpdateDestroyView(generics.RetrieveUpdateDestroyAPIView):
    """
    get: Product details
    put/patch: Update product; cities given replace the current links (admins only)
    delete: Delete product (admins only)
    """
    queryset = Product.objects.prefetch_related('city_links__city')
    permission_classes = [IsAdminOrReadOnly]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get_serializer_class(self):
        if self.request.method in ['PUT', 'PATCH']:
            return ProductCreateUpdateSerializer
        return ProductSerializer

    def perform_destroy(self, instance):
        logger.info("Product %s deleted by %s", instance.name, self.request.user.email)
        instance.delete()


@extend_schema(
    summary="Product Categories",
    parameters=[OpenApiParameter('section', str, enum=['fresh', 'wholesale'])],
)
@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def category_list(request):
    """Distinct categories, with "All Products" first"""
    queryset = Product.objects.all()
    section = request.query_params.get('section')
    if section == 'fresh':
        queryset = queryset.fresh()
    elif section == 'wholesale':
        queryset = queryset.wholesale()

    categories = sorted(set(queryset.values_list('category', flat=True)))
    return Response({'categories': [ALL_PRODUCTS] + categories})


# =============== IMAGE STORAGE ===============

@extend_schema(summary="Upload Product Image", request=ImageUploadSerializer)
@api_view(['POST'])
@permission_classes([IsXstoreAdmin])
@parser_classes([MultiPartParser, FormParser])
def upload_image(request):
    serializer = ImageUploadSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        url = storage.upload_product_image(serializer.validated_data['file'], request)
    except storage.StorageError as exc:
        return Response(
            error_body(str(exc), {}, 500),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return Response({'url': url}, status=status.HTTP_201_CREATED)


@extend_schema(
    summary="Image Storage",
    description="GET reports the products bucket. POST creates it when missing.",
)
@api_view(['GET', 'POST'])
@permission_classes([IsXstoreAdmin])
def storage_view(request):
    if request.method == 'POST':
        try:
            created = storage.ensure_bucket()
        except storage.StorageError as exc:
            return Response(
                error_body(str(exc), {}, 500),
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )
        return Response({'created': created, **storage.storage_status()})

    return Response(storage.storage_status())


# =============== DASHBOARD ===============

@api_view(['GET'])
@permission_classes([IsXstoreAdmin])
def catalog_summary(request):
    """Catalog counts for the admin dashboard"""
    return Response({
        'catalog_stats': {
            'total_products': Product.objects.count(),
            'hot_deals': Product.objects.hot_deals().count(),
            'fresh_products': Product.objects.fresh().count(),
            'total_cities': City.objects.count(),
            'active_cities': City.objects.filter(is_active=True).count(),
        }
    })
