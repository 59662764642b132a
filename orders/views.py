import logging

from rest_framework import status, generics, permissions
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.response import Response
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models
from django.shortcuts import get_object_or_404
from django.utils import timezone
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from accounts.exceptions import error_body
from accounts.permissions import IsXstoreAdmin
from catalog.models import City, Product
from .cart import Cart
from .models import Order, OrderItem
from .serializers import (
    CartSerializer, AddToCartSerializer, UpdateCartItemSerializer,
    CheckoutSerializer, OrderReadSerializer, OrderStatusUpdateSerializer,
    NearbyShopsSerializer, phone_validator
)

logger = logging.getLogger(__name__)


def cart_response(cart, status_code=status.HTTP_200_OK):
    return Response(CartSerializer(cart.as_dict()).data, status=status_code)


# =============== CART ===============

@swagger_auto_schema(
    method='get',
    operation_description="Current cart with totals and the minimum order check",
    responses={200: CartSerializer}
)
@swagger_auto_schema(method='delete', operation_description="Empty the cart", responses={200: CartSerializer})
@api_view(['GET', 'DELETE'])
@permission_classes([permissions.AllowAny])
def cart_detail(request):
    cart = Cart(request)
    if request.method == 'DELETE':
        cart.clear()
    return cart_response(cart)


@swagger_auto_schema(
    method='post',
    operation_description="Add a product; adding one already in the cart increases its quantity",
    request_body=AddToCartSerializer,
    responses={200: CartSerializer, 404: 'Product not found'}
)
@api_view(['POST'])
@permission_classes([permissions.AllowAny])
def cart_add(request):
    serializer = AddToCartSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    product = get_object_or_404(Product, id=serializer.validated_data['product_id'])
    cart = Cart(request)
    cart.add(product, serializer.validated_data['quantity'])
    return cart_response(cart)


@swagger_auto_schema(
    method='patch',
    operation_description="Set the quantity of a cart row; zero or less removes it",
    request_body=UpdateCartItemSerializer,
    responses={200: CartSerializer, 404: 'Item not in cart'}
)
@swagger_auto_schema(method='delete', operation_description="Remove a product from the cart")
@api_view(['PATCH', 'DELETE'])
@permission_classes([permissions.AllowAny])
def cart_item(request, product_id):
    cart = Cart(request)

    if request.method == 'DELETE':
        found = cart.remove(product_id)
    else:
        serializer = UpdateCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        found = cart.update(product_id, serializer.validated_data['quantity'])

    if not found:
        raise NotFound('Item not in cart')
    return cart_response(cart)


# =============== CHECKOUT ===============

class CheckoutView(generics.CreateAPIView):
    """Place a cash-on-delivery order from the session cart"""
    serializer_class = CheckoutSerializer
    permission_classes = [permissions.AllowAny]

    def get_serializer_context(self):
        context = super().get_serializer_context()
        if getattr(self, 'swagger_fake_view', False) or self.request is None:
            return context
        context['cart'] = Cart(self.request)
        context['city'] = getattr(self.request, 'current_city', None)
        return context

    @swagger_auto_schema(
        operation_description="Place an order for the cart in the selected city",
        request_body=openapi.Schema(
            type=openapi.TYPE_OBJECT,
            required=['shop_name', 'phone_number', 'address', 'landmark'],
            properties={
                'shop_name': openapi.Schema(type=openapi.TYPE_STRING),
                'phone_number': openapi.Schema(type=openapi.TYPE_STRING, description='10 digits'),
                'address': openapi.Schema(type=openapi.TYPE_STRING),
                'landmark': openapi.Schema(type=openapi.TYPE_STRING),
            }
        ),
        responses={
            201: OrderReadSerializer,
            400: 'Missing fields, no city, empty cart or below minimum order value'
        }
    )
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = serializer.save()

        serializer.context['cart'].clear()

        response_serializer = OrderReadSerializer(order)
        return Response(response_serializer.data, status=status.HTTP_201_CREATED)


@swagger_auto_schema(
    method='get',
    operation_description="Prefill checkout from the latest order placed with this phone number",
    manual_parameters=[
        openapi.Parameter('phone', openapi.IN_QUERY, description="10-digit phone number", type=openapi.TYPE_STRING, required=True),
    ]
)
@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def customer_lookup(request):
    phone = request.query_params.get('phone', '').strip()
    try:
        phone_validator(phone)
    except DjangoValidationError:
        return Response(
            error_body('Validation error', {'phone': [phone_validator.message]}, 400),
            status=status.HTTP_400_BAD_REQUEST
        )

    order = Order.objects.filter(phone_number=phone).order_by('-created_at').first()
    if order is None:
        raise NotFound('No previous orders for this phone number')

    return Response({
        'shop_name': order.shop_name,
        'phone_number': order.phone_number,
        'address': order.address,
        'landmark': order.landmark,
        'city': order.city,
    })


# =============== ADMIN ORDERS ===============

class OrderListView(generics.ListAPIView):
    """List orders, newest first"""
    serializer_class = OrderReadSerializer
    permission_classes = [IsXstoreAdmin]
    filter_backends = []

    def get_queryset(self):
        queryset = Order.objects.prefetch_related('items')

        # Filter by status
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        # Filter by city
        city_filter = self.request.query_params.get('city')
        if city_filter:
            queryset = queryset.filter(city__iexact=city_filter)

        # Filter by date
        date_filter = self.request.query_params.get('date')
        if date_filter:
            queryset = queryset.filter(created_at__date=date_filter)

        return queryset.order_by('-created_at')

    @swagger_auto_schema(
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, description="Filter by order status", type=openapi.TYPE_STRING),
            openapi.Parameter('city', openapi.IN_QUERY, description="Filter by city", type=openapi.TYPE_STRING),
            openapi.Parameter('date', openapi.IN_QUERY, description="Filter by date (YYYY-MM-DD)", type=openapi.TYPE_STRING),
        ]
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class OrderDetailView(generics.RetrieveAPIView):
    """Retrieve a specific order with its items"""
    queryset = Order.objects.prefetch_related('items')
    serializer_class = OrderReadSerializer
    permission_classes = [IsXstoreAdmin]


@swagger_auto_schema(
    method='patch',
    operation_description="Move an order to another status",
    request_body=OrderStatusUpdateSerializer,
    responses={200: OrderReadSerializer, 400: 'Invalid status', 404: 'Order not found'}
)
@api_view(['PATCH'])
@permission_classes([IsXstoreAdmin])
def update_order_status(request, pk):
    order = get_object_or_404(Order, pk=pk)
    previous = order.status

    serializer = OrderStatusUpdateSerializer(order, data=request.data)
    serializer.is_valid(raise_exception=True)
    serializer.save()

    logger.info("Order %s status %s -> %s by %s", order.id, previous, order.status, request.user.email)
    return Response(OrderReadSerializer(order).data)


# =============== NEARBY SHOPS ===============

@swagger_auto_schema(
    method='post',
    operation_description="Shops in the city that have ordered any of the given products",
    request_body=NearbyShopsSerializer,
)
@api_view(['POST'])
@permission_classes([permissions.AllowAny])
def nearby_shops(request):
    serializer = NearbyShopsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    city_name = serializer.validated_data.get('city')
    if not city_name:
        city = getattr(request, 'current_city', None)
        city_name = city.name if city else None
    if not city_name:
        return Response(
            error_body('Validation error', {'city': ['Select a city to find nearby shops.']}, 400),
            status=status.HTTP_400_BAD_REQUEST
        )

    items = OrderItem.objects.filter(
        order__city__iexact=city_name,
        product_id__in=serializer.validated_data['product_ids'],
    ).select_related('order').order_by('-order__created_at')

    shops = []
    seen = set()
    for item in items:
        key = (item.product_id, item.order.shop_name.lower(), item.order.address.lower())
        if key in seen:
            continue
        seen.add(key)
        shops.append({
            'product_id': item.product_id,
            'product_name': item.product_name,
            'shop_name': item.order.shop_name,
            'shop_address': item.order.address,
            'shop_city': item.order.city,
            'landmark': item.order.landmark,
            'order_date': item.order.created_at,
        })

    return Response({'city': city_name, 'shops': shops})


# =============== DASHBOARD ===============

@swagger_auto_schema(method='get', operation_description="Order statistics for the admin dashboard")
@api_view(['GET'])
@permission_classes([IsXstoreAdmin])
def order_statistics(request):
    """Get order statistics for dashboard"""
    today = timezone.localdate()
    orders = Order.objects.all()

    by_status = dict(orders.order_by().values_list('status').annotate(count=models.Count('id')))
    revenue = orders.exclude(status='cancelled').aggregate(total=models.Sum('total'))['total']

    stats = {
        'total_orders': orders.count(),
        'today_orders': orders.filter(created_at__date=today).count(),
        'status_counts': {value: by_status.get(value, 0) for value, _ in Order.STATUS_CHOICES},
        'revenue': f"{revenue or 0:.2f}",
        'active_cities': City.objects.filter(is_active=True).count(),
    }

    return Response(stats)
