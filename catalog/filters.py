import django_filters

from .models import Product

ALL_PRODUCTS = 'All Products'


class ProductFilter(django_filters.FilterSet):
    city = django_filters.CharFilter(method='filter_city')
    category = django_filters.CharFilter(method='filter_category')
    search = django_filters.CharFilter(field_name='name', lookup_expr='icontains')
    hot_deals = django_filters.BooleanFilter(method='filter_hot_deals')
    section = django_filters.ChoiceFilter(
        method='filter_section',
        choices=[('fresh', 'Fresh'), ('wholesale', 'Wholesale')],
    )

    class Meta:
        model = Product
        fields = ['city', 'category', 'search', 'hot_deals', 'section']

    def filter_city(self, queryset, name, value):
        return queryset.in_city(value)

    def filter_category(self, queryset, name, value):
        if value == ALL_PRODUCTS:
            return queryset
        return queryset.filter(category__iexact=value)

    def filter_section(self, queryset, name, value):
        if value == 'fresh':
            return queryset.fresh()
        return queryset.wholesale()

    def filter_hot_deals(self, queryset, name, value):
        # An unticked box means every product, not only the plain ones
        if value:
            return queryset.hot_deals()
        return queryset
