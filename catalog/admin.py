from django.contrib import admin

from .models import City, Product, ProductCity


class ProductCityInline(admin.TabularInline):
    model = ProductCity
    extra = 1


@admin.register(City)
class CityAdmin(admin.ModelAdmin):
    list_display = ['name', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'mrp', 'selling_price', 'expiry_date', 'is_hot_deal']
    list_filter = ['category', 'is_hot_deal']
    search_fields = ['name', 'category']
    inlines = [ProductCityInline]
