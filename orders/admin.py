from django.contrib import admin

from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['product', 'product_name', 'product_image', 'quantity', 'price', 'created_at']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['shop_name', 'phone_number', 'city', 'total', 'status', 'created_at']
    list_filter = ['status', 'city']
    search_fields = ['shop_name', 'phone_number']
    readonly_fields = ['total', 'created_at', 'updated_at']
    inlines = [OrderItemInline]
