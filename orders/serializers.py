import logging
import uuid
from decimal import Decimal

from rest_framework import serializers
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import RegexValidator
from django.db import transaction

from catalog.models import Product
from .models import Order, OrderItem

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = 'Please fill all required fields including landmark.'

phone_validator = RegexValidator(r'^[0-9]{10}$', 'Please enter a valid 10-digit phone number.')


# =============== CART ===============

class CartProductSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    name = serializers.CharField()
    category = serializers.CharField(allow_null=True, required=False)
    mrp = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True, required=False)
    selling_price = serializers.DecimalField(max_digits=10, decimal_places=2)
    image_url = serializers.CharField(allow_null=True, required=False)


class CartItemSerializer(serializers.Serializer):
    product = CartProductSerializer()
    quantity = serializers.IntegerField()
    line_total = serializers.SerializerMethodField()

    def get_line_total(self, obj):
        return f"{Decimal(obj['product']['selling_price']) * obj['quantity']:.2f}"


class CartSerializer(serializers.Serializer):
    items = CartItemSerializer(many=True)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    item_count = serializers.IntegerField()
    min_order_value = serializers.DecimalField(max_digits=12, decimal_places=2)
    shortfall = serializers.DecimalField(max_digits=12, decimal_places=2)
    can_checkout = serializers.BooleanField()


class AddToCartSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class UpdateCartItemSerializer(serializers.Serializer):
    quantity = serializers.IntegerField()


# =============== ORDERS ===============

class OrderItemReadSerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(read_only=True, allow_null=True)
    item_total = serializers.SerializerMethodField()

    class Meta:
        model = OrderItem
        fields = [
            'id', 'product_id', 'product_name', 'product_image',
            'quantity', 'price', 'item_total', 'created_at'
        ]

    def get_item_total(self, obj):
        return f"{obj.line_total:.2f}"


class OrderReadSerializer(serializers.ModelSerializer):
    items = OrderItemReadSerializer(many=True, read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    payment_method_display = serializers.CharField(source='get_payment_method_display', read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'shop_name', 'phone_number', 'address', 'landmark', 'city',
            'total', 'status', 'status_display', 'payment_method',
            'payment_method_display', 'items', 'created_at', 'updated_at'
        ]


class OrderStatusUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Order
        fields = ['status']

    def validate_status(self, value):
        valid = [choice[0] for choice in Order.STATUS_CHOICES]
        if value not in valid:
            raise serializers.ValidationError(f"Status must be one of: {', '.join(valid)}")
        return value


class CheckoutSerializer(serializers.Serializer):
    """
    Turns the session cart into an order.

    Expects ``cart`` and ``city`` in the serializer context.
    """
    shop_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    phone_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True)
    landmark = serializers.CharField(max_length=255, required=False, allow_blank=True)

    REQUIRED_FIELDS = ('shop_name', 'phone_number', 'address', 'landmark')

    def validate(self, attrs):
        attrs = {key: value.strip() for key, value in attrs.items()}
        if any(not attrs.get(field) for field in self.REQUIRED_FIELDS):
            raise serializers.ValidationError(REQUIRED_FIELDS_MESSAGE)

        try:
            phone_validator(attrs['phone_number'])
        except DjangoValidationError:
            raise serializers.ValidationError({'phone_number': [phone_validator.message]})

        city = self.context.get('city')
        if city is None:
            raise serializers.ValidationError('Please select your city before placing an order.')

        cart = self.context['cart']
        if not len(cart):
            raise serializers.ValidationError('Your cart is empty.')

        if cart.shortfall > 0:
            raise serializers.ValidationError(
                f'Minimum order value is ₹{cart.min_order_value:,.0f}. '
                f'Add ₹{cart.shortfall:,.2f} more to place your order.'
            )

        return attrs

    @transaction.atomic
    def create(self, validated_data):
        cart = self.context['cart']
        city = self.context['city']

        order = Order.objects.create(
            city=city.name,
            total=cart.total,
            payment_method='cod',
            **validated_data
        )

        product_ids = [row['product']['id'] for row in cart.items]
        products = Product.objects.in_bulk(product_ids)
        for row in cart.items:
            snapshot = row['product']
            OrderItem.objects.create(
                order=order,
                product=products.get(uuid.UUID(snapshot['id'])),
                product_name=snapshot['name'],
                product_image=snapshot.get('image_url'),
                quantity=row['quantity'],
                price=Decimal(snapshot['selling_price']),
            )

        order.refresh_from_db()
        logger.info("Order %s placed by %s (%s) for %s", order.id, order.shop_name, order.city, order.total)
        return order


class NearbyShopsSerializer(serializers.Serializer):
    product_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    city = serializers.CharField(max_length=100, required=False)
