from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
import uuid

from accounts.models import TimeStampedModel
from catalog.models import Product


class Order(TimeStampedModel):
    """A cash-on-delivery order placed by a shop"""
    STATUS_PENDING = 'pending'
    STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('processing', 'Processing'),
        ('shipped', 'Shipped'),
        ('delivered', 'Delivered'),
        ('cancelled', 'Cancelled'),
    )
    PAYMENT_METHOD_CHOICES = (
        ('cod', 'Cash on Delivery'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shop_name = models.CharField(max_length=255)
    phone_number = models.CharField(max_length=10, db_index=True)
    address = models.TextField()
    landmark = models.CharField(max_length=255)
    # City name at the time of ordering
    city = models.CharField(max_length=100, db_index=True)
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHOD_CHOICES, default='cod')

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']

    def calculate_totals(self):
        """Recalculate the order total from its items"""
        total = Decimal('0.00')
        for item in self.items.all():
            total += item.line_total
        self.total = total

    def __str__(self):
        return f"{self.shop_name} ({self.city}) - {self.get_status_display()}"


class OrderItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, related_name='items', on_delete=models.CASCADE)
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    product_name = models.CharField(max_length=255)
    product_image = models.URLField(max_length=500, null=True, blank=True)
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    # Unit selling price when the order was placed
    price = models.DecimalField(max_digits=10, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'order_items'
        ordering = ['created_at']

    def save(self, *args, **kwargs):
        self.price = round(Decimal(self.price), 2)
        super().save(*args, **kwargs)

    @property
    def line_total(self):
        return self.price * self.quantity

    def __str__(self):
        return f"{self.quantity} x {self.product_name}"
