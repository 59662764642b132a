from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
import uuid

from accounts.models import TimeStampedModel


# =============== CITIES ===============

class City(models.Model):
    """Delivery city; products are stocked per city"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100, unique=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'cities'
        ordering = ['name']
        verbose_name_plural = 'Cities'

    def __str__(self):
        return self.name

    @property
    def is_referenced(self):
        return self.product_links.exists()


# =============== PRODUCTS ===============

class ProductQuerySet(models.QuerySet):
    def in_city(self, city_name):
        return self.filter(city_links__city__name__iexact=city_name).distinct()

    def fresh(self):
        return self.filter(category__in=settings.XSTORE_FRESH_CATEGORIES)

    def wholesale(self):
        return self.exclude(category__in=settings.XSTORE_FRESH_CATEGORIES)

    def hot_deals(self):
        return self.filter(is_hot_deal=True)


class Product(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=100)
    mrp = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    selling_price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    image_url = models.URLField(max_length=500, null=True, blank=True)
    expiry_date = models.DateField(null=True, blank=True)
    # Pack size as printed, e.g. "12 x 70g"
    quantity = models.CharField(max_length=100, null=True, blank=True)
    is_hot_deal = models.BooleanField(default=False)
    cities = models.ManyToManyField(City, through='ProductCity', related_name='products', blank=True)

    objects = ProductQuerySet.as_manager()

    class Meta:
        db_table = 'products'
        ordering = ['-is_hot_deal', 'name']

    def __str__(self):
        return self.name

    @property
    def discount_percent(self):
        if not self.mrp:
            return 0
        return int(round((self.mrp - self.selling_price) / self.mrp * 100))

    @property
    def is_fresh(self):
        return self.category in settings.XSTORE_FRESH_CATEGORIES

    @property
    def city_names(self):
        return [link.city.name for link in self.city_links.all()]


class ProductCity(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='city_links')
    city = models.ForeignKey(City, on_delete=models.PROTECT, related_name='product_links')

    class Meta:
        db_table = 'product_cities'
        unique_together = ['product', 'city']

    def __str__(self):
        return f"{self.product.name} @ {self.city.name}"
