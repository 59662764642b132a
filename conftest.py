import pytest
from decimal import Decimal
from rest_framework.test import APIClient

from accounts.models import CustomUser, AdminUser
from catalog.models import City, Product, ProductCity

PASSWORD = 'Wholesale#2024'


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path / 'media'
    return settings.MEDIA_ROOT


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def make_user(db):
    def _make_user(email='shop@example.com', password=PASSWORD, **extra):
        return CustomUser.objects.create_user(email=email, password=password, **extra)
    return _make_user


@pytest.fixture
def admin_user(make_user):
    user = make_user(email='admin@xstore.in')
    AdminUser.objects.create(user=user, email=user.email, role='admin')
    return user


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture
def make_city(db):
    def _make_city(name='Hyderabad', is_active=True):
        return City.objects.create(name=name, is_active=is_active)
    return _make_city


@pytest.fixture
def city(make_city):
    return make_city()


@pytest.fixture
def make_product(db):
    def _make_product(name='Choco Biscuits', category='Snacks', mrp='100.00',
                      selling_price='60.00', cities=(), **extra):
        product = Product.objects.create(
            name=name,
            category=category,
            mrp=Decimal(mrp),
            selling_price=Decimal(selling_price),
            **extra
        )
        for city in cities:
            ProductCity.objects.create(product=product, city=city)
        return product
    return _make_product


@pytest.fixture
def product(make_product, city):
    return make_product(cities=[city])
