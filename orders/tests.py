import pytest
from decimal import Decimal
from django.contrib.sessions.middleware import SessionMiddleware
from django.db import IntegrityError
from django.urls import reverse

from orders.cart import Cart, CART_SESSION_KEY
from orders.models import Order, OrderItem

pytestmark = pytest.mark.django_db

SHOP = {
    'shop_name': 'Sri Balaji Kirana',
    'phone_number': '9876543210',
    'address': '12-4 Market Road, Ameerpet',
    'landmark': 'Opposite metro pillar 1102',
}


def add(client, product, quantity=1):
    return client.post(reverse('orders:cart-add'), {'product_id': str(product.id), 'quantity': quantity}, format='json')


def select_city(client, name='Hyderabad'):
    client.post(reverse('current-city'), {'name': name}, format='json')


@pytest.fixture
def bulk_product(make_product, city):
    # 1,000 per unit so three units clear the minimum order value
    return make_product('Detergent Carton', 'Household', mrp='1500', selling_price='1000', cities=[city])


@pytest.fixture
def session_request(rf):
    request = rf.get('/')
    SessionMiddleware(lambda r: None).process_request(request)
    return request


# =============== CART ===============

def test_cart_starts_empty(api_client):
    response = api_client.get(reverse('orders:cart-detail'))

    assert response.status_code == 200
    assert response.data['items'] == []
    assert response.data['total'] == '0.00'
    assert response.data['min_order_value'] == '3000.00'
    assert response.data['shortfall'] == '3000.00'
    assert response.data['can_checkout'] is False


def test_adding_same_product_increments_quantity(api_client, product):
    add(api_client, product, 2)
    response = add(api_client, product, 3)

    assert len(response.data['items']) == 1
    assert response.data['items'][0]['quantity'] == 5
    assert response.data['item_count'] == 5


def test_cart_total_is_price_times_quantity(api_client, product, make_product, city):
    other = make_product('Jam Jar', 'Spreads', mrp='200', selling_price='125.50', cities=[city])
    add(api_client, product, 3)
    response = add(api_client, other, 2)

    assert response.data['total'] == '431.00'
    assert response.data['item_count'] == 5
    assert response.data['shortfall'] == '2569.00'
    line_totals = {row['product']['name']: row['line_total'] for row in response.data['items']}
    assert line_totals == {'Choco Biscuits': '180.00', 'Jam Jar': '251.00'}


def test_add_unknown_product(api_client):
    response = api_client.post(reverse('orders:cart-add'), {
        'product_id': '00000000-0000-0000-0000-000000000000'
    }, format='json')

    assert response.status_code == 404


def test_add_requires_positive_quantity(api_client, product):
    assert add(api_client, product, 0).status_code == 400


def test_update_quantity_and_remove_on_zero(api_client, product):
    add(api_client, product)
    url = reverse('orders:cart-item', args=[product.id])

    updated = api_client.patch(url, {'quantity': 4}, format='json')
    assert updated.data['items'][0]['quantity'] == 4

    removed = api_client.patch(url, {'quantity': 0}, format='json')
    assert removed.status_code == 200
    assert removed.data['items'] == []


def test_update_missing_row(api_client, product):
    response = api_client.patch(reverse('orders:cart-item', args=[product.id]), {'quantity': 2}, format='json')

    assert response.status_code == 404


def test_remove_and_clear(api_client, product, make_product, city):
    other = make_product('Jam Jar', 'Spreads', cities=[city])
    add(api_client, product)
    add(api_client, other)

    removed = api_client.delete(reverse('orders:cart-item', args=[product.id]))
    assert [row['product']['name'] for row in removed.data['items']] == ['Jam Jar']

    cleared = api_client.delete(reverse('orders:cart-detail'))
    assert cleared.data['items'] == []


def test_cart_drops_malformed_rows(session_request, product):
    good = {'product': {'id': str(product.id), 'name': 'Choco Biscuits', 'selling_price': '60.00'}, 'quantity': 2}
    session_request.session[CART_SESSION_KEY] = {'items': [
        good,
        {'product': {'id': str(product.id), 'name': 'No price'}, 'quantity': 1},
        {'product': {'id': 'not-a-uuid', 'name': 'Bad id', 'selling_price': '1'}, 'quantity': 1},
        {'product': {'id': str(product.id), 'name': 'Zero', 'selling_price': '1'}, 'quantity': 0},
        'garbage',
    ]}

    cart = Cart(session_request)

    assert cart.items == [good]
    assert cart.total == Decimal('120.00')


def test_corrupt_cart_resets_to_empty(session_request):
    session_request.session[CART_SESSION_KEY] = 'not a cart'

    cart = Cart(session_request)

    assert cart.items == []
    assert CART_SESSION_KEY not in session_request.session


# =============== CHECKOUT ===============

def test_checkout_places_order_and_clears_cart(api_client, bulk_product, product):
    select_city(api_client)
    add(api_client, bulk_product, 3)
    add(api_client, product, 2)

    response = api_client.post(reverse('orders:checkout'), SHOP, format='json')

    assert response.status_code == 201
    assert response.data['total'] == '3120.00'
    assert response.data['status'] == 'pending'
    assert response.data['payment_method'] == 'cod'
    assert response.data['city'] == 'Hyderabad'
    assert response.data['landmark'] == SHOP['landmark']

    order = Order.objects.get()
    items = {item.product_name: (item.quantity, item.price) for item in order.items.all()}
    assert items == {
        'Detergent Carton': (3, Decimal('1000.00')),
        'Choco Biscuits': (2, Decimal('60.00')),
    }
    assert order.total == sum(item.line_total for item in order.items.all())

    assert api_client.get(reverse('orders:cart-detail')).data['items'] == []


def test_checkout_blocked_below_minimum(api_client, bulk_product):
    select_city(api_client)
    add(api_client, bulk_product, 2)

    response = api_client.post(reverse('orders:checkout'), SHOP, format='json')

    assert response.status_code == 400
    assert '1,000.00' in response.data['details']['non_field_errors'][0]
    assert not Order.objects.exists()


@pytest.mark.parametrize('missing', ['shop_name', 'phone_number', 'address', 'landmark'])
def test_checkout_requires_every_field(api_client, bulk_product, missing):
    select_city(api_client)
    add(api_client, bulk_product, 3)
    payload = dict(SHOP, **{missing: '  '})

    response = api_client.post(reverse('orders:checkout'), payload, format='json')

    assert response.status_code == 400
    assert response.data['details']['non_field_errors'] == [
        'Please fill all required fields including landmark.'
    ]


def test_checkout_validates_phone(api_client, bulk_product):
    select_city(api_client)
    add(api_client, bulk_product, 3)

    response = api_client.post(reverse('orders:checkout'), dict(SHOP, phone_number='98765'), format='json')

    assert response.status_code == 400
    assert 'phone_number' in response.data['details']


def test_checkout_rejects_non_ascii_digits(api_client, bulk_product):
    select_city(api_client)
    add(api_client, bulk_product, 3)

    response = api_client.post(
        reverse('orders:checkout'), dict(SHOP, phone_number='\u0669\u0668\u0667\u0666\u0665\u0664\u0663\u0662\u0661\u0660'), format='json'
    )

    assert response.status_code == 400
    assert 'phone_number' in response.data['details']
    assert not Order.objects.exists()


def test_checkout_requires_city(api_client, bulk_product):
    add(api_client, bulk_product, 3)

    response = api_client.post(reverse('orders:checkout'), SHOP, format='json')

    assert response.status_code == 400
    assert not Order.objects.exists()


def test_checkout_requires_items(api_client, city):
    select_city(api_client)

    response = api_client.post(reverse('orders:checkout'), SHOP, format='json')

    assert response.status_code == 400
    assert response.data['details']['non_field_errors'] == ['Your cart is empty.']


def test_checkout_is_all_or_nothing(api_client, bulk_product, product, mocker):
    select_city(api_client)
    add(api_client, bulk_product, 3)
    add(api_client, product, 1)
    real_create = OrderItem.objects.create
    calls = []

    def fail_on_second(**kwargs):
        calls.append(kwargs)
        if len(calls) == 2:
            raise IntegrityError('line item rejected')
        return real_create(**kwargs)

    mocker.patch('orders.serializers.OrderItem.objects.create', side_effect=fail_on_second)

    response = api_client.post(reverse('orders:checkout'), SHOP, format='json')

    assert response.status_code == 400
    assert not Order.objects.exists()
    assert not OrderItem.objects.exists()
    assert len(api_client.get(reverse('orders:cart-detail')).data['items']) == 2


def test_order_items_keep_snapshot_after_product_delete(api_client, bulk_product):
    select_city(api_client)
    add(api_client, bulk_product, 3)
    api_client.post(reverse('orders:checkout'), SHOP, format='json')

    bulk_product.delete()

    item = OrderItem.objects.get()
    assert item.product is None
    assert item.product_name == 'Detergent Carton'


# =============== ORDER TOTALS ===============

def test_order_total_follows_items():
    order = Order.objects.create(city='Pune', **SHOP)
    first = OrderItem.objects.create(order=order, product_name='Rice Bag', quantity=2, price=Decimal('900'))
    OrderItem.objects.create(order=order, product_name='Oil Tin', quantity=1, price=Decimal('1450.50'))

    order.refresh_from_db()
    assert order.total == Decimal('3250.50')

    first.delete()
    order.refresh_from_db()
    assert order.total == Decimal('1450.50')


# =============== CUSTOMER LOOKUP ===============

def test_customer_lookup_returns_latest_details(api_client):
    Order.objects.create(city='Pune', **dict(SHOP, address='Old address'))
    Order.objects.create(city='Hyderabad', **SHOP)

    response = api_client.get(reverse('orders:customer-lookup'), {'phone': SHOP['phone_number']})

    assert response.status_code == 200
    assert response.data['address'] == SHOP['address']
    assert response.data['city'] == 'Hyderabad'


def test_customer_lookup_errors(api_client):
    assert api_client.get(reverse('orders:customer-lookup'), {'phone': '12ab'}).status_code == 400
    assert api_client.get(reverse('orders:customer-lookup'), {'phone': '9999999999'}).status_code == 404


# =============== ADMIN ORDERS ===============

@pytest.fixture
def placed_orders():
    pune = Order.objects.create(city='Pune', **SHOP)
    hyd = Order.objects.create(city='Hyderabad', status='shipped', **dict(SHOP, shop_name='City Mart'))
    return pune, hyd


def test_order_list_requires_admin(api_client, placed_orders):
    assert api_client.get(reverse('orders:order-list')).status_code == 401


def test_order_list_newest_first_with_filters(admin_client, placed_orders):
    url = reverse('orders:order-list')

    assert [o['shop_name'] for o in admin_client.get(url).data] == ['City Mart', 'Sri Balaji Kirana']
    assert [o['city'] for o in admin_client.get(url, {'city': 'pune'}).data] == ['Pune']
    assert [o['status'] for o in admin_client.get(url, {'status': 'shipped'}).data] == ['shipped']


def test_order_detail(admin_client, placed_orders):
    pune, _ = placed_orders

    response = admin_client.get(reverse('orders:order-detail', args=[pune.id]))

    assert response.status_code == 200
    assert response.data['items'] == []


def test_update_order_status(admin_client, placed_orders):
    pune, _ = placed_orders
    before = pune.updated_at

    response = admin_client.patch(reverse('orders:order-status', args=[pune.id]), {'status': 'processing'}, format='json')

    assert response.status_code == 200
    pune.refresh_from_db()
    assert pune.status == 'processing'
    assert pune.updated_at > before


def test_update_order_status_rejects_unknown_value(admin_client, placed_orders):
    pune, _ = placed_orders

    response = admin_client.patch(reverse('orders:order-status', args=[pune.id]), {'status': 'lost'}, format='json')

    assert response.status_code == 400
    pune.refresh_from_db()
    assert pune.status == 'pending'


def test_order_statistics(admin_client, placed_orders):
    pune, hyd = placed_orders
    OrderItem.objects.create(order=pune, product_name='Rice Bag', quantity=4, price=Decimal('900'))
    OrderItem.objects.create(order=hyd, product_name='Oil Tin', quantity=2, price=Decimal('1600'))
    Order.objects.create(city='Pune', status='cancelled', total=Decimal('5000'), **SHOP)

    response = admin_client.get(reverse('orders:order-statistics'))

    assert response.data['total_orders'] == 3
    assert response.data['today_orders'] == 3
    assert response.data['status_counts'] == {
        'pending': 1, 'processing': 0, 'shipped': 1, 'delivered': 0, 'cancelled': 1,
    }
    assert response.data['revenue'] == '6800.00'


# =============== NEARBY SHOPS ===============

def test_nearby_shops_one_row_per_product_and_shop(api_client, product, make_product, city):
    other = make_product('Jam Jar', 'Spreads', cities=[city])
    older = Order.objects.create(city='Hyderabad', **SHOP)
    OrderItem.objects.create(order=older, product=product, product_name=product.name, quantity=1, price=Decimal('60'))
    newer = Order.objects.create(city='Hyderabad', **SHOP)
    OrderItem.objects.create(order=newer, product=product, product_name=product.name, quantity=5, price=Decimal('60'))
    OrderItem.objects.create(order=newer, product=other, product_name=other.name, quantity=1, price=Decimal('60'))
    elsewhere = Order.objects.create(city='Pune', **dict(SHOP, shop_name='Pune Traders'))
    OrderItem.objects.create(order=elsewhere, product=product, product_name=product.name, quantity=1, price=Decimal('60'))
    select_city(api_client)

    response = api_client.post(reverse('orders:nearby-shops'), {'product_ids': [str(product.id), str(other.id)]}, format='json')

    assert response.status_code == 200
    assert response.data['city'] == 'Hyderabad'
    rows = response.data['shops']
    assert sorted(row['product_name'] for row in rows) == ['Choco Biscuits', 'Jam Jar']
    assert {row['shop_name'] for row in rows} == {'Sri Balaji Kirana'}
    biscuits = next(row for row in rows if row['product_name'] == 'Choco Biscuits')
    assert biscuits['order_date'] == newer.created_at


def test_nearby_shops_needs_a_city(api_client, product):
    response = api_client.post(reverse('orders:nearby-shops'), {'product_ids': [str(product.id)]}, format='json')

    assert response.status_code == 400
