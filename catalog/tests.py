import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError
from django.urls import reverse

from catalog.models import City, Product, ProductCity
from catalog import storage

pytestmark = pytest.mark.django_db

PNG_BYTES = (
    b'\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01'
    b'\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f'
    b'\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82'
)


def png(name='pack shot.png'):
    return SimpleUploadedFile(name, PNG_BYTES, content_type='image/png')


def names(response):
    return [row['name'] for row in response.data]


# =============== CITIES ===============

def test_public_city_list_hides_inactive(api_client, make_city):
    make_city('Pune')
    make_city('Chennai', is_active=False)
    make_city('Bengaluru')

    response = api_client.get(reverse('city-list-create'), {'include_inactive': 'true'})

    assert response.status_code == 200
    assert names(response) == ['Bengaluru', 'Pune']


def test_admin_may_include_inactive_cities(admin_client, make_city):
    make_city('Pune')
    make_city('Chennai', is_active=False)

    response = admin_client.get(reverse('city-list-create'), {'include_inactive': 'true'})

    assert names(response) == ['Chennai', 'Pune']


def test_create_city_requires_admin(api_client):
    response = api_client.post(reverse('city-list-create'), {'name': 'Pune'}, format='json')

    assert response.status_code == 401
    assert not City.objects.exists()


def test_admin_creates_and_updates_city(admin_client):
    created = admin_client.post(reverse('city-list-create'), {'name': ' Pune '}, format='json')
    assert created.status_code == 201
    assert created.data['name'] == 'Pune'

    updated = admin_client.patch(
        reverse('city-detail', args=[created.data['id']]), {'is_active': False}, format='json'
    )
    assert updated.status_code == 200
    assert City.objects.get(name='Pune').is_active is False


def test_city_names_are_unique(admin_client, city):
    response = admin_client.post(reverse('city-list-create'), {'name': city.name.upper()}, format='json')

    assert response.status_code == 400


def test_city_in_use_cannot_be_deleted(admin_client, product, city):
    response = admin_client.delete(reverse('city-detail', args=[city.id]))

    assert response.status_code == 400
    assert response.data['details']['non_field_errors'] == [
        'This city is associated with products. Remove these associations first.'
    ]
    assert City.objects.filter(id=city.id).exists()


def test_unused_city_can_be_deleted(admin_client, make_city):
    city = make_city('Nagpur')

    response = admin_client.delete(reverse('city-detail', args=[city.id]))

    assert response.status_code == 204
    assert not City.objects.filter(id=city.id).exists()


# =============== CURRENT CITY ===============

def test_select_and_clear_city(api_client, city):
    url = reverse('current-city')
    assert api_client.get(url).data == {'city': None}

    selected = api_client.post(url, {'name': 'hyderabad'}, format='json')
    assert selected.status_code == 200
    assert selected.data['city']['name'] == 'Hyderabad'

    assert api_client.get(url).data['city']['name'] == 'Hyderabad'

    api_client.delete(url)
    assert api_client.get(url).data == {'city': None}


def test_select_unknown_or_inactive_city(api_client, make_city):
    make_city('Chennai', is_active=False)

    assert api_client.post(reverse('current-city'), {'name': 'Atlantis'}, format='json').status_code == 400
    assert api_client.post(reverse('current-city'), {'name': 'Chennai'}, format='json').status_code == 400


def test_city_header_overrides_session(api_client, make_city):
    make_city('Hyderabad')
    make_city('Pune')
    api_client.post(reverse('current-city'), {'name': 'Hyderabad'}, format='json')

    response = api_client.get(reverse('current-city'), HTTP_X_CITY='Pune')

    assert response.data['city']['name'] == 'Pune'


def test_unknown_city_header_falls_back_to_session(api_client, make_city, make_product):
    hyderabad = make_city('Hyderabad')
    pune = make_city('Pune')
    make_product('Choco Biscuits', 'Snacks', cities=[hyderabad])
    make_product('Paneer', 'Dairy', cities=[pune])
    api_client.post(reverse('current-city'), {'name': 'Hyderabad'}, format='json')

    city = api_client.get(reverse('current-city'), HTTP_X_CITY='Atlantis')
    products = api_client.get(reverse('product-list-create'), HTTP_X_CITY='Atlantis')

    assert city.data['city']['name'] == 'Hyderabad'
    assert names(products) == ['Choco Biscuits']


# =============== PRODUCTS ===============

@pytest.fixture
def shelf(make_city, make_product):
    hyderabad = make_city('Hyderabad')
    pune = make_city('Pune')
    make_product('Choco Biscuits', 'Snacks', cities=[hyderabad])
    make_product('Masala Chips', 'Snacks', cities=[hyderabad, pune], is_hot_deal=True)
    make_product('Tomatoes', 'Vegetables', mrp='40', selling_price='25', cities=[hyderabad])
    make_product('Paneer', 'Dairy', cities=[pune])
    return {'Hyderabad': hyderabad, 'Pune': pune}


def test_products_filtered_by_city(api_client, shelf):
    response = api_client.get(reverse('product-list-create'), {'city': 'Pune'})

    assert response.status_code == 200
    assert names(response) == ['Masala Chips', 'Paneer']
    chips = response.data[0]
    assert sorted(chips['cities']) == ['Hyderabad', 'Pune']


def test_products_default_to_session_city(api_client, shelf):
    api_client.post(reverse('current-city'), {'name': 'Pune'}, format='json')

    response = api_client.get(reverse('product-list-create'))

    assert names(response) == ['Masala Chips', 'Paneer']


def test_all_products_category_means_no_filter(api_client, shelf):
    everything = api_client.get(reverse('product-list-create'), {'city': 'Hyderabad', 'category': 'All Products'})
    snacks = api_client.get(reverse('product-list-create'), {'city': 'Hyderabad', 'category': 'Snacks'})

    assert len(everything.data) == 3
    assert names(snacks) == ['Masala Chips', 'Choco Biscuits']


def test_search_hot_deals_and_sections(api_client, shelf):
    url = reverse('product-list-create')

    assert names(api_client.get(url, {'search': 'CHIP'})) == ['Masala Chips']
    assert names(api_client.get(url, {'hot_deals': 'true'})) == ['Masala Chips']
    assert names(api_client.get(url, {'section': 'fresh'})) == ['Paneer', 'Tomatoes']
    assert names(api_client.get(url, {'section': 'wholesale'})) == ['Masala Chips', 'Choco Biscuits']


def test_unticked_hot_deals_lists_everything(api_client, shelf):
    response = api_client.get(reverse('product-list-create'), {'city': 'Hyderabad', 'hot_deals': 'false'})

    assert names(response) == ['Masala Chips', 'Choco Biscuits', 'Tomatoes']


def test_product_detail_includes_discount(api_client, product):
    response = api_client.get(reverse('product-detail', args=[product.id]))

    assert response.status_code == 200
    assert response.data['discount_percent'] == 40
    assert response.data['cities'] == ['Hyderabad']


def test_categories_start_with_all_products(api_client, shelf):
    response = api_client.get(reverse('category-list'))
    fresh = api_client.get(reverse('category-list'), {'section': 'fresh'})

    assert response.data['categories'] == ['All Products', 'Dairy', 'Snacks', 'Vegetables']
    assert fresh.data['categories'] == ['All Products', 'Dairy', 'Vegetables']


def test_create_product_links_known_cities_only(admin_client, make_city):
    make_city('Hyderabad')
    make_city('Pune')

    response = admin_client.post(reverse('product-list-create'), {
        'name': 'Instant Noodles',
        'category': 'Snacks',
        'mrp': '240.00',
        'selling_price': '150.00',
        'quantity': '12 x 70g',
        'expiry_date': '2026-12-31',
        'cities': ['Hyderabad', 'pune', 'Atlantis'],
    }, format='json')

    assert response.status_code == 201
    assert sorted(response.data['cities']) == ['Hyderabad', 'Pune']
    product = Product.objects.get(name='Instant Noodles')
    assert product.city_links.count() == 2


def test_update_product_replaces_city_links(admin_client, product, make_city):
    make_city('Pune')

    response = admin_client.patch(
        reverse('product-detail', args=[product.id]), {'cities': ['Pune'], 'is_hot_deal': True}, format='json'
    )

    assert response.status_code == 200
    assert response.data['cities'] == ['Pune']
    assert response.data['is_hot_deal'] is True


def test_update_without_cities_keeps_links(admin_client, product):
    admin_client.patch(reverse('product-detail', args=[product.id]), {'selling_price': '55.00'}, format='json')

    assert product.city_names == ['Hyderabad']


def test_product_writes_require_admin(api_client, product):
    response = api_client.delete(reverse('product-detail', args=[product.id]))

    assert response.status_code == 401
    assert Product.objects.filter(id=product.id).exists()


def test_delete_product_cascades_city_links(admin_client, product):
    response = admin_client.delete(reverse('product-detail', args=[product.id]))

    assert response.status_code == 204
    assert not ProductCity.objects.exists()


def test_create_product_with_image_file(admin_client, city):
    response = admin_client.post(reverse('product-list-create'), {
        'name': 'Green Tea',
        'category': 'Beverages',
        'mrp': '300',
        'selling_price': '180',
        'cities': ['Hyderabad'],
        'image_file': png('green tea.png'),
    }, format='multipart')

    assert response.status_code == 201
    assert '/media/products/' in response.data['image_url']
    assert response.data['image_url'].endswith('_green_tea.png')
    assert response.data['cities'] == ['Hyderabad']


def test_failed_product_write_leaves_no_image(admin_client, city, media_root, mocker):
    original_save = Product.save

    def fail_image_update(self, *args, **kwargs):
        if kwargs.get('update_fields'):
            raise DatabaseError('disk full')
        return original_save(self, *args, **kwargs)

    mocker.patch.object(Product, 'save', autospec=True, side_effect=fail_image_update)

    response = admin_client.post(reverse('product-list-create'), {
        'name': 'Green Tea',
        'category': 'Beverages',
        'mrp': '300',
        'selling_price': '180',
        'image_file': png('green tea.png'),
    }, format='multipart')

    assert response.status_code == 500
    assert not Product.objects.filter(name='Green Tea').exists()
    image_dir = media_root / 'products'
    assert not image_dir.exists() or list(image_dir.iterdir()) == []


# =============== IMAGE STORAGE ===============

def test_image_name_format():
    assert storage.build_image_name('my  pack shot.png', now_ms=1700000000000) == \
        'products/1700000000000_my_pack_shot.png'


def test_upload_image(admin_client, media_root):
    response = admin_client.post(reverse('product-image-upload'), {'file': png()}, format='multipart')

    assert response.status_code == 201
    assert response.data['url'].startswith('http://testserver/media/products/')
    assert len(list((media_root / 'products').iterdir())) == 1


def test_upload_rejects_non_images(admin_client):
    text = SimpleUploadedFile('notes.txt', b'hello', content_type='text/plain')

    response = admin_client.post(reverse('product-image-upload'), {'file': text}, format='multipart')

    assert response.status_code == 400


def test_storage_status_and_ensure(admin_client):
    url = reverse('image-storage')

    before = admin_client.get(url)
    assert before.data['bucket'] == 'products'
    assert before.data['exists'] is False

    created = admin_client.post(url)
    assert created.data['created'] is True
    assert created.data['exists'] is True

    again = admin_client.post(url)
    assert again.data['created'] is False
    assert again.data['file_count'] == 0


def test_catalog_summary(admin_client, shelf):
    response = admin_client.get(reverse('catalog-summary'))

    assert response.data['catalog_stats'] == {
        'total_products': 4,
        'hot_deals': 1,
        'fresh_products': 2,
        'total_cities': 2,
        'active_cities': 2,
    }
