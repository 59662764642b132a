from django.urls import path
from . import views


urlpatterns = [
    # City URLs
    path('cities/', views.CityListCreateView.as_view(), name='city-list-create'),
    path('cities/<uuid:pk>/', views.CityRetrieveUpdateDestroyView.as_view(), name='city-detail'),
    path('city/', views.current_city, name='current-city'),

    # Product URLs
    path('products/', views.ProductListCreateView.as_view(), name='product-list-create'),
    path('products/<uuid:pk>/', views.ProductRetrieveUpdateDestroyView.as_view(), name='product-detail'),
    path('categories/', views.category_list, name='category-list'),

    # Image storage
    path('images/', views.upload_image, name='product-image-upload'),
    path('storage/', views.storage_view, name='image-storage'),

    # Dashboard
    path('summary/', views.catalog_summary, name='catalog-summary'),
]
