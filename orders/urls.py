from django.urls import path
from . import views

app_name = 'orders'

urlpatterns = [
    # Cart
    path('cart/', views.cart_detail, name='cart-detail'),
    path('cart/items/', views.cart_add, name='cart-add'),
    path('cart/items/<uuid:product_id>/', views.cart_item, name='cart-item'),

    # Checkout
    path('checkout/', views.CheckoutView.as_view(), name='checkout'),
    path('customer-lookup/', views.customer_lookup, name='customer-lookup'),
    path('nearby-shops/', views.nearby_shops, name='nearby-shops'),

    # Orders (admin)
    path('', views.OrderListView.as_view(), name='order-list'),
    path('<uuid:pk>/', views.OrderDetailView.as_view(), name='order-detail'),
    path('<uuid:pk>/status/', views.update_order_status, name='order-status'),
    path('statistics/', views.order_statistics, name='order-statistics'),
]
