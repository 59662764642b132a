from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from . import views

urlpatterns = [
    # =============== AUTHENTICATION ===============
    path('signup/', views.signup, name='signup'),
    path('login/', views.AdminTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('logout/', views.logout, name='logout'),
    path('session/', views.session, name='session'),
    path('setup-status/', views.setup_status, name='setup_status'),
    path('admin-status/', views.admin_status, name='admin_status'),

    # =============== ADMIN ROSTER ===============
    path('admins/', views.AdminUserListCreateView.as_view(), name='admin_list_create'),
    path('admins/<uuid:user_id>/', views.remove_admin, name='admin_remove'),

    # =============== ADMIN PROVISIONING ===============
    path('admin-otp/send/', views.send_admin_otp, name='send_admin_otp'),
    path('admin-otp/verify/', views.verify_admin_otp, name='verify_admin_otp'),
    path('admin-register/', views.register_admin, name='register_admin'),
]
