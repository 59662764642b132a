from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import CustomUser, AdminUser, AdminOTP


@admin.register(CustomUser)
class CustomUserAdmin(UserAdmin):
    ordering = ['email']
    list_display = ['email', 'first_name', 'last_name', 'is_active', 'is_staff', 'last_login_at']
    search_fields = ['email', 'first_name', 'last_name']
    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Personal info', {'fields': ('first_name', 'last_name')}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
        ('Important dates', {'fields': ('last_login', 'last_login_at', 'date_joined')}),
    )
    add_fieldsets = (
        (None, {'classes': ('wide',), 'fields': ('email', 'password1', 'password2')}),
    )


@admin.register(AdminUser)
class AdminUserAdmin(admin.ModelAdmin):
    list_display = ['email', 'role', 'created_at']
    search_fields = ['email']


@admin.register(AdminOTP)
class AdminOTPAdmin(admin.ModelAdmin):
    list_display = ['email', 'verified', 'expires_at', 'created_at']
    list_filter = ['verified']
    readonly_fields = ['otp_code']
