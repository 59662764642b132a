from rest_framework import permissions

from .models import AdminUser


class IsXstoreAdmin(permissions.BasePermission):
    """
    Permission to only allow users listed in the admin roster
    """
    message = "You don't have admin privileges"

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        try:
            request.admin_user = AdminUser.objects.get(user=request.user)
            return True
        except AdminUser.DoesNotExist:
            return False


class IsAdminOrReadOnly(permissions.BasePermission):
    """
    Anyone may read; writes need an admin
    """
    message = "You don't have admin privileges"

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True
        return IsXstoreAdmin().has_permission(request, view)


def admin_exists():
    return AdminUser.objects.exists()
