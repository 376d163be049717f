"""
Role-based permissions for the API.
"""
from rest_framework import permissions

from .identity import current_user


class IsAdminRole(permissions.BasePermission):
    """Allow access only to users acting with the admin role."""
    message = 'Admin access required.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and current_user(request).is_admin)


class IsAdminOrReadOnly(permissions.BasePermission):
    """Authenticated users may read; only admins may write."""
    message = 'Admin access required.'

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return current_user(request).is_admin
