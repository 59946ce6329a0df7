# apps/api/permissions.py
"""
Role-based permissions for the REST API.

Roles are Django groups created by users/migrations/0002_create_rbac_groups.py.
Superusers and the Admin group pass every check.
"""
from rest_framework import permissions


class IsInGroup(permissions.BasePermission):
    """Base class for group-based permissions."""
    group_names = ()

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        if request.user.is_superuser:
            return True
        return request.user.groups.filter(name__in=[*self.group_names, 'Admin']).exists()


class IsStoreManager(IsInGroup):
    """Approves and cancels stock releases."""
    group_names = ('Store Manager',)


class IsStockHandler(IsInGroup):
    """Moves physical stock: adjustments, transfers, releases and receipts."""
    group_names = ('Store Manager', 'Warehouse')
