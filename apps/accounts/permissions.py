# apps/accounts/permissions.py
"""
Role based permission classes shared by every app.
"""

from rest_framework.permissions import BasePermission


class IsAdmin(BasePermission):
    """Staff, superusers and users with the admin role."""
    message = "Admin access required."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin_user)


class IsPartner(BasePermission):
    """Users with the partner role (registered partner profile not required)."""
    message = "You must be a registered partner to access this resource."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_partner)


class IsCustomer(BasePermission):
    message = "Only customers can perform this action."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_customer)


class IsPartnerOrAdmin(BasePermission):
    message = "Partner or admin access required."

    def has_permission(self, request, view):
        user = request.user
        return bool(
            user and user.is_authenticated and (user.is_partner or user.is_admin_user)
        )
