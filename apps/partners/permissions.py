# apps/partners/permissions.py
from rest_framework.permissions import BasePermission


class IsActivePartner(BasePermission):
    """
    User must own a partner profile in the active state.
    """
    message = "Your partner account must be verified and active to perform this action."

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        partner = getattr(user, 'partner_profile', None)
        return bool(partner and partner.is_active)


class HasPartnerProfile(BasePermission):
    message = "You are not registered as a partner."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and hasattr(user, 'partner_profile'))


class IsPartnerOwnerOrAdmin(BasePermission):
    message = "You do not have access to this partner."

    def has_object_permission(self, request, view, obj):
        user = request.user
        return obj.user_id == user.id or user.is_admin_user
