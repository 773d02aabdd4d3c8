# apps/bikes/permissions.py
from rest_framework.permissions import BasePermission, SAFE_METHODS


class IsBikeOwnerOrAdmin(BasePermission):
    """Read for everyone, writes only by the owning partner or an admin."""
    message = "You can only manage your own bikes."

    def has_object_permission(self, request, view, obj):
        if request.method in SAFE_METHODS:
            return True
        user = request.user
        if not (user and user.is_authenticated):
            return False
        return obj.partner.user_id == user.id or user.is_admin_user
