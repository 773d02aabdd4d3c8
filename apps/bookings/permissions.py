# apps/bookings/permissions.py
"""
Object-level permissions for bookings.
"""
from rest_framework.permissions import BasePermission


class IsBookingParticipant(BasePermission):
    """Customer, owner partner, drop-off partner, or admin."""
    message = "You do not have access to this booking."

    def has_object_permission(self, request, view, obj):
        user = request.user
        if user.is_admin_user:
            return True
        return obj.customer_id == user.id or obj.is_partner_party(user)
