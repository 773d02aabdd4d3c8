# apps/partners/services.py
"""
Business logic for partner registration and administration.
"""
import logging
from django.contrib.auth import get_user_model
from django.db import transaction

from .models import Partner

logger = logging.getLogger(__name__)
User = get_user_model()


class PartnerService:
    """Service class for partner-related business logic."""

    @staticmethod
    @transaction.atomic
    def register_partner(user, **data):
        """
        Register the user as a partner.

        The partner starts as pending/unverified and the user's role switches to partner.

        Raises:
            ValueError: If the user already has a partner profile or is an admin
        """
        if Partner.objects.filter(user=user).exists():
            raise ValueError("You are already registered as a partner.")

        if user.is_admin_user:
            raise ValueError("Admin accounts cannot register as partners.")

        partner = Partner.objects.create(user=user, **data)

        if user.role != User.ROLE_PARTNER:
            user.role = User.ROLE_PARTNER
            user.save(update_fields=['role'])

        logger.info(f"[PARTNER_REGISTERED] partner={partner.uuid_id} user={user.email} company={partner.company_name}")
        return partner

    @staticmethod
    def review_verification(partner, admin_user, approve, notes=''):
        """Approve or reject a partner's verification request."""
        if approve:
            partner.verify(admin_user=admin_user, notes=notes)
        else:
            partner.reject_verification(admin_user=admin_user, notes=notes)

        logger.info(
            f"[PARTNER_VERIFICATION] partner={partner.uuid_id} "
            f"result={partner.verification_status} admin={admin_user.email}"
        )

        try:
            from apps.notifications.services import NotificationService
            NotificationService.notify_partner_verification(partner)
        except ImportError:
            pass

        return partner

    @staticmethod
    def set_status(partner, new_status, admin_user):
        """
        Change partner status (admin only).

        Raises:
            ValueError: If the status is unknown or the partner was never verified
        """
        valid = [choice[0] for choice in Partner.STATUS_CHOICES]
        if new_status not in valid:
            raise ValueError(f"Invalid partner status '{new_status}'.")

        if new_status == Partner.STATUS_ACTIVE and not partner.is_verified:
            raise ValueError("Only verified partners can be activated.")

        old_status = partner.status
        partner.status = new_status
        partner.save(update_fields=['status', 'updated_at'])

        logger.info(
            f"[PARTNER_STATUS] partner={partner.uuid_id} {old_status}->{new_status} admin={admin_user.email}"
        )
        return partner

    @staticmethod
    def update_bank_details(partner, user, **bank_fields):
        """
        Update bank details. Only the partner owner or an admin may do this.

        Raises:
            PermissionError: If the user is neither owner nor admin
        """
        if partner.user_id != user.id and not user.is_admin_user:
            raise PermissionError("You are not authorized to update bank details.")

        for field, value in bank_fields.items():
            setattr(partner, field, value)
        partner.save(update_fields=list(bank_fields.keys()) + ['updated_at'])

        logger.info(f"Bank details updated for partner {partner.uuid_id} by {user.email}")
        return partner
