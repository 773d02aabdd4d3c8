# apps/accounts/signals.py
import logging
from django.dispatch import receiver
from allauth.account.signals import email_confirmed

logger = logging.getLogger(__name__)


@receiver(email_confirmed)
def activate_user_on_email_confirm(request, email_address, **kwargs):
    user = email_address.user

    if user.status == user.STATUS_SUSPENDED:
        logger.warning(f"Email confirmed for suspended user {user.email}, leaving suspended")
        return

    user.is_active = True
    user.status = user.STATUS_ACTIVE
    user.save(update_fields=["is_active", "status"])
    logger.info(f"Activated user after email confirmation: {user.email}")
