# apps/notifications/signals.py
"""
Signals for notification delivery state.

Signals handle:
1. Deactivating push tokens when an account stops being active
"""
import logging
from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import FCMToken

logger = logging.getLogger(__name__)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def deactivate_tokens_for_inactive_user(sender, instance, created, **kwargs):
    """Suspended or deactivated users stop receiving pushes."""
    if created:
        return

    if instance.is_active and instance.status == instance.STATUS_ACTIVE:
        return

    try:
        count = FCMToken.objects.filter(user=instance, is_active=True).update(is_active=False)
        if count:
            logger.info(f"[FCM_TOKENS_DEACTIVATED] user={instance.id} count={count} status={instance.status}")
    except Exception as e:
        logger.error(f"Error deactivating FCM tokens for user {instance.id}: {str(e)}")
