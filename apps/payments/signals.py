# apps/payments/signals.py
"""
Django signals for payment integration.

Signals handle:
1. Refund of completed payments when a booking is cancelled
"""

import logging
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver
from django.db import transaction as db_transaction

from apps.bookings.models import Booking
from .services import PaymentService

logger = logging.getLogger(__name__)


@receiver(pre_save, sender=Booking)
def cache_booking_status_for_payments(sender, instance, **kwargs):
    """Cache the previous status before save to detect changes."""
    if instance.pk:
        instance._previous_status = (
            Booking.objects.filter(pk=instance.pk).values_list('status', flat=True).first()
        )


@receiver(post_save, sender=Booking)
def refund_cancelled_booking(sender, instance, created, **kwargs):
    """
    Refund every completed payment when a booking moves to cancelled.
    """
    booking = instance
    previous_status = getattr(booking, '_previous_status', None)

    if created or previous_status == booking.status or booking.status != Booking.STATUS_CANCELLED:
        return

    try:
        with db_transaction.atomic():
            refunded = PaymentService.refund_booking_payments(
                booking,
                reason=booking.cancellation_reason or 'Booking cancelled',
            )
        if refunded:
            logger.info(
                f"Refunded {len(refunded)} payment(s) for cancelled booking {booking.booking_number}"
            )
    except Exception as e:
        logger.error(f"Failed to refund payments for cancelled booking {booking.booking_number}: {str(e)}")
