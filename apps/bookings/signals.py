# apps/bookings/signals.py
"""
Booking status side effects on the rented bike.

- Booking becomes active: the bike is flagged "Currently rented"
- Active booking completes or is cancelled: the rental flag is released

A bike the partner marked unavailable for another reason is left untouched.
"""
import logging
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from .models import Booking

logger = logging.getLogger(__name__)


@receiver(pre_save, sender=Booking)
def cache_booking_previous_status(sender, instance, **kwargs):
    """Cache the previous status before save to detect changes."""
    if instance.pk:
        instance._previous_status = (
            Booking.objects.filter(pk=instance.pk).values_list('status', flat=True).first()
        )


@receiver(post_save, sender=Booking)
def sync_bike_rental_flag(sender, instance, created, **kwargs):
    booking = instance
    previous_status = getattr(booking, '_previous_status', None)

    if created or previous_status == booking.status:
        return

    bike = booking.bike

    try:
        # The cached bike may predate a manual availability change
        bike.refresh_from_db()

        if booking.status == Booking.STATUS_ACTIVE:
            bike.mark_rented(booking.booking_number)
            logger.info(f"[BIKE_RENTED] bike={bike.uuid_id} booking={booking.booking_number}")

        elif previous_status == Booking.STATUS_ACTIVE and booking.status in (
            Booking.STATUS_COMPLETED, Booking.STATUS_CANCELLED
        ):
            if bike.release_rental():
                logger.info(f"[BIKE_RELEASED] bike={bike.uuid_id} booking={booking.booking_number}")
    except Exception as e:
        logger.error(f"Error syncing bike availability for booking {booking.booking_number}: {str(e)}")
