# apps/bookings/tasks.py
"""
Celery tasks for booking management.

Tasks:
- expire_stale_booking_requests: Cancel requests nobody answered before the start date
- activate_due_bookings: Report confirmed bookings starting today that still lack
  the initial payment, and remind their customers

Schedule:
- Configured in settings.CELERY_BEAT_SCHEDULE
"""

import logging
from celery import shared_task
from django.db import transaction
from django.utils import timezone

logger = logging.getLogger('apps.bookings.tasks')

EXPIRY_REASON = 'Request expired: the partner did not respond before the start date.'


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    acks_late=True
)
def expire_stale_booking_requests(self):
    """
    Cancel bookings still in 'requested' whose start date has passed.

    This task is idempotent - safe to run multiple times.
    """
    from apps.bookings.models import Booking, BookingAuditLog
    from apps.bookings.services import _notify

    today = timezone.localdate()

    stale = Booking.objects.filter(
        status=Booking.STATUS_REQUESTED,
        start_date__lt=today,
    ).select_related('bike', 'partner', 'customer').order_by('start_date')

    logger.info(
        f"[TASK_START] expire_stale_booking_requests "
        f"found={stale.count()} candidates date={today.isoformat()}"
    )

    expired_count = 0
    error_count = 0

    for booking in stale:
        try:
            with transaction.atomic():
                locked = Booking.objects.select_for_update().get(pk=booking.pk)
                # Double-check status hasn't changed
                if locked.status != Booking.STATUS_REQUESTED:
                    continue
                locked.cancel(reason=EXPIRY_REASON)
                BookingAuditLog.log_action(
                    locked, None, BookingAuditLog.ACTION_EXPIRED,
                    details={'start_date': locked.start_date.isoformat()},
                )
            expired_count += 1
            logger.info(f"[BOOKING_EXPIRED] booking={locked.booking_number}")
            _notify('notify_booking_cancelled', locked, cancelled_by=None)
        except Exception as e:
            error_count += 1
            logger.error(f"[EXPIRY_ERROR] booking={booking.booking_number} error={str(e)}")
            continue

    logger.info(
        f"[TASK_COMPLETE] expire_stale_booking_requests "
        f"expired={expired_count} errors={error_count}"
    )

    return {'expired': expired_count, 'errors': error_count}


@shared_task
def activate_due_bookings():
    """
    Confirmed bookings starting today are only activated by the partner at
    pickup. This task reports those still missing the initial payment and
    sends a payment reminder; it never changes booking status.
    """
    from apps.bookings.models import Booking
    from apps.bookings.services import _notify

    today = timezone.localdate()

    due = Booking.objects.filter(
        status=Booking.STATUS_CONFIRMED,
        start_date=today,
    ).select_related('customer', 'partner', 'bike')

    unpaid = []
    for booking in due:
        if not booking.initial_paid:
            unpaid.append(booking.booking_number)
            _notify('notify_payment_required', booking)

    logger.info(
        f"[TASK_COMPLETE] activate_due_bookings due={len(due)} "
        f"awaiting_payment={len(unpaid)} bookings={unpaid[:10]}"
    )

    return {'due': len(due), 'awaiting_payment': len(unpaid)}
