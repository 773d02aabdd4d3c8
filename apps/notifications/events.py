# apps/notifications/events.py
"""
Realtime event bridge.

publish -> persist, mirror to Firestore, push to the target's WebSocket group
process -> turn the event into a Notification exactly once

Idempotency:
- An in-process set of recently processed event ids short-circuits replays
- The `processed` flag is re-checked under a row lock before a Notification
  is created, so concurrent workers never duplicate notifications
"""
import logging
import threading
from collections import OrderedDict
from datetime import timedelta

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from .models import Notification, RealtimeEvent

logger = logging.getLogger(__name__)

RECENT_EVENT_CACHE_SIZE = 1000
REPLAY_LIMIT = 50


class RecentEventIds:
    """Bounded, thread-safe set of event ids, oldest evicted first."""

    def __init__(self, maxsize=RECENT_EVENT_CACHE_SIZE):
        self.maxsize = maxsize
        self._ids = OrderedDict()
        self._lock = threading.Lock()

    def __contains__(self, event_id):
        with self._lock:
            return str(event_id) in self._ids

    def __len__(self):
        return len(self._ids)

    def add(self, event_id):
        with self._lock:
            key = str(event_id)
            self._ids[key] = True
            self._ids.move_to_end(key)
            while len(self._ids) > self.maxsize:
                self._ids.popitem(last=False)

    def clear(self):
        with self._lock:
            self._ids.clear()


recently_processed = RecentEventIds()


class _TemplateData(dict):
    def __missing__(self, key):
        return ''


# (event_type, target_role) -> notification fields. A role of None is the fallback.
EVENT_NOTIFICATIONS = {
    (RealtimeEvent.TYPE_BOOKING_CREATED, 'user'): (
        Notification.TYPE_BOOKING_CREATED, Notification.CATEGORY_REMINDER,
        "Booking Request Sent",
        "Your booking request {booking_number} for {bike_name} has been sent to {partner_name}.",
    ),
    (RealtimeEvent.TYPE_BOOKING_CREATED, None): (
        Notification.TYPE_BOOKING_CREATED, Notification.CATEGORY_PARTNER,
        "New Booking Request",
        "You have a new booking request for {bike_name}",
    ),
    (RealtimeEvent.TYPE_BOOKING_CREATED_FOR_OWNER, None): (
        Notification.TYPE_BOOKING_CREATED_FOR_OWNER, Notification.CATEGORY_OWNER,
        "New Booking Created",
        "A new booking has been created for your bike {bike_name} at {partner_name} by {customer_name}",
    ),
    (RealtimeEvent.TYPE_NEW_DROPOFF, None): (
        Notification.TYPE_NEW_DROPOFF, Notification.CATEGORY_PARTNER,
        "New Drop-off Booking Scheduled",
        "{customer_name} will return {bike_name} at your location. Expect arrival on {end_date}",
    ),
    (RealtimeEvent.TYPE_BOOKING_ACCEPTED, None): (
        Notification.TYPE_BOOKING_ACCEPTED, Notification.CATEGORY_REMINDER,
        "Booking Confirmed!",
        "Your booking for {bike_name} has been confirmed. Please complete payment.",
    ),
    (RealtimeEvent.TYPE_BOOKING_REJECTED, None): (
        Notification.TYPE_BOOKING_REJECTED, Notification.CATEGORY_REMINDER,
        "Booking Declined",
        "Your booking request for {bike_name} was declined by {partner_name}. Reason: {reason}",
    ),
    (RealtimeEvent.TYPE_BOOKING_UPDATED, 'partner'): (
        Notification.TYPE_BOOKING_ACTIVATED, Notification.CATEGORY_PARTNER,
        "Rental Started",
        "{customer_name} has picked up {bike_name} (booking {booking_number}).",
    ),
    (RealtimeEvent.TYPE_BOOKING_UPDATED, None): (
        Notification.TYPE_BOOKING_ACTIVATED, Notification.CATEGORY_REMINDER,
        "Rental Started",
        "Your rental of {bike_name} has started. Please return it by {end_date}.",
    ),
    (RealtimeEvent.TYPE_BOOKING_COMPLETED, 'partner'): (
        Notification.TYPE_BOOKING_COMPLETED, Notification.CATEGORY_PARTNER,
        "Rental Completed",
        "Booking {booking_number} for {bike_name} has been completed.",
    ),
    (RealtimeEvent.TYPE_BOOKING_COMPLETED, None): (
        Notification.TYPE_BOOKING_COMPLETED, Notification.CATEGORY_REMINDER,
        "Booking Completed",
        "Your rental of {bike_name} is complete. Please rate your experience!",
    ),
    (RealtimeEvent.TYPE_BOOKING_CANCELLED, 'partner'): (
        Notification.TYPE_BOOKING_CANCELLED, Notification.CATEGORY_PARTNER,
        "Booking Cancelled",
        "Booking {booking_number} for {bike_name} has been cancelled. Reason: {reason}",
    ),
    (RealtimeEvent.TYPE_BOOKING_CANCELLED, None): (
        Notification.TYPE_BOOKING_CANCELLED, Notification.CATEGORY_REMINDER,
        "Booking Cancelled",
        "Your booking {booking_number} for {bike_name} has been cancelled. Reason: {reason}",
    ),
    (RealtimeEvent.TYPE_PAYMENT_COMPLETED, 'partner'): (
        Notification.TYPE_PAYMENT_COMPLETED, Notification.CATEGORY_PAYMENT,
        "Payment Received",
        "{customer_name} paid {currency} {amount} for booking {booking_number}.",
    ),
    (RealtimeEvent.TYPE_PAYMENT_COMPLETED, None): (
        Notification.TYPE_PAYMENT_COMPLETED, Notification.CATEGORY_PAYMENT,
        "Payment Successful",
        "We received your payment of {currency} {amount} for booking {booking_number}.",
    ),
    (RealtimeEvent.TYPE_BIKE_AVAILABILITY_CHANGED, None): (
        Notification.TYPE_SYSTEM, Notification.CATEGORY_REMINDER,
        "Bike Availability Changed",
        "{bike_name} is now {availability}.",
    ),
}


def resolve_template(event_type, target_role):
    return (
        EVENT_NOTIFICATIONS.get((event_type, target_role))
        or EVENT_NOTIFICATIONS.get((event_type, None))
    )


def booking_event_data(booking, **extra):
    """Booking summary carried by every booking event."""
    data = {
        'booking_id': str(booking.uuid_id),
        'booking_number': booking.booking_number,
        'status': booking.status,
        'bike_id': str(booking.bike.uuid_id),
        'bike_name': booking.bike.name,
        'partner_name': booking.partner.company_name,
        'customer_name': booking.customer.display_name,
        'start_date': booking.start_date.isoformat(),
        'end_date': booking.end_date.isoformat(),
        'total': str(booking.total),
        'currency': booking.currency,
        'reason': booking.cancellation_reason or 'No reason provided',
    }
    if booking.dropoff_partner_id:
        data['dropoff_partner_name'] = booking.dropoff_partner.company_name
    data.update(extra)
    return data


class RealtimeEventService:
    """Publishing, processing and housekeeping for realtime events."""

    # ========== PUBLISH ==========

    @classmethod
    def publish(cls, event_type, target_user, target_role, data=None, source_user=None, process=True):
        """
        Persist an event and fan it out.

        Args:
            event_type: One of RealtimeEvent.TYPE_*
            target_user: User the event is addressed to
            target_role: Role the target acts in (user, partner, admin)
            data: Event payload
            source_user: User whose action raised the event (None for system)
            process: Turn the event into a Notification immediately

        Returns:
            RealtimeEvent: The stored event
        """
        event = RealtimeEvent.objects.create(
            event_type=event_type,
            target_user=target_user,
            target_role=target_role,
            data=data or {},
            metadata={
                'source_user_id': str(source_user.public_id) if source_user else None,
                'source_user_role': source_user.role if source_user else 'system',
            },
        )

        logger.info(
            f"[EVENT_PUBLISHED] event={event.id} type={event_type} "
            f"target={target_user.id} role={target_role}"
        )

        cls.mirror_to_firestore(event)
        cls.send_to_group(event)

        if process:
            cls.process_event(event)

        return event

    @classmethod
    def send_to_group(cls, event):
        """Deliver the event to the target's WebSocket group."""
        try:
            channel_layer = get_channel_layer()
            if channel_layer is None:
                logger.warning("Channel layer not configured. Realtime event not sent.")
                return False

            from .serializers import RealtimeEventSerializer

            async_to_sync(channel_layer.group_send)(
                cls.get_group_name(event.target_user),
                {
                    'type': 'realtime.event',
                    'event': RealtimeEventSerializer(event).data,
                }
            )
            return True
        except Exception as e:
            logger.error(f"Failed to send realtime event {event.id}: {str(e)}")
            return False

    @classmethod
    def mirror_to_firestore(cls, event):
        """Write the event to the Firestore realtimeEvents collection when enabled."""
        if not getattr(settings, 'FIRESTORE_MIRROR_ENABLED', False):
            return False

        try:
            from firebase_admin import firestore
            from .firebase import get_firestore_client

            client = get_firestore_client()
            if client is None:
                return False

            client.collection(settings.FIRESTORE_EVENTS_COLLECTION).document(str(event.id)).set({
                'type': event.event_type,
                'targetUserId': str(event.target_user.public_id),
                'targetUserRole': event.target_role,
                'data': event.data,
                'metadata': event.metadata,
                'processed': event.processed,
                'createdAt': firestore.SERVER_TIMESTAMP,
            })

            RealtimeEvent.objects.filter(pk=event.pk).update(mirrored=True)
            event.mirrored = True
            return True
        except Exception as e:
            logger.error(f"[FIRESTORE_MIRROR_FAILED] event={event.id} error={str(e)}")
            return False

    @classmethod
    def _mirror_processed(cls, event):
        if not event.mirrored or not getattr(settings, 'FIRESTORE_MIRROR_ENABLED', False):
            return

        try:
            from .firebase import get_firestore_client

            client = get_firestore_client()
            if client is None:
                return
            client.collection(settings.FIRESTORE_EVENTS_COLLECTION).document(str(event.id)).update({
                'processed': True,
                'processedAt': event.processed_at,
            })
        except Exception as e:
            logger.error(f"[FIRESTORE_MIRROR_FAILED] event={event.id} error={str(e)}")

    # ========== PROCESS ==========

    @classmethod
    def process_event(cls, event):
        """
        Turn an event into a Notification.

        Returns:
            Notification or None when the event was already processed or
            maps to no notification.
        """
        if event.id in recently_processed:
            logger.debug(f"[EVENT_SKIPPED] event={event.id} reason=recent")
            return None

        with transaction.atomic():
            locked = RealtimeEvent.objects.select_for_update().select_related(
                'target_user'
            ).get(pk=event.pk)

            # Double-check the event hasn't been processed
            if locked.processed:
                recently_processed.add(locked.id)
                return None

            notification = cls._build_notification(locked)
            locked.mark_processed()

        recently_processed.add(locked.id)
        event.processed = True
        event.processed_at = locked.processed_at

        logger.info(
            f"[EVENT_PROCESSED] event={locked.id} type={locked.event_type} "
            f"notification={notification.id if notification else None}"
        )

        cls._mirror_processed(locked)

        if notification is not None:
            from .push import FCMService
            from .services import NotificationService

            NotificationService.send_websocket_notification(notification)
            if notification.recipient.wants_notification('booking_updates'):
                FCMService.send_notification(notification)

        return notification

    @classmethod
    def _build_notification(cls, event):
        template = resolve_template(event.event_type, event.target_role)
        if template is None:
            return None

        notification_type, category, title, message = template
        data = _TemplateData(event.data or {})

        return Notification.create_notification(
            recipient=event.target_user,
            actor=cls._resolve_actor(event),
            notification_type=notification_type,
            category=category,
            title=title.format_map(data),
            message=message.format_map(data),
            booking=cls._resolve_booking(event),
            metadata={
                'event_id': str(event.id),
                'event_type': event.event_type,
                **{key: value for key, value in (event.data or {}).items() if key.endswith('_id')},
            },
            send_websocket=False,
        )

    @staticmethod
    def _resolve_booking(event):
        booking_id = (event.data or {}).get('booking_id')
        if not booking_id:
            return None

        from apps.bookings.models import Booking
        try:
            return Booking.objects.filter(uuid_id=booking_id).first()
        except (ValueError, ValidationError):
            return None

    @staticmethod
    def _resolve_actor(event):
        source_id = (event.metadata or {}).get('source_user_id')
        if not source_id:
            return None
        try:
            return get_user_model().objects.filter(public_id=source_id).first()
        except (ValueError, ValidationError):
            return None

    @classmethod
    def acknowledge(cls, event_id, user):
        """
        Mark one of the user's events processed without creating a notification.

        Raises:
            RealtimeEvent.DoesNotExist: If the event doesn't belong to the user
        """
        with transaction.atomic():
            event = RealtimeEvent.objects.select_for_update().get(id=event_id, target_user=user)
            event.mark_processed()

        recently_processed.add(event.id)
        logger.info(f"[EVENT_ACKED] event={event.id} user={user.id}")
        cls._mirror_processed(event)
        return event

    @classmethod
    def process_pending(cls, older_than_seconds=60, limit=200):
        """Retry unprocessed events that have waited longer than older_than_seconds."""
        cutoff = timezone.now() - timedelta(seconds=older_than_seconds)
        pending = list(
            RealtimeEvent.objects.filter(
                processed=False,
                created_at__lt=cutoff,
            ).order_by('created_at')[:limit]
        )

        processed = 0
        failed = 0
        for event in pending:
            try:
                if cls.process_event(event) is not None or event.processed:
                    processed += 1
            except Exception as e:
                failed += 1
                logger.error(f"[EVENT_PROCESS_FAILED] event={event.id} error={str(e)}")

        return {'pending': len(pending), 'processed': processed, 'failed': failed}

    # ========== QUERIES & HOUSEKEEPING ==========

    @staticmethod
    def get_unprocessed_for_user(user, limit=REPLAY_LIMIT):
        return list(
            RealtimeEvent.objects.filter(
                target_user=user,
                processed=False,
            ).order_by('-created_at')[:limit]
        )

    @staticmethod
    def cleanup(older_than_days=None):
        """Delete processed events older than N days. Returns the number deleted."""
        if older_than_days is None:
            older_than_days = getattr(settings, 'REALTIME_EVENT_RETENTION_DAYS', 7)

        cutoff = timezone.now() - timedelta(days=older_than_days)
        deleted, _ = RealtimeEvent.objects.filter(
            processed=True,
            processed_at__lt=cutoff,
        ).delete()

        logger.info(f"[EVENT_CLEANUP] deleted={deleted} older_than_days={older_than_days}")
        return deleted

    @staticmethod
    def stats():
        totals = RealtimeEvent.objects.aggregate(
            total=Count('id'),
            processed=Count('id', filter=Q(processed=True)),
            unprocessed=Count('id', filter=Q(processed=False)),
        )
        by_type = dict(
            RealtimeEvent.objects.values_list('event_type').annotate(count=Count('id')).order_by()
        )
        return {**totals, 'by_type': by_type}

    @staticmethod
    def get_group_name(user):
        """
        WebSocket group for a user's realtime events.

        Format: events_{user_public_id}
        """
        return f"events_{user.public_id}"

    # ========== DOMAIN PUBLISHERS ==========

    @classmethod
    def publish_bike_availability_changed(cls, bike, source_user=None):
        """
        Tell customers holding open bookings on the bike that its availability changed.

        Rental-driven flips are skipped; the booking lifecycle already notifies them.
        """
        from apps.bookings.models import Booking

        if bike.is_rented:
            return []

        bookings = Booking.objects.filter(
            bike=bike,
            status__in=[Booking.STATUS_REQUESTED, Booking.STATUS_CONFIRMED],
        ).select_related('customer')

        data = {
            'bike_id': str(bike.uuid_id),
            'bike_name': bike.name,
            'is_available': bike.is_available,
            'availability': 'available' if bike.is_available else 'unavailable',
            'reason': bike.unavailable_reason,
        }

        events = []
        notified = set()
        for booking in bookings:
            if booking.customer_id in notified:
                continue
            notified.add(booking.customer_id)
            events.append(cls.publish(
                RealtimeEvent.TYPE_BIKE_AVAILABILITY_CHANGED,
                booking.customer,
                'user',
                data={**data, 'booking_id': str(booking.uuid_id), 'booking_number': booking.booking_number},
                source_user=source_user,
            ))

        return events
