# apps/notifications/services.py
"""
Notification Service for the bike rental marketplace.

Provides:
- Notification helpers for each booking and payment event
- WebSocket delivery functionality
- Admin broadcast helpers
"""
import logging
from channels.layers import get_channel_layer
from asgiref.sync import async_to_sync

from .events import RealtimeEventService, booking_event_data
from .models import Notification, RealtimeEvent

logger = logging.getLogger(__name__)

ROLE_USER = 'user'
ROLE_PARTNER = 'partner'


class NotificationService:
    """
    Service class for managing notifications.

    Booking and payment helpers publish realtime events; the event bridge
    turns each event into a stored notification, a WebSocket message and
    an FCM push.
    """

    # ========== BOOKING NOTIFICATIONS ==========

    @classmethod
    def notify_booking_created(cls, booking):
        """
        Recipients:
        - Customer: request confirmation
        - Owner partner: new booking request
        - Drop-off partner (when different): expect arrival
        """
        data = booking_event_data(booking)
        customer = booking.customer
        events = [
            RealtimeEventService.publish(
                RealtimeEvent.TYPE_BOOKING_CREATED, customer, ROLE_USER, data, source_user=customer
            ),
            RealtimeEventService.publish(
                RealtimeEvent.TYPE_BOOKING_CREATED_FOR_OWNER, booking.partner.user, ROLE_PARTNER, data,
                source_user=customer
            ),
        ]

        if booking.dropoff_partner_id and booking.dropoff_partner_id != booking.partner_id:
            events.append(RealtimeEventService.publish(
                RealtimeEvent.TYPE_NEW_DROPOFF, booking.dropoff_partner.user, ROLE_PARTNER, data,
                source_user=customer
            ))

        logger.info(f"Notification sent: booking_created -> {booking.booking_number} ({len(events)} recipients)")
        return events

    @classmethod
    def notify_booking_accepted(cls, booking):
        """Customer learns the booking is confirmed and that payment is due."""
        event = RealtimeEventService.publish(
            RealtimeEvent.TYPE_BOOKING_ACCEPTED,
            booking.customer,
            ROLE_USER,
            booking_event_data(booking),
            source_user=booking.partner.user,
        )
        cls.notify_payment_required(booking)

        logger.info(f"Notification sent: booking_accepted -> {booking.customer.email}")
        return event

    @classmethod
    def notify_booking_rejected(cls, booking):
        event = RealtimeEventService.publish(
            RealtimeEvent.TYPE_BOOKING_REJECTED,
            booking.customer,
            ROLE_USER,
            booking_event_data(booking),
            source_user=booking.partner.user,
        )
        logger.info(f"Notification sent: booking_rejected -> {booking.customer.email}")
        return event

    @classmethod
    def notify_booking_activated(cls, booking):
        """Customer and drop-off partner learn the rental has started."""
        data = booking_event_data(booking)
        source = booking.partner.user
        events = [
            RealtimeEventService.publish(
                RealtimeEvent.TYPE_BOOKING_UPDATED, booking.customer, ROLE_USER, data, source_user=source
            ),
        ]
        if booking.dropoff_partner_id and booking.dropoff_partner_id != booking.partner_id:
            events.append(RealtimeEventService.publish(
                RealtimeEvent.TYPE_BOOKING_UPDATED, booking.dropoff_partner.user, ROLE_PARTNER, data,
                source_user=source
            ))

        logger.info(f"Notification sent: booking_activated -> {booking.booking_number}")
        return events

    @classmethod
    def notify_booking_completed(cls, booking):
        """
        Recipients:
        - Customer: rate your experience
        - Owner partner (and drop-off partner): rental completed
        """
        data = booking_event_data(booking)
        events = [
            RealtimeEventService.publish(
                RealtimeEvent.TYPE_BOOKING_COMPLETED, booking.customer, ROLE_USER, data
            ),
        ]
        for user in cls._partner_users(booking):
            events.append(RealtimeEventService.publish(
                RealtimeEvent.TYPE_BOOKING_COMPLETED, user, ROLE_PARTNER, data
            ))

        logger.info(f"Notification sent: booking_completed -> {booking.booking_number}")
        return events

    @classmethod
    def notify_booking_cancelled(cls, booking, cancelled_by=None):
        """
        Recipients: every party except the one who cancelled.
        System cancellations (cancelled_by=None) notify everyone.
        """
        data = booking_event_data(booking, cancelled_by=cls._get_user_name(cancelled_by) if cancelled_by else 'system')
        recipients = [(booking.customer, ROLE_USER)] + [
            (user, ROLE_PARTNER) for user in cls._partner_users(booking)
        ]

        events = []
        for user, role in recipients:
            if cancelled_by is not None and user.pk == cancelled_by.pk:
                continue
            events.append(RealtimeEventService.publish(
                RealtimeEvent.TYPE_BOOKING_CANCELLED, user, role, data, source_user=cancelled_by
            ))

        logger.info(f"Notification sent: booking_cancelled -> {booking.booking_number} ({len(events)} recipients)")
        return events

    # ========== PAYMENT NOTIFICATIONS ==========

    @classmethod
    def notify_payment_required(cls, booking):
        """Remind the customer of the next installment due."""
        due = booking.next_payment_due
        if due is None:
            return None

        amount = booking.initial_payment_amount if due == 'initial' else booking.remaining_payment_amount

        notification = Notification.create_notification(
            recipient=booking.customer,
            notification_type=Notification.TYPE_PAYMENT_REQUIRED,
            category=Notification.CATEGORY_PAYMENT,
            title="Payment Required",
            message=f"Please complete payment of {booking.currency} {amount} for your booking {booking.booking_number}.",
            booking=booking,
            metadata={
                'booking_id': str(booking.uuid_id),
                'installment': due,
                'amount': str(amount),
            },
            send_push=booking.customer.wants_notification('booking_updates'),
        )

        logger.info(f"Notification sent: payment_required -> {booking.customer.email}")
        return notification

    @classmethod
    def notify_payment_completed(cls, payment):
        """Customer receipt plus a heads-up to the owner partner."""
        booking = payment.booking
        data = booking_event_data(
            booking,
            payment_id=str(payment.uuid_id),
            transaction_id=payment.transaction_id,
            installment=payment.installment,
            amount=str(payment.amount),
        )
        events = [
            RealtimeEventService.publish(
                RealtimeEvent.TYPE_PAYMENT_COMPLETED, payment.customer, ROLE_USER, data,
                source_user=payment.customer
            ),
            RealtimeEventService.publish(
                RealtimeEvent.TYPE_PAYMENT_COMPLETED, booking.partner.user, ROLE_PARTNER, data,
                source_user=payment.customer
            ),
        ]

        logger.info(f"Notification sent: payment_completed -> {payment.transaction_id}")
        return events

    # ========== PARTNER NOTIFICATIONS ==========

    @classmethod
    def notify_partner_verification(cls, partner):
        """Tell a partner their verification was approved or rejected."""
        approved = partner.is_verified
        if approved:
            message = f"{partner.company_name} has been verified. Your bikes are now visible to customers."
        else:
            notes = partner.verification_notes or "No reason provided"
            message = f"Verification for {partner.company_name} was not approved. Notes: {notes}"

        notification = Notification.create_notification(
            recipient=partner.user,
            actor=partner.verified_by,
            notification_type=Notification.TYPE_SYSTEM,
            category=Notification.CATEGORY_PARTNER,
            title="Partner Verified" if approved else "Verification Update",
            message=message,
            metadata={
                'partner_id': str(partner.uuid_id),
                'verification_status': partner.verification_status,
            },
        )

        logger.info(f"Notification sent: partner_verification -> {partner.user.email}")
        return notification

    # ========== ADMIN BROADCASTS ==========

    @classmethod
    def create_for_users(cls, users, title, message, notification_type=Notification.TYPE_SYSTEM,
                         category=Notification.CATEGORY_SYSTEM, actor=None, metadata=None, send_push=False):
        """Create the same notification for many users."""
        notifications = [
            Notification.create_notification(
                recipient=user,
                actor=actor,
                notification_type=notification_type,
                category=category,
                title=title,
                message=message,
                metadata=metadata,
                send_push=send_push,
            )
            for user in users
        ]
        logger.info(f"Notification sent: {notification_type} -> {len(notifications)} users")
        return notifications

    # ========== WEBSOCKET DELIVERY ==========

    @classmethod
    def send_websocket_notification(cls, notification):
        """
        Send notification via WebSocket to the recipient.

        Uses Django Channels to deliver real-time notifications.
        """
        try:
            channel_layer = get_channel_layer()

            if channel_layer is None:
                logger.warning("Channel layer not configured. WebSocket notification not sent.")
                return False

            from .serializers import NotificationWebSocketSerializer

            message = {
                'type': 'notification.send',
                'notification': NotificationWebSocketSerializer(notification).data,
            }

            group_name = cls._get_user_channel_group(notification.recipient)

            async_to_sync(channel_layer.group_send)(group_name, message)

            logger.debug(f"WebSocket notification sent to group: {group_name}")
            return True

        except Exception as e:
            logger.error(f"Failed to send WebSocket notification: {str(e)}")
            return False

    # ========== HELPER METHODS ==========

    @classmethod
    def _get_user_name(cls, user):
        return user.display_name

    @classmethod
    def _partner_users(cls, booking):
        users = [booking.partner.user]
        if booking.dropoff_partner_id and booking.dropoff_partner_id != booking.partner_id:
            users.append(booking.dropoff_partner.user)
        return users

    @classmethod
    def _get_user_channel_group(cls, user):
        """
        Get the WebSocket channel group name for a user.

        Format: notifications_{user_public_id}
        """
        return f"notifications_{user.public_id}"
