# apps/notifications/models.py
"""
Notification models for the bike rental marketplace.

Stores:
- Notification: persisted in-app notifications with read tracking
- FCMToken: browser/device push tokens per user
- RealtimeEvent: state-change events bridged to WebSocket clients and Firestore
"""
from django.db import models
from django.conf import settings
from django.utils import timezone
import uuid

from apps.common.enums import NOTIFICATION_CATEGORIES, as_choices

User = settings.AUTH_USER_MODEL


def default_sent_via():
    return ['app']


class Notification(models.Model):
    """
    Notification model for booking and payment events.

    Delivery:
    - Stored in database for persistence
    - Delivered via WebSocket for real-time updates
    - Optionally pushed through FCM to registered browsers
    """

    # Notification Type Choices
    TYPE_BOOKING_CREATED = 'booking_created'
    TYPE_BOOKING_CREATED_FOR_OWNER = 'booking_created_for_owner'
    TYPE_NEW_DROPOFF = 'new_dropoff'
    TYPE_BOOKING_ACCEPTED = 'booking_accepted'
    TYPE_BOOKING_REJECTED = 'booking_rejected'
    TYPE_BOOKING_ACTIVATED = 'booking_activated'
    TYPE_BOOKING_COMPLETED = 'booking_completed'
    TYPE_BOOKING_CANCELLED = 'booking_cancelled'
    TYPE_PAYMENT_REQUIRED = 'payment_required'
    TYPE_PAYMENT_COMPLETED = 'payment_completed'
    TYPE_SYSTEM = 'system'

    TYPE_CHOICES = (
        (TYPE_BOOKING_CREATED, 'Booking Created'),
        (TYPE_BOOKING_CREATED_FOR_OWNER, 'Booking Created For Owner'),
        (TYPE_NEW_DROPOFF, 'New Drop-off'),
        (TYPE_BOOKING_ACCEPTED, 'Booking Accepted'),
        (TYPE_BOOKING_REJECTED, 'Booking Rejected'),
        (TYPE_BOOKING_ACTIVATED, 'Booking Activated'),
        (TYPE_BOOKING_COMPLETED, 'Booking Completed'),
        (TYPE_BOOKING_CANCELLED, 'Booking Cancelled'),
        (TYPE_PAYMENT_REQUIRED, 'Payment Required'),
        (TYPE_PAYMENT_COMPLETED, 'Payment Completed'),
        (TYPE_SYSTEM, 'System'),
    )

    CATEGORY_REMINDER = 'reminder'
    CATEGORY_OFFER = 'offer'
    CATEGORY_SYSTEM = 'system'
    CATEGORY_PARTNER = 'partner'
    CATEGORY_PAYMENT = 'payment'
    CATEGORY_OWNER = 'owner'

    CHANNEL_APP = 'app'
    CHANNEL_EMAIL = 'email'
    CHANNEL_SMS = 'sms'
    CHANNEL_PUSH = 'push'

    CHANNELS = [CHANNEL_APP, CHANNEL_EMAIL, CHANNEL_SMS, CHANNEL_PUSH]

    # Primary key as UUID for API safety
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    recipient = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='notifications',
        help_text='User who receives this notification'
    )

    # Actor who triggered the notification (None for system/scheduled events)
    actor = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='triggered_notifications',
        help_text='User who triggered this notification'
    )

    notification_type = models.CharField(
        max_length=50,
        choices=TYPE_CHOICES,
        db_index=True,
    )

    category = models.CharField(
        max_length=20,
        choices=as_choices(NOTIFICATION_CATEGORIES),
        default=CATEGORY_SYSTEM,
        db_index=True,
    )

    title = models.CharField(max_length=200)
    message = models.TextField()

    booking = models.ForeignKey(
        'bookings.Booking',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='notifications',
        help_text='Related booking'
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text='Additional notification data in JSON format'
    )

    sent_via = models.JSONField(
        default=default_sent_via,
        blank=True,
        help_text='Delivery channels used (app, email, sms, push)'
    )

    is_read = models.BooleanField(default=False, db_index=True)
    read_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'is_read', '-created_at']),
            models.Index(fields=['recipient', 'notification_type']),
            models.Index(fields=['recipient', 'category']),
        ]
        verbose_name = 'Notification'
        verbose_name_plural = 'Notifications'

    def __str__(self):
        return f"{self.notification_type} -> {self.recipient} ({self.created_at})"

    def mark_as_read(self):
        """Mark notification as read."""
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at', 'updated_at'])

    def mark_as_unread(self):
        """Mark notification as unread."""
        if self.is_read:
            self.is_read = False
            self.read_at = None
            self.save(update_fields=['is_read', 'read_at', 'updated_at'])

    def add_channel(self, channel):
        if channel not in self.sent_via:
            self.sent_via = list(self.sent_via) + [channel]
            self.save(update_fields=['sent_via', 'updated_at'])

    @classmethod
    def create_notification(
        cls,
        recipient,
        notification_type,
        title,
        message,
        actor=None,
        booking=None,
        category=CATEGORY_SYSTEM,
        metadata=None,
        send_websocket=True,
        send_push=False,
    ):
        """
        Create a new notification and deliver it.

        Args:
            recipient: User to receive the notification
            notification_type: Type of notification
            title: Notification title
            message: Notification message
            actor: User who triggered the notification (optional)
            booking: Related booking (optional)
            category: Notification category
            metadata: Additional data (optional)
            send_websocket: Whether to send via WebSocket (default: True)
            send_push: Whether to push via FCM (default: False)

        Returns:
            Notification: The created notification instance
        """
        notification = cls.objects.create(
            recipient=recipient,
            actor=actor,
            notification_type=notification_type,
            category=category,
            title=title,
            message=message,
            booking=booking,
            metadata=metadata or {}
        )

        if send_websocket:
            from apps.notifications.services import NotificationService
            NotificationService.send_websocket_notification(notification)

        if send_push:
            from apps.notifications.push import FCMService
            FCMService.send_notification(notification)

        return notification

    @classmethod
    def get_unread_count(cls, user):
        """Get count of unread notifications for a user."""
        return cls.objects.filter(recipient=user, is_read=False).count()

    @classmethod
    def mark_all_as_read(cls, user):
        """Mark all notifications as read for a user."""
        now = timezone.now()
        return cls.objects.filter(
            recipient=user,
            is_read=False
        ).update(
            is_read=True,
            read_at=now,
            updated_at=now
        )


class FCMToken(models.Model):
    """
    Firebase Cloud Messaging token registered by a browser or device.

    A user may hold several tokens (one per browser/device). Registering a
    new token replaces older tokens from the same user agent and platform.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='fcm_tokens',
    )
    token = models.CharField(max_length=512, unique=True)
    user_role = models.CharField(max_length=20, blank=True, default='')

    # Device info
    user_agent = models.TextField(blank=True, default='')
    platform = models.CharField(max_length=100, blank=True, default='')
    device_type = models.CharField(max_length=20, blank=True, default='web')
    app_version = models.CharField(max_length=20, blank=True, default='')

    is_active = models.BooleanField(default=True, db_index=True)
    last_used = models.DateTimeField(default=timezone.now)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-last_used']
        indexes = [
            models.Index(fields=['user', 'is_active']),
        ]
        verbose_name = 'FCM Token'
        verbose_name_plural = 'FCM Tokens'

    def __str__(self):
        return f"{self.user} ({self.platform or self.device_type})"

    def deactivate(self):
        if self.is_active:
            self.is_active = False
            self.save(update_fields=['is_active', 'updated_at'])

    @classmethod
    def register(cls, user, token, user_role='', user_agent='', platform='',
                 device_type='web', app_version=''):
        """
        Register (or refresh) a token for a user.

        Returns:
            tuple: (FCMToken, created)
        """
        # Drop stale tokens from the same browser
        cls.objects.filter(
            user=user,
            user_agent=user_agent,
            platform=platform,
        ).exclude(token=token).delete()

        return cls.objects.update_or_create(
            token=token,
            defaults={
                'user': user,
                'user_role': user_role or getattr(user, 'role', ''),
                'user_agent': user_agent,
                'platform': platform,
                'device_type': device_type or 'web',
                'app_version': app_version,
                'is_active': True,
                'last_used': timezone.now(),
            }
        )


class RealtimeEvent(models.Model):
    """
    A state change addressed to one user.

    Events are persisted, mirrored to Firestore when enabled, pushed to the
    target's WebSocket group and processed into a Notification exactly once.
    """

    TYPE_BOOKING_CREATED = 'BOOKING_CREATED'
    TYPE_BOOKING_CREATED_FOR_OWNER = 'BOOKING_CREATED_FOR_OWNER'
    TYPE_NEW_DROPOFF = 'NEW_DROPOFF'
    TYPE_BOOKING_UPDATED = 'BOOKING_UPDATED'
    TYPE_BOOKING_ACCEPTED = 'BOOKING_ACCEPTED'
    TYPE_BOOKING_REJECTED = 'BOOKING_REJECTED'
    TYPE_BOOKING_COMPLETED = 'BOOKING_COMPLETED'
    TYPE_BOOKING_CANCELLED = 'BOOKING_CANCELLED'
    TYPE_PAYMENT_COMPLETED = 'PAYMENT_COMPLETED'
    TYPE_BIKE_AVAILABILITY_CHANGED = 'BIKE_AVAILABILITY_CHANGED'

    TYPE_CHOICES = (
        (TYPE_BOOKING_CREATED, 'Booking Created'),
        (TYPE_BOOKING_CREATED_FOR_OWNER, 'Booking Created For Owner'),
        (TYPE_NEW_DROPOFF, 'New Drop-off'),
        (TYPE_BOOKING_UPDATED, 'Booking Updated'),
        (TYPE_BOOKING_ACCEPTED, 'Booking Accepted'),
        (TYPE_BOOKING_REJECTED, 'Booking Rejected'),
        (TYPE_BOOKING_COMPLETED, 'Booking Completed'),
        (TYPE_BOOKING_CANCELLED, 'Booking Cancelled'),
        (TYPE_PAYMENT_COMPLETED, 'Payment Completed'),
        (TYPE_BIKE_AVAILABILITY_CHANGED, 'Bike Availability Changed'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    event_type = models.CharField(max_length=40, choices=TYPE_CHOICES, db_index=True)
    target_user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='realtime_events',
    )
    target_role = models.CharField(max_length=20)

    data = models.JSONField(default=dict, blank=True)
    metadata = models.JSONField(default=dict, blank=True, help_text='Source user and role')

    processed = models.BooleanField(default=False, db_index=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    mirrored = models.BooleanField(default=False, help_text='Written to Firestore')

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['target_user', 'processed', '-created_at']),
            models.Index(fields=['processed', 'processed_at']),
        ]

    def __str__(self):
        return f"{self.event_type} -> {self.target_user} ({'processed' if self.processed else 'pending'})"

    def mark_processed(self):
        if not self.processed:
            self.processed = True
            self.processed_at = timezone.now()
            self.save(update_fields=['processed', 'processed_at'])
