# apps/notifications/serializers.py
"""
Serializers for notifications, FCM tokens and realtime events.

Provides:
- NotificationSerializer: Full notification details
- NotificationListSerializer: Compact list view
- NotificationMarkReadSerializer: For mark-as-read actions
- NotificationCreateSerializer / BulkNotificationSerializer: Admin creation
- FCMTokenSerializer / FCMTokenRegisterSerializer: Push token management
- RealtimeEventSerializer / RealtimeEventCreateSerializer: Event bridge
"""
from django.contrib.auth import get_user_model
from rest_framework import serializers

from apps.common.enums import NOTIFICATION_CATEGORIES, as_choices
from .models import Notification, FCMToken, RealtimeEvent

User = get_user_model()


class NotificationSerializer(serializers.ModelSerializer):
    """
    Full serializer for Notification model.

    Includes actor and booking details.
    """

    actor_id = serializers.UUIDField(
        source='actor.public_id',
        read_only=True,
        allow_null=True
    )
    actor_name = serializers.CharField(
        source='actor.display_name',
        read_only=True,
        allow_null=True
    )
    booking_id = serializers.UUIDField(
        source='booking.uuid_id',
        read_only=True,
        allow_null=True
    )
    booking_number = serializers.CharField(
        source='booking.booking_number',
        read_only=True,
        allow_null=True
    )
    booking_status = serializers.CharField(
        source='booking.status',
        read_only=True,
        allow_null=True
    )

    class Meta:
        model = Notification
        fields = [
            'id',
            'notification_type',
            'category',
            'title',
            'message',
            'actor_id',
            'actor_name',
            'booking_id',
            'booking_number',
            'booking_status',
            'metadata',
            'sent_via',
            'is_read',
            'read_at',
            'created_at',
        ]
        read_only_fields = fields


class NotificationListSerializer(serializers.ModelSerializer):
    """Compact serializer for notification list view."""

    actor_name = serializers.CharField(
        source='actor.display_name',
        read_only=True,
        allow_null=True
    )
    booking_id = serializers.UUIDField(
        source='booking.uuid_id',
        read_only=True,
        allow_null=True
    )

    class Meta:
        model = Notification
        fields = [
            'id',
            'notification_type',
            'category',
            'title',
            'message',
            'actor_name',
            'booking_id',
            'is_read',
            'created_at',
        ]
        read_only_fields = fields


class NotificationMarkReadSerializer(serializers.Serializer):
    """
    Serializer for marking notifications as read.

    Accepts a list of notification IDs to mark as read.
    """

    notification_ids = serializers.ListField(
        child=serializers.UUIDField(),
        required=False,
        help_text='List of notification IDs to mark as read. If empty, marks all as read.'
    )

    mark_all = serializers.BooleanField(
        default=False,
        help_text='If true, marks all notifications as read.'
    )


class NotificationWebSocketSerializer(serializers.ModelSerializer):
    """Minimal data optimized for real-time delivery."""

    actor_name = serializers.CharField(
        source='actor.display_name',
        read_only=True,
        allow_null=True
    )
    booking_id = serializers.UUIDField(
        source='booking.uuid_id',
        read_only=True,
        allow_null=True
    )

    class Meta:
        model = Notification
        fields = [
            'id',
            'notification_type',
            'category',
            'title',
            'message',
            'actor_name',
            'booking_id',
            'metadata',
            'created_at',
        ]
        read_only_fields = fields


class NotificationCreateSerializer(serializers.Serializer):
    """Admin: create a notification for one user."""

    recipient_id = serializers.UUIDField(help_text='Public id of the recipient')
    title = serializers.CharField(max_length=200)
    message = serializers.CharField()
    notification_type = serializers.ChoiceField(
        choices=Notification.TYPE_CHOICES,
        default=Notification.TYPE_SYSTEM
    )
    category = serializers.ChoiceField(
        choices=as_choices(NOTIFICATION_CATEGORIES),
        default=Notification.CATEGORY_SYSTEM
    )
    metadata = serializers.DictField(required=False, default=dict)
    send_push = serializers.BooleanField(default=False)

    def validate_recipient_id(self, value):
        try:
            return User.objects.get(public_id=value)
        except User.DoesNotExist:
            raise serializers.ValidationError("User not found.")


class BulkNotificationSerializer(serializers.Serializer):
    """
    Admin: create the same notification for many users.

    Target either explicit recipient_ids or every active user of a role.
    """

    recipient_ids = serializers.ListField(
        child=serializers.UUIDField(),
        required=False,
        default=list
    )
    role = serializers.ChoiceField(
        choices=User.ROLE_CHOICES,
        required=False,
        allow_null=True,
        default=None
    )
    title = serializers.CharField(max_length=200)
    message = serializers.CharField()
    category = serializers.ChoiceField(
        choices=as_choices(NOTIFICATION_CATEGORIES),
        default=Notification.CATEGORY_SYSTEM
    )
    send_push = serializers.BooleanField(default=False)

    def validate(self, attrs):
        if not attrs.get('recipient_ids') and not attrs.get('role'):
            raise serializers.ValidationError("Provide recipient_ids or role.")
        return attrs

    def get_recipients(self):
        data = self.validated_data
        queryset = User.objects.filter(is_active=True, status=User.STATUS_ACTIVE)
        if data.get('recipient_ids'):
            return queryset.filter(public_id__in=data['recipient_ids'])
        return queryset.filter(role=data['role'])


class FCMTokenSerializer(serializers.ModelSerializer):

    class Meta:
        model = FCMToken
        fields = [
            'id',
            'token',
            'user_role',
            'platform',
            'device_type',
            'app_version',
            'is_active',
            'last_used',
            'created_at',
        ]
        read_only_fields = fields


class FCMTokenRegisterSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=512)
    user_role = serializers.ChoiceField(choices=User.ROLE_CHOICES, required=False, allow_blank=True, default='')
    platform = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    device_type = serializers.CharField(max_length=20, required=False, allow_blank=True, default='web')
    app_version = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')


class FCMTokenUnregisterSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=512)


class TestPushSerializer(serializers.Serializer):
    user_id = serializers.UUIDField(help_text='Public id of the user to push to')
    title = serializers.CharField(max_length=200, default='Test notification')
    body = serializers.CharField(default='This is a test push notification.')

    def validate_user_id(self, value):
        try:
            return User.objects.get(public_id=value)
        except User.DoesNotExist:
            raise serializers.ValidationError("User not found.")


class RealtimeEventSerializer(serializers.ModelSerializer):
    """Event payload sent to WebSocket clients and returned by the events API."""

    target_user_id = serializers.UUIDField(source='target_user.public_id', read_only=True)

    class Meta:
        model = RealtimeEvent
        fields = [
            'id',
            'event_type',
            'target_user_id',
            'target_role',
            'data',
            'metadata',
            'processed',
            'processed_at',
            'created_at',
        ]
        read_only_fields = fields


class RealtimeEventCreateSerializer(serializers.Serializer):
    event_type = serializers.ChoiceField(choices=RealtimeEvent.TYPE_CHOICES)
    target_user_id = serializers.UUIDField()
    target_role = serializers.ChoiceField(choices=User.ROLE_CHOICES)
    data = serializers.DictField(required=False, default=dict)

    def validate_target_user_id(self, value):
        try:
            return User.objects.get(public_id=value)
        except User.DoesNotExist:
            raise serializers.ValidationError("Target user not found.")


class EventCleanupSerializer(serializers.Serializer):
    older_than_days = serializers.IntegerField(min_value=0, default=7)
