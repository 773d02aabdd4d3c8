# apps/support/serializers.py
from rest_framework import serializers

from apps.bookings.models import Booking
from apps.common.enums import SUPPORT_CATEGORIES, as_choices
from .models import SupportTicket, FAQ


class SupportTicketSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source='uuid_id', read_only=True)
    user_email = serializers.EmailField(source='user.email', read_only=True)
    booking_id = serializers.UUIDField(source='booking.uuid_id', read_only=True, default=None)
    booking_number = serializers.CharField(source='booking.booking_number', read_only=True, default=None)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = SupportTicket
        fields = [
            'id',
            'user_email',
            'subject',
            'message',
            'category',
            'priority',
            'status',
            'status_display',
            'booking_id',
            'booking_number',
            'admin_response',
            'responded_at',
            'resolved_at',
            'closed_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class SupportTicketCreateSerializer(serializers.Serializer):
    subject = serializers.CharField(max_length=200)
    message = serializers.CharField()
    category = serializers.ChoiceField(choices=as_choices(SUPPORT_CATEGORIES), default='other')
    priority = serializers.ChoiceField(choices=SupportTicket.PRIORITY_CHOICES, default=SupportTicket.PRIORITY_MEDIUM)
    booking_id = serializers.UUIDField(required=False, allow_null=True, default=None)

    def validate_booking_id(self, value):
        if value is None:
            return None
        try:
            return Booking.objects.get(uuid_id=value)
        except Booking.DoesNotExist:
            raise serializers.ValidationError("Booking not found.")


class TicketResponseSerializer(serializers.Serializer):
    response = serializers.CharField()
    status = serializers.ChoiceField(choices=SupportTicket.STATUS_CHOICES, required=False, allow_null=True, default=None)


class TicketStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=SupportTicket.STATUS_CHOICES)


class FAQSerializer(serializers.ModelSerializer):

    class Meta:
        model = FAQ
        fields = ['id', 'question', 'answer', 'category', 'order', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']
