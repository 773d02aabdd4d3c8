# apps/bookings/serializers.py
"""
Serializers for Booking, BookingAuditLog and Review models.

Includes:
- BookingCreateSerializer: Customer booking request
- BookingSerializer: Full read serializer with nested bike/partner summaries
- BookingListSerializer: Compact list serializer
- BookingActionSerializer: Optional reason for reject/cancel
- AdminBookingSerializer / AdminBookingStatusSerializer: Admin management
- ReviewSerializer / ReviewCreateSerializer / ReviewModerationSerializer
"""
from decimal import Decimal
from rest_framework import serializers

from apps.bikes.models import Bike
from apps.common.enums import RENTAL_PACKAGES, as_choices
from apps.partners.models import Partner
from .models import Booking, BookingAuditLog, Review


class BookingBikeSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField(source='uuid_id', read_only=True)
    name = serializers.CharField(read_only=True)
    bike_type = serializers.CharField(read_only=True)
    location = serializers.CharField(read_only=True)
    image = serializers.SerializerMethodField()

    def get_image(self, obj):
        return obj.images[0] if obj.images else None


class BookingPartnerSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField(source='uuid_id', read_only=True)
    company_name = serializers.CharField(read_only=True)
    contact_phone = serializers.CharField(read_only=True)
    location = serializers.CharField(read_only=True)


class BookingCustomerSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField(source='public_id', read_only=True)
    name = serializers.CharField(source='display_name', read_only=True)
    email = serializers.EmailField(read_only=True)
    phone = serializers.CharField(read_only=True)


class BookingCreateSerializer(serializers.Serializer):
    """
    Required fields:
    - bike_id: UUID of the bike
    - package: day | week | month
    - start_date, end_date: YYYY-MM-DD

    Optional fields:
    - pickup_location, dropoff_location
    - dropoff_partner_id: UUID of the partner the bike is returned to
    - extras, discount, notes
    """

    bike_id = serializers.UUIDField()
    package = serializers.ChoiceField(choices=as_choices(RENTAL_PACKAGES))
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    pickup_location = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    dropoff_location = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    dropoff_partner_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    extras = serializers.DecimalField(max_digits=10, decimal_places=2, required=False,
                                      default=Decimal('0'), min_value=Decimal('0'))
    discount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False,
                                        default=Decimal('0'), min_value=Decimal('0'))
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_bike_id(self, value):
        try:
            return Bike.objects.select_related('partner').get(uuid_id=value, is_active=True)
        except Bike.DoesNotExist:
            raise serializers.ValidationError("Bike not found.")

    def validate_dropoff_partner_id(self, value):
        if value is None:
            return None
        try:
            return Partner.objects.get(uuid_id=value)
        except Partner.DoesNotExist:
            raise serializers.ValidationError("Drop-off partner not found.")

    def validate(self, attrs):
        if attrs['end_date'] <= attrs['start_date']:
            raise serializers.ValidationError({'end_date': "End date must be after start date."})
        return attrs


class BookingListSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source='uuid_id', read_only=True)
    bike = BookingBikeSummarySerializer(read_only=True)
    partner_name = serializers.CharField(source='partner.company_name', read_only=True)
    customer_name = serializers.CharField(source='customer.display_name', read_only=True)
    is_rejected = serializers.BooleanField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id',
            'booking_number',
            'bike',
            'partner_name',
            'customer_name',
            'package',
            'start_date',
            'end_date',
            'total',
            'currency',
            'status',
            'payment_status',
            'is_rejected',
            'created_at',
        ]
        read_only_fields = fields


class BookingSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source='uuid_id', read_only=True)
    bike = BookingBikeSummarySerializer(read_only=True)
    partner = BookingPartnerSummarySerializer(read_only=True)
    dropoff_partner = BookingPartnerSummarySerializer(read_only=True)
    customer = BookingCustomerSummarySerializer(read_only=True)
    payment_summary = serializers.SerializerMethodField()
    has_review = serializers.SerializerMethodField()
    is_rejected = serializers.BooleanField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id',
            'booking_number',
            'customer',
            'bike',
            'partner',
            'dropoff_partner',
            'package',
            'days',
            'start_date',
            'end_date',
            'pickup_location',
            'dropoff_location',
            'base_price',
            'insurance',
            'extras',
            'discount',
            'total',
            'currency',
            'additional_charges',
            'status',
            'payment_status',
            'payment_summary',
            'notes',
            'cancellation_reason',
            'is_rejected',
            'has_review',
            'created_at',
            'updated_at',
            'confirmed_at',
            'activated_at',
            'completed_at',
            'cancelled_at',
            'rejected_at',
        ]
        read_only_fields = fields

    def get_payment_summary(self, obj):
        return {
            'initial_amount': str(obj.initial_payment_amount),
            'remaining_amount': str(obj.remaining_payment_amount),
            'additional_charges_total': str(obj.additional_charges_total),
            'initial_paid': obj.initial_paid,
            'remaining_paid': obj.remaining_paid,
            'next_payment_due': obj.next_payment_due,
        }

    def get_has_review(self, obj):
        return Review.objects.filter(booking=obj).exists()


class BookingActionSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='', max_length=1000)


class BookingAuditLogSerializer(serializers.ModelSerializer):
    user_email = serializers.EmailField(source='user.email', read_only=True, default=None)

    class Meta:
        model = BookingAuditLog
        fields = ['id', 'action', 'user_email', 'details', 'ip_address', 'created_at']
        read_only_fields = fields


class AdminBookingSerializer(BookingSerializer):
    audit_logs = BookingAuditLogSerializer(many=True, read_only=True)

    class Meta(BookingSerializer.Meta):
        fields = BookingSerializer.Meta.fields + ['audit_logs']
        read_only_fields = fields


class AdminBookingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[
        Booking.STATUS_CONFIRMED,
        Booking.STATUS_ACTIVE,
        Booking.STATUS_COMPLETED,
        Booking.STATUS_CANCELLED,
    ])
    reason = serializers.CharField(required=False, allow_blank=True, default='Admin action')


class ReviewSerializer(serializers.ModelSerializer):
    booking_number = serializers.CharField(source='booking.booking_number', read_only=True)
    customer_name = serializers.CharField(source='customer.display_name', read_only=True)
    bike_id = serializers.UUIDField(source='bike.uuid_id', read_only=True)
    partner_id = serializers.UUIDField(source='partner.uuid_id', read_only=True)

    class Meta:
        model = Review
        fields = [
            'id',
            'booking_number',
            'customer_name',
            'bike_id',
            'partner_id',
            'rating',
            'comment',
            'status',
            'created_at',
        ]
        read_only_fields = fields


class ReviewCreateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(required=False, allow_blank=True, default='', max_length=2000)


class ReviewModerationSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Review.STATUS_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
