# apps/payments/serializers.py
"""
Serializers for payment and ledger API endpoints.
"""

from decimal import Decimal
from rest_framework import serializers

from apps.bookings.models import Booking
from apps.common.enums import CARD_BRANDS, PAYMENT_METHODS, ADDITIONAL_CHARGE_TYPES, as_choices
from apps.partners.models import Partner
from .models import Payment, PartnerTransaction, PaymentMethod, TransactionType


class PaymentSerializer(serializers.ModelSerializer):
    """Serializer for payment records."""

    id = serializers.UUIDField(source='uuid_id', read_only=True)
    booking_id = serializers.UUIDField(source='booking.uuid_id', read_only=True)
    booking_number = serializers.CharField(source='booking.booking_number', read_only=True)
    customer_email = serializers.EmailField(source='customer.email', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Payment
        fields = [
            'id',
            'booking_id',
            'booking_number',
            'customer_email',
            'installment',
            'amount',
            'currency',
            'method',
            'status',
            'status_display',
            'transaction_id',
            'additional_charges',
            'paid_at',
            'refunded_at',
            'refund_amount',
            'refund_reason',
            'created_at',
        ]
        read_only_fields = fields


class PaymentCreateSerializer(serializers.Serializer):
    """
    Required fields:
    - booking_id: UUID of the booking
    - installment: initial | remaining | full
    - method: card | cash | bank_transfer | online, or
    - payment_method_id: UUID of one of the customer's saved methods
    """

    booking_id = serializers.UUIDField()
    installment = serializers.ChoiceField(choices=Payment.INSTALLMENT_CHOICES)
    method = serializers.ChoiceField(choices=as_choices(PAYMENT_METHODS), required=False)
    payment_method_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    transaction_id = serializers.CharField(max_length=64, required=False, allow_blank=True, default='')

    def validate_booking_id(self, value):
        try:
            return Booking.objects.select_related('partner', 'dropoff_partner').get(uuid_id=value)
        except Booking.DoesNotExist:
            raise serializers.ValidationError("Booking not found.")

    def validate_payment_method_id(self, value):
        if value is None:
            return None
        user = self.context['request'].user
        try:
            saved = PaymentMethod.objects.get(uuid_id=value, user=user)
        except PaymentMethod.DoesNotExist:
            raise serializers.ValidationError("Saved payment method not found.")
        if saved.is_expired:
            raise serializers.ValidationError("This card has expired.")
        return saved

    def validate_transaction_id(self, value):
        if value and Payment.objects.filter(transaction_id=value).exists():
            raise serializers.ValidationError("A payment with this transaction id already exists.")
        return value

    def validate(self, attrs):
        saved = attrs.get('payment_method_id')
        if saved is not None:
            attrs['method'] = saved.payment_method_value
        elif not attrs.get('method'):
            raise serializers.ValidationError({'method': "Choose a payment method or a saved one."})
        return attrs


class AdditionalChargeSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=as_choices(ADDITIONAL_CHARGE_TYPES))
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    description = serializers.CharField(required=False, allow_blank=True, default='', max_length=500)


class AdditionalChargesSerializer(serializers.Serializer):
    charges = AdditionalChargeSerializer(many=True, allow_empty=False)


class RefundSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000)
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True,
        default=None, min_value=Decimal('0.01')
    )


class PartnerTransactionSerializer(serializers.ModelSerializer):
    """Serializer for ledger history."""

    partner_id = serializers.UUIDField(source='partner.uuid_id', read_only=True, default=None)
    partner_name = serializers.CharField(source='partner.company_name', read_only=True, default=None)
    booking_number = serializers.CharField(source='booking.booking_number', read_only=True, default=None)
    payment_transaction_id = serializers.CharField(source='payment.transaction_id', read_only=True, default=None)
    transaction_type_display = serializers.CharField(source='get_transaction_type_display', read_only=True)

    class Meta:
        model = PartnerTransaction
        fields = [
            'id',
            'partner_id',
            'partner_name',
            'booking_number',
            'payment_transaction_id',
            'transaction_type',
            'transaction_type_display',
            'category',
            'amount',
            'status',
            'description',
            'created_at',
        ]
        read_only_fields = fields


class ManualTransactionSerializer(serializers.Serializer):
    partner_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    transaction_type = serializers.ChoiceField(
        choices=[choice for choice in TransactionType.CHOICES if choice[0] in TransactionType.MANUAL_TYPES]
    )
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    description = serializers.CharField(max_length=500)

    def validate_partner_id(self, value):
        if value is None:
            return None
        try:
            return Partner.objects.get(uuid_id=value)
        except Partner.DoesNotExist:
            raise serializers.ValidationError("Partner not found.")


class EarningsSummarySerializer(serializers.Serializer):
    total_earnings = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_paid = serializers.DecimalField(max_digits=12, decimal_places=2)
    pending_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    owner_earnings = serializers.DecimalField(max_digits=12, decimal_places=2)
    pickup_earnings = serializers.DecimalField(max_digits=12, decimal_places=2)


class PaymentMethodSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source='uuid_id', read_only=True)
    brand_display = serializers.CharField(source='get_brand_display', read_only=True)
    is_expired = serializers.BooleanField(read_only=True)

    class Meta:
        model = PaymentMethod
        fields = [
            'id',
            'brand',
            'brand_display',
            'last4',
            'expiry_month',
            'expiry_year',
            'is_default',
            'is_expired',
            'created_at',
        ]
        read_only_fields = fields


class PaymentMethodCreateSerializer(serializers.Serializer):
    brand = serializers.ChoiceField(choices=as_choices(CARD_BRANDS))
    last4 = serializers.RegexField(r'^\d{4}$', required=False, allow_blank=True, default='')
    expiry_month = serializers.IntegerField(min_value=1, max_value=12, required=False, allow_null=True, default=None)
    expiry_year = serializers.IntegerField(min_value=2000, max_value=2100, required=False, allow_null=True, default=None)
    provider_token = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    is_default = serializers.BooleanField(required=False, default=False)

    def validate(self, attrs):
        if attrs['brand'] != 'paypal':
            missing = [field for field in ('last4', 'expiry_month', 'expiry_year') if not attrs.get(field)]
            if missing:
                raise serializers.ValidationError({field: "Required for cards." for field in missing})
        return attrs
