# apps/partners/serializers.py
"""
Serializers for Partner model.

Provides:
- PartnerListSerializer: Compact public listing
- PartnerSerializer: Public detail
- PartnerOwnerSerializer: Detail for the owner/admin (bank + earnings)
- PartnerRegisterSerializer / PartnerUpdateSerializer: Write serializers
- BankDetailsSerializer, AdminPartnerVerifySerializer, AdminPartnerStatusSerializer
"""
import re
from rest_framework import serializers

from apps.common.enums import DAYS_OF_WEEK
from .models import Partner

TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')
VALID_DAYS = {day['value'] for day in DAYS_OF_WEEK}


def validate_business_hours_value(value):
    if not isinstance(value, dict):
        raise serializers.ValidationError("Business hours must be an object keyed by weekday.")
    for day, hours in value.items():
        if day not in VALID_DAYS:
            raise serializers.ValidationError(f"Unknown day '{day}'.")
        if not isinstance(hours, dict):
            raise serializers.ValidationError(f"Hours for {day} must be an object.")
        if hours.get('closed'):
            continue
        open_time, close_time = hours.get('open', ''), hours.get('close', '')
        if not TIME_PATTERN.match(open_time or '') or not TIME_PATTERN.match(close_time or ''):
            raise serializers.ValidationError(f"Hours for {day} must use HH:MM format.")
        if open_time >= close_time:
            raise serializers.ValidationError(f"Opening time must be before closing time on {day}.")
    return value


class PartnerListSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source='uuid_id', read_only=True)
    is_verified = serializers.BooleanField(read_only=True)
    bike_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Partner
        fields = [
            'id',
            'company_name',
            'category',
            'tagline',
            'logo',
            'city',
            'location',
            'latitude',
            'longitude',
            'rating',
            'review_count',
            'bike_count',
            'is_verified',
        ]
        read_only_fields = fields


class PartnerSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source='uuid_id', read_only=True)
    is_verified = serializers.BooleanField(read_only=True)
    bike_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Partner
        fields = [
            'id',
            'company_name',
            'category',
            'description',
            'tagline',
            'logo',
            'images',
            'specialties',
            'features',
            'years_active',
            'location',
            'address',
            'city',
            'latitude',
            'longitude',
            'map_location',
            'contact_email',
            'contact_phone',
            'website',
            'business_hours',
            'rating',
            'review_count',
            'bike_count',
            'status',
            'is_verified',
            'created_at',
        ]
        read_only_fields = fields


class PartnerOwnerSerializer(PartnerSerializer):
    """Adds private fields visible to the owner and admins."""

    earnings = serializers.SerializerMethodField()
    owner_email = serializers.EmailField(source='user.email', read_only=True)

    class Meta(PartnerSerializer.Meta):
        fields = PartnerSerializer.Meta.fields + [
            'owner_email',
            'verification_status',
            'verification_documents',
            'verification_notes',
            'verified_at',
            'bank_name',
            'bank_account_number',
            'bank_account_holder',
            'bank_branch_code',
            'earnings',
        ]
        read_only_fields = fields

    def get_earnings(self, obj):
        return {key: str(value) for key, value in obj.get_earnings_summary().items()}


class PartnerWriteMixin:
    def validate_business_hours(self, value):
        return validate_business_hours_value(value)

    def validate(self, attrs):
        lat, lng = attrs.get('latitude'), attrs.get('longitude')
        if (lat is None) != (lng is None) and self.instance is None:
            raise serializers.ValidationError("Latitude and longitude must be provided together.")
        if lat is not None and not -90 <= lat <= 90:
            raise serializers.ValidationError({'latitude': "Latitude must be between -90 and 90."})
        if lng is not None and not -180 <= lng <= 180:
            raise serializers.ValidationError({'longitude': "Longitude must be between -180 and 180."})
        return attrs


class PartnerRegisterSerializer(PartnerWriteMixin, serializers.ModelSerializer):
    class Meta:
        model = Partner
        fields = [
            'company_name',
            'category',
            'description',
            'tagline',
            'logo',
            'images',
            'specialties',
            'features',
            'years_active',
            'location',
            'address',
            'city',
            'latitude',
            'longitude',
            'map_location',
            'contact_email',
            'contact_phone',
            'website',
            'business_hours',
            'verification_documents',
        ]
        extra_kwargs = {'company_name': {'required': True}}


class PartnerUpdateSerializer(PartnerRegisterSerializer):
    class Meta(PartnerRegisterSerializer.Meta):
        extra_kwargs = {'company_name': {'required': False}}


class BankDetailsSerializer(serializers.Serializer):
    bank_name = serializers.CharField(max_length=120)
    bank_account_number = serializers.CharField(max_length=50)
    bank_account_holder = serializers.CharField(max_length=120)
    bank_branch_code = serializers.CharField(max_length=30, required=False, allow_blank=True, default='')

    def validate_bank_account_number(self, value):
        digits = value.replace(' ', '').replace('-', '')
        if not digits.isdigit() or not 6 <= len(digits) <= 20:
            raise serializers.ValidationError("Account number must contain 6 to 20 digits.")
        return digits


class AdminPartnerVerifySerializer(serializers.Serializer):
    ACTION_CHOICES = ('verify', 'reject')

    action = serializers.ChoiceField(choices=ACTION_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class AdminPartnerStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Partner.STATUS_CHOICES)
