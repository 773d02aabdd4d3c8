# apps/bikes/serializers.py
"""
Serializers for Bike and Location models.

Includes:
- BikeListSerializer: Compact listing card
- BikeSerializer: Full detail with partner summary
- BikeWriteSerializer: Partner create/update
- BikeAvailabilitySerializer: Availability toggle with reason
- BikeSearchSerializer: Query parameter validation for search
- DateRangeSerializer / QuoteRequestSerializer: Availability check and price quote
- LocationSerializer
"""
from decimal import Decimal
from rest_framework import serializers

from apps.common.enums import BIKE_TYPES, BIKE_CONDITIONS, RENTAL_PACKAGES, as_choices
from .models import Bike, Location

SPECIFICATION_KEYS = {
    'frame_size', 'gears', 'weight', 'max_rider_weight',
    'brake_type', 'tire_size', 'gear_system', 'age_restriction',
}


class BikePartnerSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField(source='uuid_id', read_only=True)
    company_name = serializers.CharField(read_only=True)
    rating = serializers.DecimalField(max_digits=3, decimal_places=2, read_only=True)
    city = serializers.CharField(read_only=True)
    contact_phone = serializers.CharField(read_only=True)
    is_verified = serializers.BooleanField(read_only=True)


class BikeListSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source='uuid_id', read_only=True)
    partner_id = serializers.UUIDField(source='partner.uuid_id', read_only=True)
    partner_name = serializers.CharField(source='partner.company_name', read_only=True)
    image = serializers.SerializerMethodField()

    class Meta:
        model = Bike
        fields = [
            'id',
            'name',
            'bike_type',
            'location',
            'price_per_day',
            'price_per_week',
            'price_per_month',
            'currency',
            'image',
            'condition',
            'rating',
            'review_count',
            'is_available',
            'partner_id',
            'partner_name',
        ]
        read_only_fields = fields

    def get_image(self, obj):
        return obj.images[0] if obj.images else None


class BikeSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source='uuid_id', read_only=True)
    partner = BikePartnerSummarySerializer(read_only=True)

    class Meta:
        model = Bike
        fields = [
            'id',
            'partner',
            'name',
            'bike_type',
            'description',
            'location',
            'latitude',
            'longitude',
            'price_per_day',
            'price_per_week',
            'price_per_month',
            'currency',
            'features',
            'specifications',
            'images',
            'is_available',
            'unavailable_reason',
            'unavailable_dates',
            'condition',
            'rating',
            'review_count',
            'is_active',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class BikeWriteSerializer(serializers.ModelSerializer):
    """Create/update payload for partners. Unknown specification keys are rejected."""

    images = serializers.ListField(child=serializers.URLField(), required=False, max_length=10)
    features = serializers.ListField(child=serializers.CharField(max_length=60), required=False)

    class Meta:
        model = Bike
        fields = [
            'name',
            'bike_type',
            'description',
            'location',
            'latitude',
            'longitude',
            'price_per_day',
            'price_per_week',
            'price_per_month',
            'features',
            'specifications',
            'images',
            'condition',
        ]

    def validate_specifications(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Specifications must be an object.")
        unknown = set(value) - SPECIFICATION_KEYS
        if unknown:
            raise serializers.ValidationError(f"Unknown specification keys: {', '.join(sorted(unknown))}.")
        return value

    def validate_location(self, value):
        location = Location.objects.filter(name__iexact=value.strip()).first()
        if location is None:
            raise serializers.ValidationError(f"Unknown location '{value}'.")
        return location.name

    def validate(self, attrs):
        per_day = attrs.get('price_per_day', getattr(self.instance, 'price_per_day', None))
        per_week = attrs.get('price_per_week')
        per_month = attrs.get('price_per_month')
        if per_day and per_week and per_week > per_day * 7:
            raise serializers.ValidationError({'price_per_week': "Weekly price cannot exceed 7 daily rentals."})
        if per_day and per_month and per_month > per_day * 30:
            raise serializers.ValidationError({'price_per_month': "Monthly price cannot exceed 30 daily rentals."})
        return attrs


class BikeAvailabilitySerializer(serializers.Serializer):
    is_available = serializers.BooleanField()
    reason = serializers.CharField(required=False, allow_blank=True, default='', max_length=255)
    unavailable_dates = serializers.ListField(child=serializers.DateField(), required=False)


class DateRangeSerializer(serializers.Serializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField()

    def validate(self, attrs):
        if attrs['end_date'] <= attrs['start_date']:
            raise serializers.ValidationError({'end_date': "End date must be after start date."})
        return attrs


class QuoteRequestSerializer(DateRangeSerializer):
    package = serializers.ChoiceField(choices=as_choices(RENTAL_PACKAGES))


class QuoteResponseSerializer(serializers.Serializer):
    package = serializers.CharField()
    days = serializers.IntegerField()
    base_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    insurance = serializers.DecimalField(max_digits=12, decimal_places=2)
    extras = serializers.DecimalField(max_digits=12, decimal_places=2)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    initial_payment = serializers.DecimalField(max_digits=12, decimal_places=2)
    remaining_payment = serializers.DecimalField(max_digits=12, decimal_places=2)
    currency = serializers.CharField()


class BikeSearchSerializer(serializers.Serializer):
    SORT_CHOICES = ('price-asc', 'price-desc', 'rating', 'newest')

    type = serializers.ChoiceField(choices=as_choices(BIKE_TYPES), required=False)
    location = serializers.CharField(required=False)
    partner = serializers.UUIDField(required=False)
    condition = serializers.ChoiceField(choices=as_choices(BIKE_CONDITIONS), required=False)
    q = serializers.CharField(required=False)
    min_price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, min_value=Decimal('0'))
    max_price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, min_value=Decimal('0'))
    available = serializers.BooleanField(required=False, allow_null=True, default=None)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    sort = serializers.ChoiceField(choices=SORT_CHOICES, required=False)

    def validate(self, attrs):
        if bool(attrs.get('start_date')) != bool(attrs.get('end_date')):
            raise serializers.ValidationError("start_date and end_date must be provided together.")
        if attrs.get('start_date') and attrs['end_date'] <= attrs['start_date']:
            raise serializers.ValidationError({'end_date': "End date must be after start date."})
        min_price, max_price = attrs.get('min_price'), attrs.get('max_price')
        if min_price is not None and max_price is not None and min_price > max_price:
            raise serializers.ValidationError({'min_price': "min_price cannot exceed max_price."})
        return attrs


class LocationSerializer(serializers.ModelSerializer):
    bike_count = serializers.IntegerField(read_only=True)
    partner_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Location
        fields = [
            'id',
            'name',
            'region',
            'description',
            'latitude',
            'longitude',
            'popular',
            'image',
            'bike_count',
            'partner_count',
            'created_at',
        ]
        read_only_fields = ['id', 'bike_count', 'partner_count', 'created_at']
