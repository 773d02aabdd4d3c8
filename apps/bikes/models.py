# apps/bikes/models.py
"""
Bike listings and rental locations.

Models:
- Location: A named rental area (bike and partner counts are derived)
- Bike: A bike listed by a partner with day/week/month pricing

A bike is bookable only while it is active, marked available and its
partner is active. Dates listed in unavailable_dates block bookings.
While a booking is active the bike carries a "Currently rented" flag that
only describes the current rental; overlapping dates are guarded by bookings.
"""
from datetime import date, timedelta
from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
import uuid

from apps.common.enums import BIKE_TYPES, BIKE_CONDITIONS, as_choices

RENTED_REASON_PREFIX = 'Currently rented'


def dates_in_range(iso_dates, start_date, end_date):
    """Return the dates from `iso_dates` falling in [start_date, end_date), sorted."""
    blocked = {date.fromisoformat(str(value)) for value in iso_dates or []}
    hits = []
    day = start_date
    while day < end_date:
        if day in blocked:
            hits.append(day)
        day += timedelta(days=1)
    return hits


class Location(models.Model):
    """
    Named rental area. Bikes reference it by name through Bike.location.
    """

    name = models.CharField(max_length=120, unique=True)
    region = models.CharField(max_length=120, blank=True, default='', db_index=True)
    description = models.TextField(blank=True, default='')
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    popular = models.BooleanField(default=False, db_index=True)
    image = models.URLField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    def _active_bikes(self):
        return Bike.objects.filter(location__iexact=self.name, is_active=True)

    @property
    def bike_count(self):
        return self._active_bikes().count()

    @property
    def partner_count(self):
        return self._active_bikes().values('partner').distinct().count()


class Bike(models.Model):
    """
    A bike listed for rent by a partner.

    Pricing:
        price_per_day is required; weekly and monthly prices are optional
        and fall back to multiples of the daily price when quoting.
    """

    CONDITION_EXCELLENT = 'excellent'
    CONDITION_GOOD = 'good'
    CONDITION_FAIR = 'fair'

    uuid_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        db_index=True,
        help_text='UUID for API-safe exposure'
    )

    partner = models.ForeignKey(
        'partners.Partner',
        on_delete=models.CASCADE,
        related_name='bikes'
    )

    name = models.CharField(max_length=150)
    bike_type = models.CharField(max_length=20, choices=as_choices(BIKE_TYPES), db_index=True)
    description = models.TextField(blank=True, default='')

    # Location name, matches Location.name
    location = models.CharField(max_length=120, db_index=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    # ========== PRICING ==========
    price_per_day = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    price_per_week = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    price_per_month = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.01'))]
    )

    features = models.JSONField(default=list, blank=True)
    specifications = models.JSONField(
        default=dict,
        blank=True,
        help_text='frame_size, gears, weight, max_rider_weight, brake_type, tire_size'
    )
    images = models.JSONField(default=list, blank=True, help_text='Image URLs')

    # ========== AVAILABILITY ==========
    is_available = models.BooleanField(default=True, db_index=True)
    unavailable_reason = models.CharField(max_length=255, blank=True, default='')
    unavailable_dates = models.JSONField(default=list, blank=True, help_text='ISO dates (YYYY-MM-DD)')
    condition = models.CharField(
        max_length=20,
        choices=as_choices(BIKE_CONDITIONS),
        default=CONDITION_GOOD
    )

    rating = models.DecimalField(max_digits=3, decimal_places=2, default=Decimal('0.00'))
    review_count = models.PositiveIntegerField(default=0)

    # Soft delete flag
    is_active = models.BooleanField(default=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['partner', 'is_active']),
            models.Index(fields=['location', 'bike_type']),
            models.Index(fields=['price_per_day']),
        ]

    def __str__(self):
        return f"{self.name} ({self.partner.company_name})"

    def clean(self):
        for value in self.unavailable_dates or []:
            try:
                date.fromisoformat(str(value))
            except ValueError:
                raise ValidationError(f"Invalid unavailable date '{value}', expected YYYY-MM-DD.")

    @property
    def currency(self):
        return settings.BOOKING_CURRENCY

    @property
    def is_rented(self):
        """Unavailable only because a booking is in progress."""
        return not self.is_available and self.unavailable_reason.startswith(RENTED_REASON_PREFIX)

    @property
    def is_bookable(self):
        """
        Active, owned by an active partner and not withdrawn by the partner.
        A bike out on rent can still take bookings for later dates.
        """
        return self.is_active and (self.is_available or self.is_rented) and self.partner.is_active

    def mark_rented(self, booking_number):
        return self.set_availability(False, f"{RENTED_REASON_PREFIX} ({booking_number})")

    def release_rental(self):
        if self.is_rented:
            self.set_availability(True)
            return True
        return False

    def blocked_dates_between(self, start_date, end_date):
        """
        Return the unavailable dates that fall inside a rental period.

        The rental occupies start_date up to, but not including, end_date.
        """
        return dates_in_range(self.unavailable_dates, start_date, end_date)

    def set_availability(self, is_available, reason=''):
        self.is_available = is_available
        self.unavailable_reason = '' if is_available else reason
        self.save(update_fields=['is_available', 'unavailable_reason', 'updated_at'])
        return self
