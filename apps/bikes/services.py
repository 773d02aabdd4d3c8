# apps/bikes/services.py
"""
Business logic for bike listings.

Provides:
- Partner CRUD on own bikes (soft delete)
- Availability toggling and date-range availability checks
- Search with filters and ordering
- Price quotes
"""
import logging
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from .models import Bike, RENTED_REASON_PREFIX, dates_in_range

logger = logging.getLogger(__name__)


class BikeService:
    """Service class for bike-related business logic."""

    SORT_OPTIONS = {
        'price-asc': ('price_per_day',),
        'price-desc': ('-price_per_day',),
        'rating': ('-rating', '-review_count'),
        'newest': ('-created_at',),
    }

    @staticmethod
    def _ensure_can_manage(bike, user):
        if bike.partner.user_id != user.id and not user.is_admin_user:
            raise PermissionError("You can only manage your own bikes.")

    @staticmethod
    def create_bike(partner, **data):
        """
        List a new bike for a partner.

        Raises:
            ValueError: If the partner is not active
        """
        if not partner.is_active:
            raise ValueError("Only active partners can list bikes.")

        bike = Bike(partner=partner, **data)
        bike.full_clean()
        bike.save()

        logger.info(f"[BIKE_CREATED] bike={bike.uuid_id} partner={partner.uuid_id} name={bike.name}")
        return bike

    @staticmethod
    def update_bike(bike, user, **data):
        """
        Raises:
            PermissionError: If the user does not own the bike
        """
        BikeService._ensure_can_manage(bike, user)

        for field, value in data.items():
            setattr(bike, field, value)
        bike.full_clean()
        bike.save()

        logger.info(f"Bike {bike.uuid_id} updated by {user.email}: {sorted(data)}")
        return bike

    @staticmethod
    def deactivate_bike(bike, user):
        """Soft delete: the bike disappears from listings but bookings keep their reference."""
        BikeService._ensure_can_manage(bike, user)

        bike.is_active = False
        bike.save(update_fields=['is_active', 'updated_at'])

        logger.info(f"[BIKE_DEACTIVATED] bike={bike.uuid_id} by={user.email}")
        return bike

    @staticmethod
    def set_availability(bike, user, is_available, reason='', unavailable_dates=None):
        """
        Toggle availability with a reason, optionally replacing the blocked dates.

        Raises:
            PermissionError: If the user does not own the bike
            ValueError: If the bike is being marked unavailable without a reason
        """
        BikeService._ensure_can_manage(bike, user)

        if not is_available and not reason:
            raise ValueError("A reason is required when marking a bike unavailable.")

        with transaction.atomic():
            if unavailable_dates is not None:
                bike.unavailable_dates = [d.isoformat() for d in sorted(set(unavailable_dates))]
                bike.save(update_fields=['unavailable_dates', 'updated_at'])
            bike.set_availability(is_available, reason)

        logger.info(
            f"[BIKE_AVAILABILITY] bike={bike.uuid_id} available={is_available} "
            f"reason={reason!r} by={user.email}"
        )

        try:
            from apps.notifications.events import RealtimeEventService
            RealtimeEventService.publish_bike_availability_changed(bike, source_user=user)
        except ImportError:
            pass

        return bike

    @staticmethod
    def find_conflicting_bookings(bike, start_date, end_date, exclude_booking_id=None):
        """Confirmed or active bookings of the bike overlapping [start_date, end_date)."""
        from apps.bookings.models import Booking

        queryset = Booking.objects.filter(
            bike=bike,
            status__in=Booking.BLOCKING_STATUSES,
            start_date__lt=end_date,
            end_date__gt=start_date,
        )
        if exclude_booking_id:
            queryset = queryset.exclude(id=exclude_booking_id)
        return queryset

    @staticmethod
    def check_availability(bike, start_date, end_date, exclude_booking_id=None):
        """
        Check whether a bike can be rented for a date range.

        Returns:
            tuple: (available: bool, reason: str)
        """
        if end_date <= start_date:
            return False, "End date must be after start date."

        if start_date < timezone.localdate():
            return False, "Start date cannot be in the past."

        if not bike.is_active:
            return False, "This bike is no longer listed."

        if not bike.partner.is_active:
            return False, "This bike's partner is not accepting bookings."

        if not bike.is_available and not bike.is_rented:
            reason = bike.unavailable_reason or "not available"
            return False, f"This bike is currently unavailable: {reason}."

        blocked = bike.blocked_dates_between(start_date, end_date)
        if blocked:
            dates = ', '.join(d.isoformat() for d in blocked)
            return False, f"This bike is unavailable on: {dates}."

        if BikeService.find_conflicting_bookings(bike, start_date, end_date, exclude_booking_id).exists():
            return False, "This bike is already booked for the selected dates."

        return True, "Bike is available."

    @staticmethod
    def quote(bike, package, start_date, end_date, extras=0, discount=0):
        """
        Price quote for a bike.

        Raises:
            ValueError: If the package or dates are invalid
        """
        from apps.bookings.pricing import calculate_booking_price

        if end_date <= start_date:
            raise ValueError("End date must be after start date.")

        return calculate_booking_price(bike, package, start_date, end_date, extras=extras, discount=discount)

    @classmethod
    def search(cls, params):
        """
        Search active bikes.

        Supported params: type, location, min_price, max_price, partner,
        q, condition, available (true|false), start_date/end_date
        (exclude bikes booked or blocked in that range), sort.
        """
        queryset = Bike.objects.filter(is_active=True).select_related('partner')

        bike_type = params.get('type')
        if bike_type:
            queryset = queryset.filter(bike_type=bike_type)

        location = params.get('location')
        if location:
            queryset = queryset.filter(location__iexact=location)

        partner = params.get('partner')
        if partner:
            queryset = queryset.filter(partner__uuid_id=partner)

        condition = params.get('condition')
        if condition:
            queryset = queryset.filter(condition=condition)

        q = params.get('q')
        if q:
            queryset = queryset.filter(Q(name__icontains=q) | Q(description__icontains=q))

        min_price = params.get('min_price')
        if min_price is not None:
            queryset = queryset.filter(price_per_day__gte=min_price)

        max_price = params.get('max_price')
        if max_price is not None:
            queryset = queryset.filter(price_per_day__lte=max_price)

        available = params.get('available')
        if available is True:
            queryset = queryset.filter(is_available=True, partner__status='active')
        elif available is False:
            queryset = queryset.filter(is_available=False)

        start_date, end_date = params.get('start_date'), params.get('end_date')
        if start_date and end_date:
            from apps.bookings.models import Booking

            booked_ids = Booking.objects.filter(
                status__in=Booking.BLOCKING_STATUSES,
                start_date__lt=end_date,
                end_date__gt=start_date,
            ).values_list('bike_id', flat=True)
            queryset = queryset.filter(
                Q(is_available=True) | Q(unavailable_reason__startswith=RENTED_REASON_PREFIX)
            ).exclude(id__in=booked_ids)
            # JSON date lists cannot be range-filtered portably
            blocked_ids = [
                bike_id for bike_id, dates in queryset.values_list('id', 'unavailable_dates')
                if dates and dates_in_range(dates, start_date, end_date)
            ]
            if blocked_ids:
                queryset = queryset.exclude(id__in=blocked_ids)

        ordering = cls.SORT_OPTIONS.get(params.get('sort'), ('-rating', '-created_at'))
        return queryset.order_by(*ordering)
