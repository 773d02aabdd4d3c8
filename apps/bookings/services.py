# apps/bookings/services.py
"""
Business logic services for booking management.

Provides:
- Booking creation with availability and overlap checks
- Lifecycle actions (confirm, reject, activate, complete, cancel) with actor checks
- Admin status override
- Partner dashboard aggregation
- Reviews and rating recomputation
"""
import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import Avg, Count, Q, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone

from apps.bikes.models import Bike
from apps.bikes.services import BikeService
from .models import Booking, BookingAuditLog, Review
from .pricing import calculate_booking_price

logger = logging.getLogger(__name__)


def _notify(method_name, *args, **kwargs):
    """Call a NotificationService helper; delivery never breaks a booking action."""
    try:
        from apps.notifications.services import NotificationService
        getattr(NotificationService, method_name)(*args, **kwargs)
    except ImportError:
        pass
    except Exception as e:
        logger.error(f"[NOTIFY_ERROR] method={method_name} error={str(e)}")


class BookingService:
    """Service class for booking-related business logic."""

    # ========== CREATION ==========

    @staticmethod
    def create_booking(customer, bike, package, start_date, end_date, pickup_location='',
                       dropoff_location='', dropoff_partner=None, extras=0, discount=0,
                       notes='', request=None):
        """
        Create a booking request.

        Args:
            customer: User making the booking
            bike: Bike instance
            package: 'day' | 'week' | 'month'
            start_date, end_date: date objects, end after start
            dropoff_partner: Optional Partner the bike is returned to

        Returns:
            Booking instance in 'requested' status

        Raises:
            ValueError: If the bike cannot be booked for the period
            PermissionError: If the customer owns the bike's partner
        """
        if bike.partner.user_id == customer.id:
            raise PermissionError("You cannot book a bike from your own partner account.")

        if dropoff_partner is not None and not dropoff_partner.is_active:
            raise ValueError("The selected drop-off partner is not active.")

        pricing = calculate_booking_price(bike, package, start_date, end_date, extras=extras, discount=discount)

        with transaction.atomic():
            # Lock the bike so concurrent requests see each other's checks
            bike = Bike.objects.select_for_update().select_related('partner').get(pk=bike.pk)

            available, reason = BikeService.check_availability(bike, start_date, end_date)
            if not available:
                raise ValueError(reason)

            booking = Booking.objects.create(
                customer=customer,
                bike=bike,
                partner=bike.partner,
                dropoff_partner=dropoff_partner if dropoff_partner and dropoff_partner.id != bike.partner_id else None,
                package=package,
                start_date=start_date,
                end_date=end_date,
                pickup_location=pickup_location or bike.location,
                dropoff_location=dropoff_location or pickup_location or bike.location,
                base_price=pricing['base_price'],
                insurance=pricing['insurance'],
                extras=pricing['extras'],
                discount=pricing['discount'],
                total=pricing['total'],
                currency=pricing['currency'],
                notes=notes,
            )

            BookingAuditLog.log_action(
                booking=booking,
                user=customer,
                action=BookingAuditLog.ACTION_CREATED,
                details={
                    'package': package,
                    'start_date': start_date.isoformat(),
                    'end_date': end_date.isoformat(),
                    'total': str(booking.total),
                },
                request=request,
            )

        logger.info(
            f"[BOOKING_CREATED] booking={booking.booking_number} customer={customer.email} "
            f"bike={bike.uuid_id} partner={bike.partner.uuid_id} total={booking.total}"
        )

        _notify('notify_booking_created', booking)
        return booking

    # ========== LIFECYCLE ==========

    @staticmethod
    def _is_owner(booking, user):
        return booking.partner.user_id == user.id

    @staticmethod
    def confirm_booking(booking, user, request=None):
        """
        Owner partner accepts a request.

        The overlap check is repeated under a row lock so two requests for the
        same dates can never both be confirmed.

        Raises:
            PermissionError: If user is not the owner partner or an admin
            ValueError: If the dates are no longer free
        """
        if not BookingService._is_owner(booking, user) and not user.is_admin_user:
            raise PermissionError("Only the bike owner can accept this booking.")

        with transaction.atomic():
            Bike.objects.select_for_update().get(pk=booking.bike_id)
            booking = Booking.objects.select_for_update().get(pk=booking.pk)

            # Double-check status hasn't changed
            if booking.status != Booking.STATUS_REQUESTED:
                raise ValueError(f"Booking status changed to '{booking.status}'.")

            conflicts = BikeService.find_conflicting_bookings(
                booking.bike, booking.start_date, booking.end_date, exclude_booking_id=booking.id
            )
            if conflicts.exists():
                raise ValueError("This bike is already booked for the selected dates.")

            booking.confirm()
            BookingAuditLog.log_action(booking, user, BookingAuditLog.ACTION_CONFIRMED, request=request)

        logger.info(f"[BOOKING_CONFIRMED] booking={booking.booking_number} by={user.email}")

        _notify('notify_booking_accepted', booking)
        return booking

    @staticmethod
    def reject_booking(booking, user, reason='', request=None):
        """
        Raises:
            PermissionError: If user is not the owner partner or an admin
        """
        if not BookingService._is_owner(booking, user) and not user.is_admin_user:
            raise PermissionError("Only the bike owner can reject this booking.")

        booking.reject(reason=reason)

        BookingAuditLog.log_action(
            booking, user, BookingAuditLog.ACTION_REJECTED, details={'reason': reason}, request=request
        )
        logger.info(f"[BOOKING_REJECTED] booking={booking.booking_number} by={user.email}")

        _notify('notify_booking_rejected', booking)
        return booking

    @staticmethod
    def activate_booking(booking, user, request=None):
        """
        Mark the bike as picked up.

        Raises:
            PermissionError: If user is not the owner partner or an admin
        """
        if not BookingService._is_owner(booking, user) and not user.is_admin_user:
            raise PermissionError("Only the bike owner can hand over the bike.")

        booking.activate()

        BookingAuditLog.log_action(booking, user, BookingAuditLog.ACTION_ACTIVATED, request=request)
        logger.info(f"[BOOKING_ACTIVATED] booking={booking.booking_number} by={user.email}")

        _notify('notify_booking_activated', booking)
        return booking

    @staticmethod
    def complete_booking(booking, user, request=None):
        """
        Mark the bike as returned.

        Raises:
            PermissionError: If user is neither owner, drop-off partner nor admin
        """
        if not booking.is_partner_party(user) and not user.is_admin_user:
            raise PermissionError("Only the owner or drop-off partner can complete this booking.")

        booking.complete()

        BookingAuditLog.log_action(booking, user, BookingAuditLog.ACTION_COMPLETED, request=request)
        logger.info(f"[BOOKING_COMPLETED] booking={booking.booking_number} by={user.email}")

        _notify('notify_booking_completed', booking)
        return booking

    @staticmethod
    def cancel_booking(booking, user, reason='', request=None):
        """
        Cancel a requested or confirmed booking.

        Raises:
            PermissionError: If user is not the customer, owner partner or an admin
        """
        is_customer = booking.customer_id == user.id
        if not (is_customer or BookingService._is_owner(booking, user) or user.is_admin_user):
            raise PermissionError("You cannot cancel this booking.")

        booking.cancel(reason=reason, cancelled_by=user)
        # Completed payments are refunded by a post_save receiver
        booking.refresh_from_db(fields=['payment_status'])

        BookingAuditLog.log_action(
            booking, user, BookingAuditLog.ACTION_CANCELLED, details={'reason': reason}, request=request
        )
        logger.info(f"[BOOKING_CANCELLED] booking={booking.booking_number} by={user.email} reason={reason!r}")

        _notify('notify_booking_cancelled', booking, cancelled_by=user)
        return booking

    @staticmethod
    def admin_set_status(booking, admin_user, new_status, reason='', request=None):
        """
        Admin override: move a booking along the state machine without the
        actor or payment checks of the regular actions.

        Raises:
            ValidationError: If the transition is not allowed
        """
        from django.core.exceptions import ValidationError

        original_status = booking.status
        booking._validate_transition(new_status)

        now = timezone.now()
        timestamp_field = {
            Booking.STATUS_CONFIRMED: 'confirmed_at',
            Booking.STATUS_ACTIVE: 'activated_at',
            Booking.STATUS_COMPLETED: 'completed_at',
            Booking.STATUS_CANCELLED: 'cancelled_at',
        }.get(new_status)
        if timestamp_field is None:
            raise ValidationError(f"Cannot set status '{new_status}'.")

        booking.status = new_status
        setattr(booking, timestamp_field, now)
        update_fields = ['status', timestamp_field, 'updated_at']
        if new_status == Booking.STATUS_CANCELLED:
            booking.cancellation_reason = f"[Admin] {reason}".strip()
            booking.cancelled_by = admin_user
            update_fields += ['cancellation_reason', 'cancelled_by']
        booking.save(update_fields=update_fields)
        booking.refresh_from_db(fields=['payment_status'])

        BookingAuditLog.log_action(
            booking,
            admin_user,
            BookingAuditLog.ACTION_ADMIN_OVERRIDE,
            details={'from': original_status, 'to': new_status, 'reason': reason},
            request=request,
        )
        logger.info(
            f"[BOOKING_ADMIN_OVERRIDE] booking={booking.booking_number} "
            f"{original_status}->{new_status} admin={admin_user.email}"
        )

        notifier = {
            Booking.STATUS_CONFIRMED: 'notify_booking_accepted',
            Booking.STATUS_ACTIVE: 'notify_booking_activated',
            Booking.STATUS_COMPLETED: 'notify_booking_completed',
        }.get(new_status)
        if notifier:
            _notify(notifier, booking)
        else:
            _notify('notify_booking_cancelled', booking, cancelled_by=admin_user)
        return booking

    # ========== QUERIES ==========

    @staticmethod
    def get_customer_bookings(user, status_filter=None):
        queryset = Booking.objects.filter(customer=user)
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset.select_related('bike', 'partner', 'dropoff_partner').order_by('-created_at')

    @staticmethod
    def get_partner_bookings(partner, role='all', status_filter=None):
        """
        Bookings where the partner is the owner, the drop-off partner, or either.
        """
        if role == 'owner':
            queryset = Booking.objects.filter(partner=partner)
        elif role == 'dropoff':
            queryset = Booking.objects.filter(dropoff_partner=partner)
        else:
            queryset = Booking.objects.filter(Q(partner=partner) | Q(dropoff_partner=partner))

        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset.select_related('bike', 'customer', 'partner', 'dropoff_partner').order_by('-created_at')

    @staticmethod
    def partner_dashboard(partner, months=6):
        """
        Partner dashboard sections:
        - requests: requested bookings awaiting a decision
        - current_rentals: active bookings of own bikes
        - upcoming_dropoffs: confirmed/active bookings returning to this partner from another owner
        - completed: recently completed bookings (owner or drop-off)
        - monthly_earnings: ledger earnings grouped by month
        """
        from apps.payments.models import PartnerTransaction

        related = ('bike', 'customer', 'partner', 'dropoff_partner')
        base = Booking.objects.select_related(*related)

        requests = base.filter(partner=partner, status=Booking.STATUS_REQUESTED).order_by('start_date')
        current = base.filter(partner=partner, status=Booking.STATUS_ACTIVE).order_by('end_date')
        dropoffs = base.filter(
            dropoff_partner=partner,
            status__in=Booking.BLOCKING_STATUSES,
        ).exclude(partner=partner).order_by('end_date')
        completed = base.filter(
            Q(partner=partner) | Q(dropoff_partner=partner),
            status=Booking.STATUS_COMPLETED,
        ).order_by('-completed_at')[:20]

        since = (timezone.now() - timedelta(days=31 * months)).replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        monthly = (
            PartnerTransaction.objects.filter(
                partner=partner,
                category=PartnerTransaction.CATEGORY_EARNING,
                created_at__gte=since,
            )
            .annotate(month=TruncMonth('created_at'))
            .values('month')
            .annotate(amount=Sum('amount'), transactions=Count('id'))
            .order_by('month')
        )

        return {
            'requests': requests,
            'current_rentals': current,
            'upcoming_dropoffs': dropoffs,
            'completed': completed,
            'monthly_earnings': [
                {
                    'month': row['month'].strftime('%Y-%m'),
                    'amount': row['amount'],
                    'transactions': row['transactions'],
                }
                for row in monthly
            ],
        }


class ReviewService:
    """Service class for booking reviews."""

    @staticmethod
    @transaction.atomic
    def create_review(booking, user, rating, comment=''):
        """
        Raises:
            PermissionError: If user is not the booking's customer
            ValueError: If the booking is not completed or already reviewed
        """
        if booking.customer_id != user.id:
            raise PermissionError("Only the customer can review this booking.")

        if booking.status != Booking.STATUS_COMPLETED:
            raise ValueError("Only completed bookings can be reviewed.")

        if Review.objects.filter(booking=booking).exists():
            raise ValueError("This booking has already been reviewed.")

        review = Review.objects.create(
            booking=booking,
            customer=user,
            bike=booking.bike,
            partner=booking.partner,
            rating=rating,
            comment=comment,
        )
        ReviewService.recompute_ratings(booking.bike, booking.partner)

        logger.info(f"[REVIEW_CREATED] booking={booking.booking_number} rating={rating}")
        return review

    @staticmethod
    @transaction.atomic
    def moderate_review(review, admin_user, new_status, notes=''):
        valid = [choice[0] for choice in Review.STATUS_CHOICES]
        if new_status not in valid:
            raise ValueError(f"Invalid review status '{new_status}'.")

        review.status = new_status
        review.moderation_notes = notes
        review.save(update_fields=['status', 'moderation_notes', 'updated_at'])
        ReviewService.recompute_ratings(review.bike, review.partner)

        logger.info(f"[REVIEW_MODERATED] review={review.id} status={new_status} admin={admin_user.email}")
        return review

    @staticmethod
    def recompute_ratings(bike, partner):
        """Average and count of published reviews for the bike and its partner."""
        from apps.common.utils import to_money

        for obj, filter_kwargs in ((bike, {'bike': bike}), (partner, {'partner': partner})):
            stats = Review.objects.filter(status=Review.STATUS_PUBLISHED, **filter_kwargs).aggregate(
                avg=Avg('rating'), count=Count('id')
            )
            obj.rating = to_money(stats['avg'] or 0)
            obj.review_count = stats['count']
            obj.save(update_fields=['rating', 'review_count', 'updated_at'])
