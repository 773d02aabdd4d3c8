# apps/dashboard/services.py
"""
Aggregations behind the admin and partner dashboards.
"""
import logging
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db.models import Count, Q, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone

from apps.bikes.models import Bike
from apps.bookings.models import Booking
from apps.common.utils import to_money
from apps.partners.models import Partner
from apps.payments.models import Payment, PartnerTransaction, TransactionType
from apps.payments.services import LedgerService, PaymentService

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')
RECENT_BOOKINGS_LIMIT = 10


def _count_by(queryset, field, choices):
    counts = dict(queryset.values_list(field).annotate(count=Count('pk')).order_by())
    return {value: counts.get(value, 0) for value, _ in choices}


def _month_start(months):
    """First day of the month `months - 1` months before the current one."""
    today = timezone.localdate().replace(day=1)
    year, month = today.year, today.month - (months - 1)
    while month < 1:
        month += 12
        year -= 1
    return today.replace(year=year, month=month)


class DashboardService:

    @staticmethod
    def admin_overview():
        User = get_user_model()

        bikes = Bike.objects.filter(is_active=True)
        bookings = Booking.objects.all()

        recent = Booking.objects.select_related(
            'bike', 'partner', 'dropoff_partner', 'customer'
        ).order_by('-created_at')[:RECENT_BOOKINGS_LIMIT]

        return {
            'users': {
                'total': User.objects.count(),
                'by_role': _count_by(User.objects.all(), 'role', User.ROLE_CHOICES),
            },
            'partners': {
                'total': Partner.objects.count(),
                'by_status': _count_by(Partner.objects.all(), 'status', Partner.STATUS_CHOICES),
                'by_verification': _count_by(
                    Partner.objects.all(), 'verification_status', Partner.VERIFICATION_CHOICES
                ),
            },
            'bikes': {
                'total': bikes.count(),
                'available': bikes.filter(is_available=True).count(),
            },
            'bookings': {
                'total': bookings.count(),
                'by_status': _count_by(bookings, 'status', Booking.STATUS_CHOICES),
            },
            'revenue': PaymentService.get_stats()['total_revenue'],
            'platform_fees': LedgerService.platform_revenue()['total_revenue'],
            'recent_bookings': recent,
        }

    @staticmethod
    def revenue_by_month(months=6):
        """
        Completed payment volume and platform fees per month, oldest first.
        Months without activity are included with zeros.
        """
        months = max(1, min(int(months), 24))
        since = _month_start(months)

        payments = (
            Payment.objects.filter(status=Payment.STATUS_COMPLETED, paid_at__date__gte=since)
            .annotate(month=TruncMonth('paid_at'))
            .values('month')
            .annotate(total=Sum('amount'), count=Count('id'))
        )
        fees = (
            PartnerTransaction.objects.filter(
                partner__isnull=True,
                transaction_type__in=[TransactionType.PLATFORM_FEE, TransactionType.PLATFORM_FEE_ADJUSTMENT],
                created_at__date__gte=since,
            )
            .annotate(month=TruncMonth('created_at'))
            .values('month')
            .annotate(total=Sum('amount'))
        )

        payment_rows = {row['month'].strftime('%Y-%m'): row for row in payments}
        fee_rows = {row['month'].strftime('%Y-%m'): row['total'] for row in fees}

        results = []
        year, month = since.year, since.month
        for _ in range(months):
            key = f"{year:04d}-{month:02d}"
            row = payment_rows.get(key)
            results.append({
                'month': key,
                'revenue': to_money(row['total']) if row else ZERO,
                'payments': row['count'] if row else 0,
                'platform_fees': to_money(fee_rows.get(key) or ZERO),
            })
            month += 1
            if month > 12:
                month = 1
                year += 1

        return results

    @staticmethod
    def partner_overview(partner):
        bikes = Bike.objects.filter(partner=partner, is_active=True)
        bookings = Booking.objects.filter(Q(partner=partner) | Q(dropoff_partner=partner))

        pending_requests = Booking.objects.filter(
            partner=partner,
            status=Booking.STATUS_REQUESTED,
        ).select_related('bike', 'partner', 'dropoff_partner', 'customer').order_by('start_date')

        return {
            'bikes': {
                'total': bikes.count(),
                'available': bikes.filter(is_available=True).count(),
                'rented': bikes.filter(
                    is_available=False,
                    id__in=Booking.objects.filter(status=Booking.STATUS_ACTIVE).values('bike_id'),
                ).count(),
            },
            'bookings': {
                'total': bookings.count(),
                'by_status': _count_by(bookings, 'status', Booking.STATUS_CHOICES),
            },
            'earnings': partner.get_earnings_summary(),
            'pending_requests': pending_requests,
        }
