# apps/dashboard/tests/test_dashboard.py
"""
Tests for dashboard aggregations.

Tests cover:
1. Admin overview counts and revenue
2. Monthly revenue with zero-filled months
3. Partner overview (bikes, bookings, earnings, pending requests)
4. Dashboard API permissions
"""
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from apps.bikes.tests.test_bikes import make_bike, make_partner
from apps.bookings.models import Booking
from apps.bookings.services import BookingService
from apps.dashboard.services import DashboardService
from apps.payments.services import PaymentService

User = get_user_model()


class DashboardTestMixin:

    def setUp(self):
        self.client = APIClient()
        self.partner = make_partner('owner')
        self.bike = make_bike(self.partner)
        self.spare_bike = make_bike(self.partner, name='Giant Escape', is_available=False)
        self.customer = User.objects.create_user(
            username='rider', email='rider@example.com', password='testpass123'
        )
        self.admin = User.objects.create_user(
            username='admin', email='admin@example.com', password='testpass123',
            role=User.ROLE_ADMIN
        )

    def book(self, start_offset=2):
        start = timezone.localdate() + timedelta(days=start_offset)
        return BookingService.create_booking(
            customer=self.customer,
            bike=self.bike,
            package='day',
            start_date=start,
            end_date=start + timedelta(days=3),
        )

    def paid_booking(self):
        booking = BookingService.confirm_booking(self.book(), self.partner.user)
        PaymentService.process_payment(booking, self.customer, 'initial', 'card')
        return booking


class AdminOverviewTestCase(DashboardTestMixin, TestCase):

    def test_counts(self):
        self.paid_booking()
        self.book(start_offset=10)

        overview = DashboardService.admin_overview()

        self.assertEqual(overview['users']['by_role'][User.ROLE_PARTNER], 1)
        self.assertEqual(overview['users']['by_role'][User.ROLE_ADMIN], 1)
        self.assertEqual(overview['bikes'], {'total': 2, 'available': 1})
        self.assertEqual(overview['bookings']['total'], 2)
        self.assertEqual(overview['bookings']['by_status'][Booking.STATUS_CONFIRMED], 1)
        self.assertEqual(overview['bookings']['by_status'][Booking.STATUS_REQUESTED], 1)
        self.assertEqual(overview['bookings']['by_status'][Booking.STATUS_CANCELLED], 0)
        self.assertEqual(overview['revenue'], Decimal('660.00'))
        self.assertEqual(overview['platform_fees'], Decimal('99.00'))

    def test_revenue_by_month_zero_fills(self):
        self.paid_booking()

        rows = DashboardService.revenue_by_month(3)

        self.assertEqual(len(rows), 3)
        self.assertEqual(rows[-1]['month'], timezone.localdate().strftime('%Y-%m'))
        self.assertEqual(rows[-1]['revenue'], Decimal('660.00'))
        self.assertEqual(rows[-1]['payments'], 1)
        self.assertEqual(rows[-1]['platform_fees'], Decimal('99.00'))
        self.assertEqual(rows[0]['revenue'], Decimal('0.00'))
        self.assertEqual(rows[0]['payments'], 0)

    def test_revenue_months_are_clamped(self):
        self.assertEqual(len(DashboardService.revenue_by_month(100)), 24)
        self.assertEqual(len(DashboardService.revenue_by_month(0)), 1)

    def test_api_admin_only(self):
        self.client.force_authenticate(self.customer)
        self.assertEqual(self.client.get('/api/dashboard/admin/').status_code, 403)

        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/dashboard/admin/')
        self.assertEqual(response.status_code, 200)
        self.assertIn('recent_bookings', response.data)

    def test_revenue_api_bad_months_falls_back(self):
        self.client.force_authenticate(self.admin)

        response = self.client.get('/api/dashboard/admin/revenue/', {'months': 'lots'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 6)


class PartnerOverviewTestCase(DashboardTestMixin, TestCase):

    def test_overview(self):
        self.paid_booking()
        pending = self.book(start_offset=10)
        self.partner.refresh_from_db()

        overview = DashboardService.partner_overview(self.partner)

        self.assertEqual(overview['bikes'], {'total': 2, 'available': 1, 'rented': 0})
        self.assertEqual(overview['bookings']['total'], 2)
        self.assertEqual([b.pk for b in overview['pending_requests']], [pending.pk])
        self.assertEqual(overview['earnings']['total_earnings'], Decimal('561.00'))

    def test_api_requires_partner_profile(self):
        self.client.force_authenticate(self.customer)
        self.assertEqual(self.client.get('/api/dashboard/partner/').status_code, 403)

        self.client.force_authenticate(self.partner.user)
        response = self.client.get('/api/dashboard/partner/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['bikes']['total'], 2)
