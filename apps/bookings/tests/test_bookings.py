# apps/bookings/tests/test_bookings.py
"""
Tests for the booking lifecycle.

Tests cover:
1. Booking creation (pricing snapshot, own-bike guard, availability)
2. State machine transitions and actor checks
3. Double-booking protection on confirm
4. Rental flag on the bike while a booking is active
5. Admin override
6. Reviews and rating recomputation
7. Celery tasks (expiry, due-today payment reminders)
8. Booking API endpoints
"""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from apps.bikes.models import Bike
from apps.bookings.models import Booking, BookingAuditLog, Review
from apps.bookings.services import BookingService, ReviewService
from apps.bookings.tasks import activate_due_bookings, expire_stale_booking_requests, EXPIRY_REASON
from apps.notifications.models import Notification
from apps.partners.models import Partner
from apps.payments.services import PaymentService

User = get_user_model()


def make_partner(username, company_name='Galle Cycles'):
    user = User.objects.create_user(
        username=username, email=f'{username}@example.com', password='testpass123',
        role=User.ROLE_PARTNER
    )
    return Partner.objects.create(
        user=user,
        company_name=company_name,
        status=Partner.STATUS_ACTIVE,
        verification_status=Partner.VERIFICATION_VERIFIED,
    )


class BookingTestMixin:

    def setUp(self):
        self.partner = make_partner('owner')
        self.dropoff = make_partner('dropoff', company_name='Unawatuna Rentals')
        self.bike = Bike.objects.create(
            partner=self.partner,
            name='Trek FX 3',
            bike_type='city',
            location='Galle',
            price_per_day=Decimal('1000.00'),
        )
        self.customer = User.objects.create_user(
            username='rider', email='rider@example.com', password='testpass123'
        )
        self.other_customer = User.objects.create_user(
            username='rider2', email='rider2@example.com', password='testpass123'
        )
        self.admin = User.objects.create_user(
            username='admin', email='admin@example.com', password='testpass123',
            role=User.ROLE_ADMIN
        )
        self.today = timezone.localdate()

    def book(self, customer=None, start_offset=2, days=3, **kwargs):
        start = self.today + timedelta(days=start_offset)
        return BookingService.create_booking(
            customer=customer or self.customer,
            bike=self.bike,
            package='day',
            start_date=start,
            end_date=start + timedelta(days=days),
            **kwargs
        )

    def confirmed_and_paid(self, **kwargs):
        booking = self.book(**kwargs)
        booking = BookingService.confirm_booking(booking, self.partner.user)
        PaymentService.process_payment(booking, self.customer, 'initial', 'card')
        booking.refresh_from_db()
        return booking


class BookingCreationTestCase(BookingTestMixin, TestCase):

    def test_create_booking_snapshots_price(self):
        booking = self.book()

        self.assertEqual(booking.status, Booking.STATUS_REQUESTED)
        self.assertEqual(booking.payment_status, Booking.PAYMENT_PENDING)
        self.assertEqual(booking.partner, self.partner)
        self.assertEqual(booking.base_price, Decimal('3000.00'))
        self.assertEqual(booking.insurance, Decimal('300.00'))
        self.assertEqual(booking.total, Decimal('3300.00'))
        self.assertEqual(booking.initial_payment_amount, Decimal('660.00'))
        self.assertEqual(booking.remaining_payment_amount, Decimal('2640.00'))
        self.assertRegex(booking.booking_number, r'^BK-\d{8}-[A-Z0-9]{6}$')
        self.assertEqual(booking.pickup_location, 'Galle')

    def test_create_logs_and_notifies(self):
        booking = self.book()

        self.assertTrue(
            BookingAuditLog.objects.filter(booking=booking, action=BookingAuditLog.ACTION_CREATED).exists()
        )
        self.assertTrue(Notification.objects.filter(recipient=self.customer, booking=booking).exists())
        self.assertTrue(Notification.objects.filter(recipient=self.partner.user, booking=booking).exists())

    def test_dropoff_partner_is_notified(self):
        booking = self.book(dropoff_partner=self.dropoff)

        self.assertEqual(booking.effective_dropoff_partner, self.dropoff)
        self.assertTrue(
            Notification.objects.filter(
                recipient=self.dropoff.user,
                notification_type=Notification.TYPE_NEW_DROPOFF,
            ).exists()
        )

    def test_dropoff_partner_same_as_owner_is_ignored(self):
        booking = self.book(dropoff_partner=self.partner)

        self.assertIsNone(booking.dropoff_partner)

    def test_cannot_book_own_bike(self):
        with self.assertRaises(PermissionError):
            self.book(customer=self.partner.user)

    def test_cannot_book_unavailable_bike(self):
        self.bike.set_availability(False, 'Maintenance')

        with self.assertRaises(ValueError):
            self.book()

    def test_cannot_book_over_confirmed_booking(self):
        first = self.book()
        BookingService.confirm_booking(first, self.partner.user)

        with self.assertRaises(ValueError):
            self.book(customer=self.other_customer, start_offset=3)

    def test_past_start_date_rejected(self):
        with self.assertRaises(ValueError):
            self.book(start_offset=-1)


class BookingLifecycleTestCase(BookingTestMixin, TestCase):

    def test_confirm_by_owner(self):
        booking = BookingService.confirm_booking(self.book(), self.partner.user)

        self.assertEqual(booking.status, Booking.STATUS_CONFIRMED)
        self.assertIsNotNone(booking.confirmed_at)
        self.assertTrue(
            Notification.objects.filter(
                recipient=self.customer,
                notification_type=Notification.TYPE_PAYMENT_REQUIRED,
            ).exists()
        )

    def test_confirm_by_customer_forbidden(self):
        with self.assertRaises(PermissionError):
            BookingService.confirm_booking(self.book(), self.customer)

    def test_second_overlapping_request_cannot_be_confirmed(self):
        first = self.book()
        second = self.book(customer=self.other_customer, start_offset=3)

        BookingService.confirm_booking(first, self.partner.user)

        with self.assertRaises(ValueError):
            BookingService.confirm_booking(second, self.partner.user)
        second.refresh_from_db()
        self.assertEqual(second.status, Booking.STATUS_REQUESTED)

    def test_reject_records_rejection(self):
        booking = BookingService.reject_booking(self.book(), self.partner.user, reason='Bike in repair')

        self.assertEqual(booking.status, Booking.STATUS_CANCELLED)
        self.assertTrue(booking.is_rejected)
        self.assertEqual(booking.cancellation_reason, 'Bike in repair')
        self.assertTrue(
            Notification.objects.filter(
                recipient=self.customer,
                notification_type=Notification.TYPE_BOOKING_REJECTED,
            ).exists()
        )

    def test_failed_save_does_not_leak_previous_status(self):
        booking = BookingService.confirm_booking(self.book(), self.partner.user)
        PaymentService.process_payment(booking, self.customer, 'initial', 'card')
        booking.refresh_from_db()

        with patch.object(Booking, '_save_table', side_effect=DatabaseError('disk full')):
            with self.assertRaises(DatabaseError), transaction.atomic():
                booking.activate()

        self.assertEqual(booking._previous_status, Booking.STATUS_CONFIRMED)
        self.bike.refresh_from_db()
        self.assertTrue(self.bike.is_available)

        retried = BookingService.activate_booking(Booking.objects.get(pk=booking.pk), self.partner.user)

        self.assertEqual(retried.status, Booking.STATUS_ACTIVE)
        self.bike.refresh_from_db()
        self.assertFalse(self.bike.is_available)
        self.assertIn(booking.booking_number, self.bike.unavailable_reason)

    def test_reject_confirmed_booking_fails(self):
        booking = BookingService.confirm_booking(self.book(), self.partner.user)

        with self.assertRaises(ValidationError):
            BookingService.reject_booking(booking, self.partner.user)

    def test_activate_requires_initial_payment(self):
        booking = BookingService.confirm_booking(self.book(), self.partner.user)

        with self.assertRaises(ValidationError):
            BookingService.activate_booking(booking, self.partner.user)

    def test_activate_flags_bike_as_rented(self):
        booking = self.confirmed_and_paid()

        BookingService.activate_booking(booking, self.partner.user)

        self.bike.refresh_from_db()
        self.assertTrue(self.bike.is_rented)
        self.assertIn(booking.booking_number, self.bike.unavailable_reason)

    def test_complete_releases_rental_flag(self):
        booking = self.confirmed_and_paid()
        BookingService.activate_booking(booking, self.partner.user)

        booking = BookingService.complete_booking(booking, self.partner.user)

        self.assertEqual(booking.status, Booking.STATUS_COMPLETED)
        self.bike.refresh_from_db()
        self.assertTrue(self.bike.is_available)
        self.assertEqual(self.bike.unavailable_reason, '')

    def test_complete_keeps_manual_unavailability(self):
        booking = self.confirmed_and_paid()
        BookingService.activate_booking(booking, self.partner.user)
        self.bike.refresh_from_db()
        self.bike.set_availability(False, 'Broken chain')

        BookingService.complete_booking(booking, self.partner.user)

        self.bike.refresh_from_db()
        self.assertFalse(self.bike.is_available)
        self.assertEqual(self.bike.unavailable_reason, 'Broken chain')

    def test_dropoff_partner_can_complete(self):
        booking = self.confirmed_and_paid(dropoff_partner=self.dropoff)
        BookingService.activate_booking(booking, self.partner.user)

        booking = BookingService.complete_booking(booking, self.dropoff.user)

        self.assertEqual(booking.status, Booking.STATUS_COMPLETED)

    def test_dropoff_partner_cannot_activate(self):
        booking = self.confirmed_and_paid(dropoff_partner=self.dropoff)

        with self.assertRaises(PermissionError):
            BookingService.activate_booking(booking, self.dropoff.user)

    def test_customer_cancels_requested_booking(self):
        booking = BookingService.cancel_booking(self.book(), self.customer, reason='Plans changed')

        self.assertEqual(booking.status, Booking.STATUS_CANCELLED)
        self.assertEqual(booking.cancelled_by, self.customer)
        self.assertFalse(booking.is_rejected)

    def test_stranger_cannot_cancel(self):
        with self.assertRaises(PermissionError):
            BookingService.cancel_booking(self.book(), self.other_customer)

    def test_active_booking_cannot_be_cancelled(self):
        booking = self.confirmed_and_paid()
        BookingService.activate_booking(booking, self.partner.user)

        with self.assertRaises(ValidationError):
            BookingService.cancel_booking(booking, self.customer)

    def test_terminal_states_are_final(self):
        booking = BookingService.cancel_booking(self.book(), self.customer)

        with self.assertRaises(ValidationError):
            booking.confirm()

    def test_cancelled_booking_frees_dates(self):
        first = BookingService.confirm_booking(self.book(), self.partner.user)
        BookingService.cancel_booking(first, self.customer)

        second = self.book(customer=self.other_customer)

        self.assertEqual(second.status, Booking.STATUS_REQUESTED)


class AdminOverrideTestCase(BookingTestMixin, TestCase):

    def test_admin_activates_without_payment(self):
        booking = BookingService.confirm_booking(self.book(), self.partner.user)

        booking = BookingService.admin_set_status(booking, self.admin, Booking.STATUS_ACTIVE, reason='Paid in cash')

        self.assertEqual(booking.status, Booking.STATUS_ACTIVE)
        self.assertIsNotNone(booking.activated_at)
        log = BookingAuditLog.objects.get(booking=booking, action=BookingAuditLog.ACTION_ADMIN_OVERRIDE)
        self.assertEqual(log.details, {'from': 'confirmed', 'to': 'active', 'reason': 'Paid in cash'})
        self.bike.refresh_from_db()
        self.assertTrue(self.bike.is_rented)

    def test_admin_cannot_skip_the_state_machine(self):
        booking = self.book()

        with self.assertRaises(ValidationError):
            BookingService.admin_set_status(booking, self.admin, Booking.STATUS_COMPLETED)

    def test_admin_cancel_prefixes_reason(self):
        booking = BookingService.admin_set_status(self.book(), self.admin, Booking.STATUS_CANCELLED, reason='Fraud')

        self.assertEqual(booking.cancellation_reason, '[Admin] Fraud')
        self.assertEqual(booking.cancelled_by, self.admin)


class ReviewTestCase(BookingTestMixin, TestCase):

    def completed_booking(self, customer=None, start_offset=2):
        customer = customer or self.customer
        booking = self.book(customer=customer, start_offset=start_offset)
        booking = BookingService.confirm_booking(booking, self.partner.user)
        PaymentService.process_payment(booking, customer, 'full', 'cash')
        BookingService.activate_booking(booking, self.partner.user)
        return BookingService.complete_booking(booking, self.partner.user)

    def test_review_updates_ratings(self):
        ReviewService.create_review(self.completed_booking(), self.customer, rating=5, comment='Great ride')
        ReviewService.create_review(
            self.completed_booking(customer=self.other_customer, start_offset=10), self.other_customer, rating=4
        )

        self.bike.refresh_from_db()
        self.partner.refresh_from_db()
        self.assertEqual(self.bike.rating, Decimal('4.50'))
        self.assertEqual(self.bike.review_count, 2)
        self.assertEqual(self.partner.rating, Decimal('4.50'))

    def test_only_completed_bookings_can_be_reviewed(self):
        with self.assertRaises(ValueError):
            ReviewService.create_review(self.book(), self.customer, rating=5)

    def test_one_review_per_booking(self):
        booking = self.completed_booking()
        ReviewService.create_review(booking, self.customer, rating=5)

        with self.assertRaises(ValueError):
            ReviewService.create_review(booking, self.customer, rating=3)

    def test_only_customer_can_review(self):
        with self.assertRaises(PermissionError):
            ReviewService.create_review(self.completed_booking(), self.other_customer, rating=1)

    def test_rejected_review_leaves_rating(self):
        review = ReviewService.create_review(self.completed_booking(), self.customer, rating=1)

        ReviewService.moderate_review(review, self.admin, Review.STATUS_REJECTED, notes='Abusive')

        self.bike.refresh_from_db()
        self.assertEqual(self.bike.rating, Decimal('0.00'))
        self.assertEqual(self.bike.review_count, 0)


class BookingTasksTestCase(BookingTestMixin, TestCase):

    def test_expire_stale_requests(self):
        stale = self.book(start_offset=1)
        Booking.objects.filter(pk=stale.pk).update(
            start_date=self.today - timedelta(days=1), end_date=self.today + timedelta(days=2)
        )
        fresh = self.book(customer=self.other_customer, start_offset=5)

        result = expire_stale_booking_requests()

        self.assertEqual(result, {'expired': 1, 'errors': 0})
        stale.refresh_from_db()
        fresh.refresh_from_db()
        self.assertEqual(stale.status, Booking.STATUS_CANCELLED)
        self.assertEqual(stale.cancellation_reason, EXPIRY_REASON)
        self.assertEqual(fresh.status, Booking.STATUS_REQUESTED)
        self.assertTrue(BookingAuditLog.objects.filter(booking=stale, action=BookingAuditLog.ACTION_EXPIRED).exists())

    def test_expire_is_idempotent(self):
        stale = self.book(start_offset=1)
        Booking.objects.filter(pk=stale.pk).update(start_date=self.today - timedelta(days=1))

        expire_stale_booking_requests()
        result = expire_stale_booking_requests()

        self.assertEqual(result['expired'], 0)

    def test_due_bookings_report_missing_payment(self):
        unpaid = self.book(start_offset=0, days=2)
        BookingService.confirm_booking(unpaid, self.partner.user)
        reminders_before = Notification.objects.filter(
            recipient=self.customer, notification_type=Notification.TYPE_PAYMENT_REQUIRED
        ).count()

        result = activate_due_bookings()

        self.assertEqual(result, {'due': 1, 'awaiting_payment': 1})
        unpaid.refresh_from_db()
        self.assertEqual(unpaid.status, Booking.STATUS_CONFIRMED)
        self.assertEqual(
            Notification.objects.filter(
                recipient=self.customer, notification_type=Notification.TYPE_PAYMENT_REQUIRED
            ).count(),
            reminders_before + 1
        )


class BookingAPITestCase(BookingTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.client = APIClient()

    def test_create_booking(self):
        self.client.force_authenticate(self.customer)
        start = self.today + timedelta(days=3)

        response = self.client.post('/api/bookings/', {
            'bike_id': str(self.bike.uuid_id),
            'package': 'week',
            'start_date': start.isoformat(),
            'end_date': (start + timedelta(days=7)).isoformat(),
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['status'], 'requested')
        self.assertEqual(Decimal(response.data['total']), Decimal('7700.00'))

    def test_own_bike_is_forbidden(self):
        self.client.force_authenticate(self.partner.user)
        start = self.today + timedelta(days=3)

        response = self.client.post('/api/bookings/', {
            'bike_id': str(self.bike.uuid_id),
            'package': 'day',
            'start_date': start.isoformat(),
            'end_date': (start + timedelta(days=1)).isoformat(),
        }, format='json')

        self.assertEqual(response.status_code, 403)

    def test_customer_lists_own_bookings(self):
        self.book()
        self.book(customer=self.other_customer, start_offset=10)
        self.client.force_authenticate(self.customer)

        response = self.client.get('/api/bookings/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['count'], 1)

    def test_detail_hidden_from_strangers(self):
        booking = self.book()
        self.client.force_authenticate(self.other_customer)

        response = self.client.get(f'/api/bookings/{booking.uuid_id}/')

        self.assertEqual(response.status_code, 403)

    def test_confirm_and_activate_endpoints(self):
        booking = self.book()
        self.client.force_authenticate(self.partner.user)

        response = self.client.post(f'/api/bookings/{booking.uuid_id}/confirm/', {}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], 'confirmed')

        response = self.client.post(f'/api/bookings/{booking.uuid_id}/activate/', {}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_customer_cannot_confirm(self):
        booking = self.book()
        self.client.force_authenticate(self.customer)

        response = self.client.post(f'/api/bookings/{booking.uuid_id}/confirm/', {}, format='json')

        self.assertEqual(response.status_code, 403)

    def test_partner_dashboard(self):
        self.book()
        self.client.force_authenticate(self.partner.user)

        response = self.client.get('/api/bookings/partner/dashboard/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data['requests']), 1)
        self.assertEqual(response.data['current_rentals'], [])

    def test_partner_bookings_by_role(self):
        self.book(dropoff_partner=self.dropoff)
        self.client.force_authenticate(self.dropoff.user)

        self.assertEqual(self.client.get('/api/bookings/partner/', {'role': 'dropoff'}).data['count'], 1)
        self.assertEqual(self.client.get('/api/bookings/partner/', {'role': 'owner'}).data['count'], 0)

    def test_admin_status_override_endpoint(self):
        booking = self.book()
        self.client.force_authenticate(self.admin)

        response = self.client.post(
            f'/api/bookings/admin/{booking.uuid_id}/status/',
            {'status': 'confirmed', 'reason': 'Phone booking'},
            format='json'
        )

        self.assertEqual(response.status_code, 200)
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_CONFIRMED)

    def test_admin_endpoints_reject_customers(self):
        self.client.force_authenticate(self.customer)

        response = self.client.get('/api/bookings/admin/')

        self.assertEqual(response.status_code, 403)
