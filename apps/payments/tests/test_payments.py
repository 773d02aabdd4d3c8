# apps/payments/tests/test_payments.py
"""
Tests for installment payments, the partner ledger and refunds.

Tests cover:
1. Revenue split (platform fee, pickup share, owner remainder)
2. Installment rules and booking payment_status
3. Additional drop-off charges
4. Full, partial and cancellation refunds with ledger reversal
5. Partner totals and manual ledger entries
6. Payment statistics
7. Payment API endpoints
8. Saved payment methods and paying with them
"""
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from apps.bikes.models import Bike
from apps.bookings.models import Booking
from apps.bookings.services import BookingService
from apps.partners.models import Partner
from apps.payments.models import Payment, PartnerTransaction, PaymentMethod, TransactionType
from apps.payments.services import LedgerService, PaymentMethodService, PaymentService, split_revenue

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


class PaymentTestMixin:
    """Bike at 1000/day booked for 3 days: total 3300, initial 660, remaining 2640."""

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
        self.admin = User.objects.create_user(
            username='admin', email='admin@example.com', password='testpass123',
            role=User.ROLE_ADMIN
        )

    def confirmed_booking(self, start_offset=2, **kwargs):
        start = timezone.localdate() + timedelta(days=start_offset)
        booking = BookingService.create_booking(
            customer=self.customer,
            bike=self.bike,
            package='day',
            start_date=start,
            end_date=start + timedelta(days=3),
            **kwargs
        )
        return BookingService.confirm_booking(booking, self.partner.user)

    def pay(self, booking, installment='initial', method='card'):
        return PaymentService.process_payment(booking, self.customer, installment, method)

    def completed_booking(self, **kwargs):
        booking = self.confirmed_booking(**kwargs)
        self.pay(booking)
        booking.refresh_from_db()
        booking = BookingService.activate_booking(booking, self.partner.user)
        return BookingService.complete_booking(booking, self.partner.user)


class RevenueSplitTestCase(PaymentTestMixin, TestCase):

    def test_split_without_dropoff_partner(self):
        booking = self.confirmed_booking()

        shares = split_revenue(booking, Decimal('1000.00'))

        self.assertEqual(shares, {
            'platform': Decimal('150.00'),
            'pickup': Decimal('0.00'),
            'owner': Decimal('850.00'),
        })

    def test_split_with_dropoff_partner(self):
        booking = self.confirmed_booking(dropoff_partner=self.dropoff)

        shares = split_revenue(booking, Decimal('1000.00'))

        self.assertEqual(shares['platform'], Decimal('150.00'))
        self.assertEqual(shares['pickup'], Decimal('100.00'))
        self.assertEqual(shares['owner'], Decimal('750.00'))

    def test_shares_add_up_after_rounding(self):
        booking = self.confirmed_booking(dropoff_partner=self.dropoff)

        shares = split_revenue(booking, Decimal('333.33'))

        self.assertEqual(sum(shares.values()), Decimal('333.33'))


class PaymentProcessingTestCase(PaymentTestMixin, TestCase):

    def test_initial_payment(self):
        booking = self.confirmed_booking()

        payment = self.pay(booking)

        self.assertEqual(payment.status, Payment.STATUS_COMPLETED)
        self.assertEqual(payment.amount, Decimal('660.00'))
        self.assertTrue(payment.transaction_id.startswith('TXN-'))
        self.assertIsNotNone(payment.paid_at)
        booking.refresh_from_db()
        self.assertEqual(booking.payment_status, Booking.PAYMENT_PARTIAL)
        self.assertEqual(booking.next_payment_due, 'remaining')

    def test_initial_payment_writes_ledger(self):
        payment = self.pay(self.confirmed_booking())

        entries = {e.transaction_type: e for e in PartnerTransaction.objects.filter(payment=payment)}
        self.assertEqual(entries[TransactionType.PLATFORM_FEE].amount, Decimal('99.00'))
        self.assertIsNone(entries[TransactionType.PLATFORM_FEE].partner)
        self.assertEqual(entries[TransactionType.OWNER_EARNINGS].amount, Decimal('561.00'))
        self.assertNotIn(TransactionType.PICKUP_EARNINGS, entries)

        self.partner.refresh_from_db()
        self.assertEqual(self.partner.total_earnings, Decimal('561.00'))
        self.assertEqual(self.partner.owner_earnings, Decimal('561.00'))
        self.assertEqual(self.partner.pending_amount, Decimal('561.00'))
        self.assertEqual(LedgerService.platform_revenue()['total_revenue'], Decimal('99.00'))

    def test_pickup_partner_earns_share(self):
        self.pay(self.confirmed_booking(dropoff_partner=self.dropoff))

        self.dropoff.refresh_from_db()
        self.partner.refresh_from_db()
        self.assertEqual(self.dropoff.pickup_earnings, Decimal('66.00'))
        self.assertEqual(self.dropoff.total_earnings, Decimal('66.00'))
        self.assertEqual(self.partner.owner_earnings, Decimal('495.00'))

    def test_requested_booking_cannot_be_paid(self):
        start = timezone.localdate() + timedelta(days=2)
        booking = BookingService.create_booking(
            customer=self.customer, bike=self.bike, package='day',
            start_date=start, end_date=start + timedelta(days=1)
        )

        with self.assertRaises(ValueError):
            self.pay(booking)

    def test_only_customer_pays(self):
        booking = self.confirmed_booking()

        with self.assertRaises(PermissionError):
            PaymentService.process_payment(booking, self.partner.user, 'initial', 'card')

    def test_initial_cannot_be_paid_twice(self):
        booking = self.confirmed_booking()
        self.pay(booking)

        with self.assertRaises(ValueError):
            self.pay(booking)

    def test_remaining_requires_initial(self):
        with self.assertRaises(ValueError):
            self.pay(self.confirmed_booking(), installment='remaining')

    def test_full_payment_after_initial_rejected(self):
        booking = self.confirmed_booking()
        self.pay(booking)

        with self.assertRaises(ValueError):
            self.pay(booking, installment='full')

    def test_full_payment(self):
        booking = self.confirmed_booking()

        payment = self.pay(booking, installment='full', method='cash')

        self.assertEqual(payment.amount, Decimal('3300.00'))
        booking.refresh_from_db()
        self.assertEqual(booking.payment_status, Booking.PAYMENT_FULL)
        self.assertIsNone(booking.next_payment_due)

    def test_remaining_after_completion_includes_charges(self):
        booking = self.completed_booking()
        PaymentService.add_additional_charges(booking, self.partner.user, [
            {'type': 'cleaning', 'amount': Decimal('150'), 'description': 'Muddy'},
            {'type': 'late_return', 'amount': Decimal('50.00')},
        ])
        booking.refresh_from_db()
        self.assertEqual(booking.additional_charges_total, Decimal('200.00'))

        payment = self.pay(booking, installment='remaining')

        self.assertEqual(payment.amount, Decimal('2840.00'))
        self.assertEqual(len(payment.additional_charges), 2)
        booking.refresh_from_db()
        self.assertEqual(booking.payment_status, Booking.PAYMENT_FULL)

    def test_charges_only_at_dropoff(self):
        booking = self.confirmed_booking()

        with self.assertRaises(ValueError):
            PaymentService.add_additional_charges(booking, self.partner.user, [
                {'type': 'damage', 'amount': Decimal('500')},
            ])

    def test_customer_cannot_add_charges(self):
        booking = self.completed_booking()

        with self.assertRaises(PermissionError):
            PaymentService.add_additional_charges(booking, self.customer, [
                {'type': 'other', 'amount': Decimal('1')},
            ])

    def test_no_charges_after_remaining_paid(self):
        booking = self.completed_booking()
        self.pay(booking, installment='remaining')

        with self.assertRaises(ValueError):
            PaymentService.add_additional_charges(booking, self.partner.user, [
                {'type': 'damage', 'amount': Decimal('500')},
            ])


class RefundTestCase(PaymentTestMixin, TestCase):

    def test_full_refund_reverses_ledger(self):
        payment = self.pay(self.confirmed_booking())

        PaymentService.refund_payment(payment, reason='Customer complaint', refunded_by=self.admin)

        payment.refresh_from_db()
        self.assertEqual(payment.status, Payment.STATUS_REFUNDED)
        self.assertEqual(payment.refund_amount, Decimal('660.00'))
        deductions = PartnerTransaction.objects.filter(
            payment=payment, category=PartnerTransaction.CATEGORY_DEDUCTION
        )
        self.assertEqual(deductions.count(), 2)
        self.assertTrue(all(entry.amount < 0 for entry in deductions))

        self.partner.refresh_from_db()
        self.assertEqual(self.partner.total_earnings, Decimal('0.00'))
        self.assertEqual(LedgerService.platform_revenue()['total_revenue'], Decimal('0.00'))
        self.assertEqual(payment.booking.payment_status, Booking.PAYMENT_REFUNDED)

    def test_partial_refund(self):
        payment = self.pay(self.confirmed_booking())

        PaymentService.refund_payment(payment, reason='Late pickup', amount=Decimal('330.00'))

        owner_refund = PartnerTransaction.objects.get(
            payment=payment, partner=self.partner, transaction_type=TransactionType.REFUND_DEDUCTION
        )
        self.assertEqual(owner_refund.amount, Decimal('-280.50'))
        self.partner.refresh_from_db()
        self.assertEqual(self.partner.total_earnings, Decimal('280.50'))
        self.assertEqual(self.partner.owner_earnings, Decimal('561.00'))

    def test_partial_refund_keeps_payment_held(self):
        booking = self.confirmed_booking()
        payment = self.pay(booking)

        PaymentService.refund_payment(payment, reason='Scratched frame', amount=Decimal('10.00'))

        payment.refresh_from_db()
        booking.refresh_from_db()
        self.assertEqual(payment.status, Payment.STATUS_COMPLETED)
        self.assertEqual(payment.refund_amount, Decimal('10.00'))
        self.assertTrue(booking.initial_paid)
        self.assertEqual(booking.payment_status, Booking.PAYMENT_PARTIAL)

        with self.assertRaises(ValueError):
            self.pay(booking)
        self.assertEqual(
            booking.payments.filter(installment=Payment.INSTALLMENT_INITIAL).count(), 1
        )

        booking = BookingService.activate_booking(booking, self.partner.user)
        self.assertEqual(booking.status, Booking.STATUS_ACTIVE)

    def test_partial_refunds_accumulate_up_to_payment(self):
        booking = self.confirmed_booking()
        payment = self.pay(booking)
        PaymentService.refund_payment(payment, reason='First', amount=Decimal('60.00'))

        with self.assertRaises(ValueError):
            PaymentService.refund_payment(payment, reason='Too much', amount=Decimal('600.01'))

        PaymentService.refund_payment(payment, reason='Rest')

        payment.refresh_from_db()
        booking.refresh_from_db()
        self.assertEqual(payment.status, Payment.STATUS_REFUNDED)
        self.assertEqual(payment.refund_amount, Decimal('660.00'))
        self.assertEqual(booking.payment_status, Booking.PAYMENT_REFUNDED)
        self.partner.refresh_from_db()
        self.assertEqual(self.partner.total_earnings, Decimal('0.00'))

    def test_refund_amount_cannot_exceed_payment(self):
        payment = self.pay(self.confirmed_booking())

        with self.assertRaises(ValueError):
            PaymentService.refund_payment(payment, reason='Too much', amount=Decimal('661.00'))

    def test_refund_twice_fails(self):
        payment = self.pay(self.confirmed_booking())
        PaymentService.refund_payment(payment, reason='First')

        with self.assertRaises(ValueError):
            PaymentService.refund_payment(payment, reason='Second')

    def test_cancelling_paid_booking_refunds(self):
        booking = self.confirmed_booking(dropoff_partner=self.dropoff)
        payment = self.pay(booking)
        booking.refresh_from_db()

        booking = BookingService.cancel_booking(booking, self.customer, reason='Flight cancelled')

        payment.refresh_from_db()
        self.assertEqual(payment.status, Payment.STATUS_REFUNDED)
        self.assertEqual(booking.payment_status, Booking.PAYMENT_REFUNDED)
        self.dropoff.refresh_from_db()
        self.assertEqual(self.dropoff.total_earnings, Decimal('0.00'))
        self.assertEqual(self.dropoff.pickup_earnings, Decimal('66.00'))


class LedgerTestCase(PaymentTestMixin, TestCase):

    def test_bonus_increases_earnings(self):
        entry = LedgerService.create_manual_entry(
            self.admin, TransactionType.BONUS_PAYMENT, Decimal('500'), 'Top partner', partner=self.partner
        )

        self.assertEqual(entry.amount, Decimal('500.00'))
        self.assertEqual(entry.category, PartnerTransaction.CATEGORY_EARNING)
        self.assertEqual(entry.created_by, self.admin)
        self.partner.refresh_from_db()
        self.assertEqual(self.partner.total_earnings, Decimal('500.00'))

    def test_withdrawal_moves_to_paid(self):
        LedgerService.create_manual_entry(
            self.admin, TransactionType.BONUS_PAYMENT, Decimal('1000'), 'Bonus', partner=self.partner
        )
        self.partner.refresh_from_db()

        LedgerService.create_manual_entry(
            self.admin, TransactionType.WITHDRAWAL, Decimal('400'), 'Bank transfer', partner=self.partner
        )

        self.partner.refresh_from_db()
        self.assertEqual(self.partner.total_earnings, Decimal('1000.00'))
        self.assertEqual(self.partner.total_paid, Decimal('400.00'))
        self.assertEqual(self.partner.pending_amount, Decimal('600.00'))

    def test_withdrawal_cannot_exceed_pending(self):
        with self.assertRaises(ValueError):
            LedgerService.create_manual_entry(
                self.admin, TransactionType.WITHDRAWAL, Decimal('1'), 'Nothing to pay', partner=self.partner
            )

    def test_penalty_is_negative(self):
        entry = LedgerService.create_manual_entry(
            self.admin, TransactionType.PENALTY_FEE, Decimal('75'), 'No-show', partner=self.partner
        )

        self.assertEqual(entry.amount, Decimal('-75.00'))
        self.partner.refresh_from_db()
        self.assertEqual(self.partner.total_earnings, Decimal('-75.00'))

    def test_automatic_types_are_not_manual(self):
        with self.assertRaises(ValueError):
            LedgerService.create_manual_entry(
                self.admin, TransactionType.OWNER_EARNINGS, Decimal('10'), 'Fake', partner=self.partner
            )

    def test_amount_must_be_positive(self):
        with self.assertRaises(ValueError):
            LedgerService.create_manual_entry(
                self.admin, TransactionType.BONUS_PAYMENT, Decimal('0'), 'Zero', partner=self.partner
            )

    def test_amount_is_immutable(self):
        entry = LedgerService.create_manual_entry(
            self.admin, TransactionType.BONUS_PAYMENT, Decimal('10'), 'Bonus', partner=self.partner
        )
        entry.amount = Decimal('1000')

        with self.assertRaises(ValidationError):
            entry.save()

    def test_stats(self):
        self.pay(self.confirmed_booking(), method='card')
        refunded = self.pay(self.confirmed_booking(start_offset=10), method='cash')
        PaymentService.refund_payment(refunded, reason='Duplicate')

        stats = PaymentService.get_stats()

        self.assertEqual(stats['total_revenue'], Decimal('660.00'))
        self.assertEqual(stats['completed_payments_count'], 1)
        self.assertEqual(stats['refunded_amount'], Decimal('660.00'))
        self.assertEqual(stats['refunded_payments_count'], 1)
        self.assertEqual(stats['payment_methods'], [
            {'method': 'card', 'count': 1, 'total': Decimal('660.00')},
        ])


class PaymentAPITestCase(PaymentTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.client = APIClient()

    def test_customer_pays_initial(self):
        booking = self.confirmed_booking()
        self.client.force_authenticate(self.customer)

        response = self.client.post('/api/payments/', {
            'booking_id': str(booking.uuid_id),
            'installment': 'initial',
            'method': 'card',
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(Decimal(response.data['amount']), Decimal('660.00'))
        self.assertEqual(response.data['booking_number'], booking.booking_number)

    def test_other_user_cannot_pay(self):
        booking = self.confirmed_booking()
        self.client.force_authenticate(self.dropoff.user)

        response = self.client.post('/api/payments/', {
            'booking_id': str(booking.uuid_id),
            'installment': 'initial',
            'method': 'card',
        }, format='json')

        self.assertEqual(response.status_code, 403)

    def test_partner_earnings(self):
        self.pay(self.confirmed_booking())
        self.client.force_authenticate(self.partner.user)

        response = self.client.get('/api/payments/earnings/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(Decimal(response.data['total_earnings']), Decimal('561.00'))

    def test_partner_ledger_is_scoped(self):
        self.pay(self.confirmed_booking(dropoff_partner=self.dropoff))
        self.client.force_authenticate(self.dropoff.user)

        response = self.client.get('/api/payments/ledger/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['transaction_type'], TransactionType.PICKUP_EARNINGS)

    def test_admin_partial_refund(self):
        payment = self.pay(self.confirmed_booking())
        self.client.force_authenticate(self.admin)

        response = self.client.post(
            f'/api/payments/admin/{payment.uuid_id}/refund/',
            {'reason': 'Goodwill', 'amount': '100.00'},
            format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], Payment.STATUS_COMPLETED)
        self.assertEqual(Decimal(response.data['refund_amount']), Decimal('100.00'))

    def test_admin_stats_include_platform_revenue(self):
        self.pay(self.confirmed_booking())
        self.client.force_authenticate(self.admin)

        response = self.client.get('/api/payments/admin/stats/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['platform_revenue']['total_revenue'], Decimal('99.00'))

    def test_admin_manual_withdrawal_over_pending(self):
        self.client.force_authenticate(self.admin)

        response = self.client.post('/api/payments/admin/ledger/', {
            'partner_id': str(self.partner.uuid_id),
            'transaction_type': 'withdrawal',
            'amount': '10.00',
            'description': 'Payout',
        }, format='json')

        self.assertEqual(response.status_code, 400)

    def test_customer_cannot_see_admin_ledger(self):
        self.client.force_authenticate(self.customer)

        response = self.client.get('/api/payments/admin/ledger/')

        self.assertEqual(response.status_code, 403)


class PaymentMethodTestCase(PaymentTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.next_year = timezone.localdate().year + 1

    def add_card(self, user=None, **kwargs):
        data = {'brand': 'visa', 'last4': '4242', 'expiry_month': 12, 'expiry_year': self.next_year}
        data.update(kwargs)
        return PaymentMethodService.add_method(user or self.customer, **data)

    def test_first_method_becomes_default(self):
        first = self.add_card()
        second = self.add_card(brand='mastercard', last4='5555')

        self.assertTrue(first.is_default)
        self.assertFalse(second.is_default)

    def test_single_default_per_user(self):
        first = self.add_card()
        second = self.add_card(last4='1111', make_default=True)
        other_users = self.add_card(user=self.admin)

        first.refresh_from_db()
        self.assertFalse(first.is_default)
        self.assertTrue(second.is_default)
        self.assertTrue(other_users.is_default)

        PaymentMethodService.set_default(first)

        self.assertEqual(
            list(PaymentMethod.objects.filter(user=self.customer, is_default=True)), [first]
        )

    def test_expired_card_rejected(self):
        with self.assertRaises(ValueError):
            self.add_card(expiry_year=timezone.localdate().year - 1)

        self.assertFalse(PaymentMethod.objects.exists())

    def test_removing_default_promotes_newest(self):
        default = self.add_card()
        self.add_card(last4='1111')
        newest = self.add_card(last4='2222')

        PaymentMethodService.remove_method(default)

        newest.refresh_from_db()
        self.assertTrue(newest.is_default)
        self.assertEqual(PaymentMethod.objects.filter(user=self.customer, is_default=True).count(), 1)

    def test_api_lists_own_methods_without_token(self):
        self.add_card(provider_token='tok_secret')
        self.add_card(user=self.admin)
        self.client.force_authenticate(self.customer)

        response = self.client.get('/api/payments/methods/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['last4'], '4242')
        self.assertNotIn('provider_token', response.data[0])

    def test_api_card_requires_details(self):
        self.client.force_authenticate(self.customer)

        response = self.client.post('/api/payments/methods/', {'brand': 'visa'}, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('last4', response.data['details'])

        response = self.client.post('/api/payments/methods/', {'brand': 'paypal'}, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.data['is_default'])

    def test_api_set_default_and_delete(self):
        first = self.add_card()
        second = self.add_card(last4='1111')
        self.client.force_authenticate(self.customer)

        response = self.client.post(f'/api/payments/methods/{second.uuid_id}/default/')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['is_default'])

        response = self.client.delete(f'/api/payments/methods/{first.uuid_id}/')
        self.assertEqual(response.status_code, 204)
        self.assertEqual(list(PaymentMethod.objects.filter(user=self.customer)), [second])

    def test_api_cannot_touch_other_users_method(self):
        method = self.add_card(user=self.admin)
        self.client.force_authenticate(self.customer)

        self.assertEqual(self.client.delete(f'/api/payments/methods/{method.uuid_id}/').status_code, 404)
        self.assertEqual(self.client.post(f'/api/payments/methods/{method.uuid_id}/default/').status_code, 404)

    def test_pay_with_saved_method(self):
        booking = self.confirmed_booking()
        wallet = self.add_card(brand='paypal', last4='', expiry_month=None, expiry_year=None)
        self.client.force_authenticate(self.customer)

        response = self.client.post('/api/payments/', {
            'booking_id': str(booking.uuid_id),
            'installment': 'initial',
            'payment_method_id': str(wallet.uuid_id),
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['method'], 'online')

    def test_pay_with_someone_elses_method_rejected(self):
        booking = self.confirmed_booking()
        method = self.add_card(user=self.admin)
        self.client.force_authenticate(self.customer)

        response = self.client.post('/api/payments/', {
            'booking_id': str(booking.uuid_id),
            'installment': 'initial',
            'payment_method_id': str(method.uuid_id),
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertFalse(Payment.objects.exists())

    def test_pay_requires_some_method(self):
        booking = self.confirmed_booking()
        self.client.force_authenticate(self.customer)

        response = self.client.post('/api/payments/', {
            'booking_id': str(booking.uuid_id),
            'installment': 'initial',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('method', response.data['details'])
