# apps/payments/services.py
"""
Payment and ledger services.

Provides:
- Installment payments with booking payment_status recomputation
- Revenue split into platform fee, pickup partner and owner shares
- Drop-off additional charges
- Refunds with matching ledger deductions
- Partner totals recomputed from the ledger
- Manual ledger entries (admin)
- Payment statistics
- Saved payment methods with a single default per user

All money operations are atomic and leave an audit trail.
"""

import logging
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from apps.bookings.models import Booking, BookingAuditLog
from apps.common.utils import percent_of, to_money
from .models import Payment, PartnerTransaction, PaymentMethod, TransactionType

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


def split_revenue(booking, amount):
    """
    Split an amount between the platform, the pickup partner and the owner.

    The pickup share only applies when the bike is returned to a partner
    other than the owner. The owner receives whatever is left so the three
    shares always add up to the amount.

    Returns:
        dict: {'platform': Decimal, 'pickup': Decimal, 'owner': Decimal}
    """
    amount = to_money(amount)
    platform = percent_of(amount, settings.PLATFORM_FEE_PERCENT)

    pickup = ZERO
    if booking.dropoff_partner_id and booking.dropoff_partner_id != booking.partner_id:
        pickup = percent_of(amount, settings.PICKUP_PARTNER_PERCENT)

    owner = to_money(amount - platform - pickup)
    return {'platform': platform, 'pickup': pickup, 'owner': owner}


class LedgerService:
    """Ledger writes and partner total recomputation."""

    @staticmethod
    def record(transaction_type, amount, partner=None, booking=None, payment=None,
               description='', metadata=None, created_by=None, related_transaction=None):
        """
        Create a ledger entry. The sign is derived from the transaction type.
        """
        category = TransactionType.category_for(transaction_type)
        amount = to_money(abs(Decimal(str(amount))))
        if category == PartnerTransaction.CATEGORY_DEDUCTION:
            amount = -amount

        return PartnerTransaction.objects.create(
            partner=partner,
            booking=booking,
            payment=payment,
            transaction_type=transaction_type,
            category=category,
            amount=amount,
            description=description,
            metadata=metadata or {},
            created_by=created_by,
            related_transaction=related_transaction,
        )

    @staticmethod
    def recompute_partner_totals(partner):
        """
        Rebuild the denormalised earnings columns from the ledger.

        - total_earnings: earnings net of every deduction except withdrawals
        - total_paid: withdrawals paid out
        - pending_amount: total_earnings - total_paid
        - owner_earnings / pickup_earnings: gross shares by type
        """
        entries = PartnerTransaction.objects.filter(
            partner=partner,
            status=PartnerTransaction.STATUS_COMPLETED,
        )
        totals = entries.aggregate(
            net=Sum('amount', filter=~Q(transaction_type=TransactionType.WITHDRAWAL)),
            withdrawn=Sum('amount', filter=Q(transaction_type=TransactionType.WITHDRAWAL)),
            owner=Sum('amount', filter=Q(transaction_type=TransactionType.OWNER_EARNINGS)),
            pickup=Sum('amount', filter=Q(transaction_type=TransactionType.PICKUP_EARNINGS)),
        )

        partner.total_earnings = to_money(totals['net'] or ZERO)
        partner.total_paid = to_money(-(totals['withdrawn'] or ZERO))
        partner.pending_amount = to_money(partner.total_earnings - partner.total_paid)
        partner.owner_earnings = to_money(totals['owner'] or ZERO)
        partner.pickup_earnings = to_money(totals['pickup'] or ZERO)
        partner.save(update_fields=[
            'total_earnings', 'total_paid', 'pending_amount',
            'owner_earnings', 'pickup_earnings', 'updated_at',
        ])

        logger.debug(
            f"[PARTNER_TOTALS] partner={partner.uuid_id} earnings={partner.total_earnings} "
            f"paid={partner.total_paid} pending={partner.pending_amount}"
        )
        return partner.get_earnings_summary()

    @classmethod
    def create_revenue_share(cls, payment):
        """Write platform, pickup and owner entries for a completed payment."""
        booking = payment.booking
        shares = split_revenue(booking, payment.amount)
        reference = f"booking {booking.booking_number}"
        metadata = {'booking_number': booking.booking_number, 'installment': payment.installment}

        entries = []
        if shares['platform'] > 0:
            entries.append(cls.record(
                TransactionType.PLATFORM_FEE, shares['platform'],
                booking=booking, payment=payment,
                description=f"Platform fee from {reference}", metadata=metadata,
            ))
        if shares['pickup'] > 0:
            entries.append(cls.record(
                TransactionType.PICKUP_EARNINGS, shares['pickup'],
                partner=booking.dropoff_partner, booking=booking, payment=payment,
                description=f"Pickup earnings from {reference}", metadata=metadata,
            ))
        if shares['owner'] > 0:
            entries.append(cls.record(
                TransactionType.OWNER_EARNINGS, shares['owner'],
                partner=booking.partner, booking=booking, payment=payment,
                description=f"Owner earnings from {reference}", metadata=metadata,
            ))

        cls.recompute_partner_totals(booking.partner)
        if shares['pickup'] > 0:
            cls.recompute_partner_totals(booking.dropoff_partner)

        logger.info(
            f"[REVENUE_SHARE] payment={payment.transaction_id} booking={booking.booking_number} "
            f"platform={shares['platform']} pickup={shares['pickup']} owner={shares['owner']}"
        )
        return entries

    @classmethod
    @transaction.atomic
    def create_manual_entry(cls, admin_user, transaction_type, amount, description, partner=None):
        """
        Admin ledger entry (bonus, penalty, withdrawal, ...).

        Raises:
            ValueError: If the type is not allowed or the amount is not positive
        """
        if transaction_type not in TransactionType.MANUAL_TYPES:
            raise ValueError(f"Transaction type '{transaction_type}' cannot be entered manually.")

        amount = Decimal(str(amount))
        if amount <= 0:
            raise ValueError("Amount must be greater than zero.")

        if partner is None and transaction_type != TransactionType.PLATFORM_FEE_ADJUSTMENT:
            raise ValueError("A partner is required for this transaction type.")

        if transaction_type == TransactionType.WITHDRAWAL and to_money(amount) > partner.pending_amount:
            raise ValueError(
                f"Withdrawal exceeds the pending amount ({partner.pending_amount})."
            )

        entry = cls.record(
            transaction_type, amount,
            partner=partner, description=description,
            metadata={'manual': True}, created_by=admin_user,
        )
        if partner is not None:
            cls.recompute_partner_totals(partner)

        logger.info(
            f"[LEDGER_MANUAL] type={transaction_type} amount={entry.amount} "
            f"partner={partner.uuid_id if partner else 'platform'} admin={admin_user.email}"
        )
        return entry

    @staticmethod
    def platform_revenue(start=None, end=None):
        entries = PartnerTransaction.objects.filter(
            partner__isnull=True,
            transaction_type__in=[TransactionType.PLATFORM_FEE, TransactionType.PLATFORM_FEE_ADJUSTMENT],
        )
        if start:
            entries = entries.filter(created_at__date__gte=start)
        if end:
            entries = entries.filter(created_at__date__lte=end)
        totals = entries.aggregate(total=Sum('amount'), count=Count('id'))
        return {
            'total_revenue': to_money(totals['total'] or ZERO),
            'transaction_count': totals['count'],
        }


class PaymentService:
    """Service class for booking payments."""

    PAYABLE_STATUSES = {
        Payment.INSTALLMENT_INITIAL: [Booking.STATUS_CONFIRMED, Booking.STATUS_ACTIVE],
        Payment.INSTALLMENT_FULL: [Booking.STATUS_CONFIRMED, Booking.STATUS_ACTIVE],
        Payment.INSTALLMENT_REMAINING: [Booking.STATUS_CONFIRMED, Booking.STATUS_ACTIVE, Booking.STATUS_COMPLETED],
    }

    # ========== PAYMENTS ==========

    @staticmethod
    def installment_amount(booking, installment):
        if installment == Payment.INSTALLMENT_INITIAL:
            return booking.initial_payment_amount
        if installment == Payment.INSTALLMENT_REMAINING:
            return booking.remaining_payment_amount
        return to_money(booking.total + booking.additional_charges_total)

    @classmethod
    def process_payment(cls, booking, user, installment, method, transaction_id='', request=None):
        """
        Pay an installment of a booking.

        Args:
            booking: Booking instance
            user: Paying user (must be the booking's customer)
            installment: 'initial' | 'remaining' | 'full'
            method: Payment method value

        Returns:
            Payment instance (completed)

        Raises:
            PermissionError: If user is not the booking's customer
            ValueError: If the installment cannot be paid now
        """
        if booking.customer_id != user.id:
            raise PermissionError("Only the customer can pay for this booking.")

        if installment not in cls.PAYABLE_STATUSES:
            raise ValueError(f"Unknown installment '{installment}'.")

        with transaction.atomic():
            booking = Booking.objects.select_for_update().select_related(
                'partner', 'dropoff_partner', 'customer'
            ).get(pk=booking.pk)

            if booking.status not in cls.PAYABLE_STATUSES[installment]:
                raise ValueError(
                    f"The {installment} payment cannot be made while the booking is '{booking.status}'."
                )

            initial_paid = booking.initial_paid
            remaining_paid = booking.remaining_paid

            if installment == Payment.INSTALLMENT_INITIAL and initial_paid:
                raise ValueError("The initial payment has already been made.")
            if installment == Payment.INSTALLMENT_REMAINING:
                if not initial_paid:
                    raise ValueError("The initial payment must be made first.")
                if remaining_paid:
                    raise ValueError("The remaining payment has already been made.")
            if installment == Payment.INSTALLMENT_FULL and (initial_paid or remaining_paid):
                raise ValueError("Part of this booking is already paid; pay the remaining installment instead.")

            amount = cls.installment_amount(booking, installment)
            if amount <= 0:
                raise ValueError("Nothing to pay for this installment.")

            charges = []
            if installment in (Payment.INSTALLMENT_REMAINING, Payment.INSTALLMENT_FULL):
                charges = list(booking.additional_charges or [])

            payment = Payment.objects.create(
                booking=booking,
                customer=user,
                installment=installment,
                amount=amount,
                currency=booking.currency,
                method=method,
                transaction_id=transaction_id or '',
                additional_charges=charges,
            )
            payment.mark_completed()

            LedgerService.create_revenue_share(payment)
            booking.refresh_payment_status()

            BookingAuditLog.log_action(
                booking, user, BookingAuditLog.ACTION_PAYMENT,
                details={
                    'installment': installment,
                    'amount': str(amount),
                    'method': method,
                    'transaction_id': payment.transaction_id,
                },
                request=request,
            )

        logger.info(
            f"[PAYMENT_COMPLETED] payment={payment.transaction_id} booking={booking.booking_number} "
            f"installment={installment} amount={amount} payment_status={booking.payment_status}"
        )

        try:
            from apps.notifications.services import NotificationService
            NotificationService.notify_payment_completed(payment)
        except ImportError:
            pass
        except Exception as e:
            logger.error(f"[NOTIFY_ERROR] payment={payment.transaction_id} error={str(e)}")

        return payment

    # ========== ADDITIONAL CHARGES ==========

    @staticmethod
    @transaction.atomic
    def add_additional_charges(booking, user, charges, request=None):
        """
        Add drop-off charges to a booking. They are collected with the
        remaining installment.

        Args:
            charges: list of {'type', 'amount', 'description'}

        Raises:
            PermissionError: If user is neither a partner of the booking nor admin
            ValueError: If the booking is not at drop-off or already fully paid
        """
        if not booking.is_partner_party(user) and not user.is_admin_user:
            raise PermissionError("Only the owner or drop-off partner can add charges.")

        booking = Booking.objects.select_for_update().get(pk=booking.pk)

        if booking.status not in (Booking.STATUS_ACTIVE, Booking.STATUS_COMPLETED):
            raise ValueError("Charges can only be added at or after drop-off.")
        if booking.remaining_paid:
            raise ValueError("The remaining payment has already been made.")

        added_at = timezone.now().isoformat()
        new_charges = [
            {
                'type': charge['type'],
                'amount': str(to_money(charge['amount'])),
                'description': charge.get('description', ''),
                'added_by': user.email,
                'added_at': added_at,
            }
            for charge in charges
        ]

        booking.additional_charges = list(booking.additional_charges or []) + new_charges
        booking.save(update_fields=['additional_charges', 'updated_at'])

        BookingAuditLog.log_action(
            booking, user, BookingAuditLog.ACTION_CHARGES_ADDED,
            details={'charges': new_charges, 'total': str(booking.additional_charges_total)},
            request=request,
        )
        logger.info(
            f"[CHARGES_ADDED] booking={booking.booking_number} count={len(new_charges)} "
            f"total={booking.additional_charges_total} by={user.email}"
        )
        return booking

    # ========== REFUNDS ==========

    @staticmethod
    @transaction.atomic
    def refund_payment(payment, reason='', amount=None, refunded_by=None):
        """
        Refund a completed payment and reverse its revenue shares.

        Args:
            amount: Partial refund amount (defaults to whatever is still held)

        Raises:
            ValueError: If the payment is not completed or the amount is invalid
        """
        payment = Payment.objects.select_for_update().select_related(
            'booking__partner', 'booking__dropoff_partner'
        ).get(pk=payment.pk)

        # Double-check status hasn't changed
        if payment.status != Payment.STATUS_COMPLETED:
            raise ValueError("Only completed payments can be refunded.")

        refundable = payment.refundable_amount
        refund_amount = to_money(amount) if amount is not None else refundable
        if refund_amount <= 0 or refund_amount > refundable:
            raise ValueError(f"Refund amount must be between 0 and {refundable}.")

        booking = payment.booking
        shares = split_revenue(booking, refund_amount)
        originals = {
            entry.transaction_type: entry
            for entry in payment.ledger_entries.filter(category=PartnerTransaction.CATEGORY_EARNING)
        }
        description = f"Refund for booking {booking.booking_number}: {reason}".strip()
        metadata = {'booking_number': booking.booking_number, 'reason': reason}

        if shares['platform'] > 0:
            LedgerService.record(
                TransactionType.PLATFORM_FEE_ADJUSTMENT, shares['platform'],
                booking=booking, payment=payment, description=description,
                metadata=metadata, created_by=refunded_by,
                related_transaction=originals.get(TransactionType.PLATFORM_FEE),
            )
        if shares['pickup'] > 0:
            LedgerService.record(
                TransactionType.REFUND_DEDUCTION, shares['pickup'],
                partner=booking.dropoff_partner, booking=booking, payment=payment,
                description=description, metadata={**metadata, 'share': 'pickup'},
                created_by=refunded_by,
                related_transaction=originals.get(TransactionType.PICKUP_EARNINGS),
            )
        if shares['owner'] > 0:
            LedgerService.record(
                TransactionType.REFUND_DEDUCTION, shares['owner'],
                partner=booking.partner, booking=booking, payment=payment,
                description=description, metadata={**metadata, 'share': 'owner'},
                created_by=refunded_by,
                related_transaction=originals.get(TransactionType.OWNER_EARNINGS),
            )

        payment.mark_refunded(refund_amount, reason)

        LedgerService.recompute_partner_totals(booking.partner)
        if shares['pickup'] > 0:
            LedgerService.recompute_partner_totals(booking.dropoff_partner)

        booking.refresh_payment_status()

        logger.info(
            f"[PAYMENT_REFUNDED] payment={payment.transaction_id} booking={booking.booking_number} "
            f"amount={refund_amount} reason={reason!r}"
        )
        return payment

    @classmethod
    def refund_booking_payments(cls, booking, reason=''):
        """Refund every completed payment of a booking."""
        refunded = []
        for payment in booking.payments.filter(status=Payment.STATUS_COMPLETED):
            refunded.append(cls.refund_payment(payment, reason=reason))
        return refunded

    # ========== QUERIES ==========

    @staticmethod
    def get_customer_payments(user):
        return Payment.objects.filter(customer=user).select_related('booking').order_by('-created_at')

    @staticmethod
    def get_partner_payments(partner):
        return Payment.objects.filter(
            Q(booking__partner=partner) | Q(booking__dropoff_partner=partner)
        ).select_related('booking', 'customer').order_by('-created_at')

    @staticmethod
    def can_view(payment, user):
        if user.is_admin_user or payment.customer_id == user.id:
            return True
        return payment.booking.is_partner_party(user)

    @staticmethod
    def get_stats(partner=None, start=None, end=None):
        """
        Payment statistics, optionally scoped to a partner and a date range.
        """
        payments = Payment.objects.all()
        if partner is not None:
            payments = payments.filter(Q(booking__partner=partner) | Q(booking__dropoff_partner=partner))
        if start:
            payments = payments.filter(created_at__date__gte=start)
        if end:
            payments = payments.filter(created_at__date__lte=end)

        completed = payments.filter(status=Payment.STATUS_COMPLETED)
        totals = completed.aggregate(total=Sum('amount'), count=Count('id'))
        refunded = payments.filter(refund_amount__gt=0).aggregate(
            total=Sum('refund_amount'), count=Count('id')
        )
        by_method = completed.values('method').annotate(count=Count('id'), total=Sum('amount')).order_by('method')

        return {
            'total_revenue': to_money(totals['total'] or ZERO),
            'completed_payments_count': totals['count'],
            'refunded_amount': to_money(refunded['total'] or ZERO),
            'refunded_payments_count': refunded['count'],
            'payment_methods': [
                {'method': row['method'], 'count': row['count'], 'total': to_money(row['total'])}
                for row in by_method
            ],
        }


class PaymentMethodService:
    """Saved cards and wallets. Every user with saved methods has exactly one default."""

    @staticmethod
    def get_methods(user):
        return PaymentMethod.objects.filter(user=user)

    @staticmethod
    @transaction.atomic
    def add_method(user, brand, last4='', expiry_month=None, expiry_year=None,
                   provider_token='', make_default=False):
        """
        Raises:
            ValueError: If the card has already expired
        """
        method = PaymentMethod(
            user=user,
            brand=brand,
            last4=last4,
            expiry_month=expiry_month,
            expiry_year=expiry_year,
            provider_token=provider_token,
        )
        if method.is_expired:
            raise ValueError("This card has expired.")

        # Serialises concurrent adds for the same user
        existing = list(PaymentMethod.objects.select_for_update().filter(user=user))
        if make_default or not existing:
            PaymentMethod.objects.filter(user=user, is_default=True).update(is_default=False)
            method.is_default = True
        method.save()

        logger.info(
            f"[PAYMENT_METHOD_ADDED] method={method.uuid_id} user={user.email} "
            f"brand={brand} default={method.is_default}"
        )
        return method

    @staticmethod
    @transaction.atomic
    def set_default(method):
        list(PaymentMethod.objects.select_for_update().filter(user_id=method.user_id))
        PaymentMethod.objects.filter(user_id=method.user_id, is_default=True).update(is_default=False)
        PaymentMethod.objects.filter(pk=method.pk).update(is_default=True)
        method.is_default = True

        logger.info(f"[PAYMENT_METHOD_DEFAULT] method={method.uuid_id} user={method.user_id}")
        return method

    @staticmethod
    @transaction.atomic
    def remove_method(method):
        """Delete a saved method. The newest remaining one becomes default if needed."""
        was_default = method.is_default
        user_id = method.user_id
        method.delete()

        if was_default:
            replacement = PaymentMethod.objects.filter(user_id=user_id).order_by('-created_at', '-id').first()
            if replacement is not None:
                replacement.is_default = True
                replacement.save(update_fields=['is_default', 'updated_at'])

        logger.info(f"[PAYMENT_METHOD_REMOVED] method={method.uuid_id} user={user_id} was_default={was_default}")
