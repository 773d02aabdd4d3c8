# apps/payments/models.py
"""
Payment and partner revenue ledger models.

Models:
- Payment: One installment paid by the customer for a booking
- PartnerTransaction: Immutable ledger entry for all revenue movements
- PaymentMethod: Card or wallet saved by a customer

Payment Flow:
1. Booking confirmed → customer pays the initial installment
2. Bike picked up and returned → drop-off charges may be added
3. Customer pays the remaining installment (including charges)
4. Each completed payment is split: platform fee, pickup partner share, owner share
5. Refunds write matching deductions so partner totals always equal the ledger sum
"""

import secrets
import string
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from apps.common.enums import CARD_BRANDS, PAYMENT_METHODS, as_choices

User = settings.AUTH_USER_MODEL

TRANSACTION_ID_ALPHABET = string.ascii_uppercase + string.digits


class Payment(models.Model):
    """
    A single installment payment for a booking.

    Installments:
    - initial: share of the total due after the partner accepts
    - remaining: rest of the total plus any drop-off charges
    - full: both at once
    """

    INSTALLMENT_INITIAL = 'initial'
    INSTALLMENT_REMAINING = 'remaining'
    INSTALLMENT_FULL = 'full'

    INSTALLMENT_CHOICES = (
        (INSTALLMENT_INITIAL, 'Initial'),
        (INSTALLMENT_REMAINING, 'Remaining'),
        (INSTALLMENT_FULL, 'Full'),
    )

    STATUS_PENDING = 'pending'
    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'
    STATUS_REFUNDED = 'refunded'

    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_FAILED, 'Failed'),
        (STATUS_REFUNDED, 'Refunded'),
    )

    VALID_TRANSITIONS = {
        STATUS_PENDING: [STATUS_COMPLETED, STATUS_FAILED],
        STATUS_COMPLETED: [STATUS_REFUNDED],
        STATUS_FAILED: [],
        STATUS_REFUNDED: [],
    }

    uuid_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        db_index=True,
        help_text='UUID for API-safe exposure'
    )

    booking = models.ForeignKey(
        'bookings.Booking',
        on_delete=models.PROTECT,
        related_name='payments'
    )
    customer = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='payments'
    )

    installment = models.CharField(max_length=20, choices=INSTALLMENT_CHOICES)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default='LKR')
    method = models.CharField(max_length=20, choices=as_choices(PAYMENT_METHODS))
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        db_index=True
    )
    transaction_id = models.CharField(max_length=64, unique=True)

    additional_charges = models.JSONField(
        default=list,
        blank=True,
        help_text='Snapshot of booking charges collected with this payment'
    )

    paid_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    refund_reason = models.TextField(blank=True, default='')
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['booking', 'status']),
            models.Index(fields=['customer', '-created_at']),
            models.Index(fields=['status', 'method']),
        ]

    def __str__(self):
        return f"{self.transaction_id}: {self.amount} {self.currency} ({self.installment}, {self.status})"

    def save(self, *args, **kwargs):
        if not self.transaction_id:
            self.transaction_id = self.generate_transaction_id()
        super().save(*args, **kwargs)

    @classmethod
    def generate_transaction_id(cls):
        while True:
            candidate = 'TXN-' + ''.join(secrets.choice(TRANSACTION_ID_ALPHABET) for _ in range(12))
            if not cls.objects.filter(transaction_id=candidate).exists():
                return candidate

    def _validate_transition(self, new_status):
        allowed = self.VALID_TRANSITIONS.get(self.status, [])
        if new_status not in allowed:
            raise ValidationError(
                f"Invalid payment status transition: '{self.status}' → '{new_status}'."
            )
        return True

    def mark_completed(self):
        self._validate_transition(self.STATUS_COMPLETED)
        self.status = self.STATUS_COMPLETED
        self.paid_at = timezone.now()
        self.save(update_fields=['status', 'paid_at', 'updated_at'])
        return self

    def mark_failed(self):
        self._validate_transition(self.STATUS_FAILED)
        self.status = self.STATUS_FAILED
        self.save(update_fields=['status', 'updated_at'])
        return self

    @property
    def refundable_amount(self):
        """What is still held on this payment after earlier partial refunds."""
        return self.amount - (self.refund_amount or 0)

    def mark_refunded(self, amount, reason=''):
        """
        Record a refund of `amount`.

        Partial refunds accumulate in refund_amount and leave the payment
        completed; the payment only becomes refunded once nothing is held.
        """
        total_refunded = (self.refund_amount or 0) + amount
        update_fields = ['refund_amount', 'refund_reason', 'refunded_at', 'updated_at']
        if total_refunded >= self.amount:
            self._validate_transition(self.STATUS_REFUNDED)
            self.status = self.STATUS_REFUNDED
            update_fields.append('status')
        self.refund_amount = total_refunded
        self.refund_reason = reason
        self.refunded_at = timezone.now()
        self.save(update_fields=update_fields)
        return self


class TransactionType:
    """Ledger transaction type constants."""
    # Earnings
    OWNER_EARNINGS = 'owner_earnings'
    PICKUP_EARNINGS = 'pickup_earnings'
    BONUS_PAYMENT = 'bonus_payment'
    REFERRAL_COMMISSION = 'referral_commission'
    # Deductions
    WITHDRAWAL = 'withdrawal'
    REFUND_DEDUCTION = 'refund_deduction'
    PENALTY_FEE = 'penalty_fee'
    PLATFORM_FEE_ADJUSTMENT = 'platform_fee_adjustment'
    CHARGEBACK = 'chargeback'
    # Platform
    PLATFORM_FEE = 'platform_fee'

    CHOICES = [
        (OWNER_EARNINGS, 'Owner Earnings'),
        (PICKUP_EARNINGS, 'Pickup Earnings'),
        (BONUS_PAYMENT, 'Bonus Payment'),
        (REFERRAL_COMMISSION, 'Referral Commission'),
        (WITHDRAWAL, 'Withdrawal'),
        (REFUND_DEDUCTION, 'Refund Deduction'),
        (PENALTY_FEE, 'Penalty Fee'),
        (PLATFORM_FEE_ADJUSTMENT, 'Platform Fee Adjustment'),
        (CHARGEBACK, 'Chargeback'),
        (PLATFORM_FEE, 'Platform Fee'),
    ]

    EARNING_TYPES = [OWNER_EARNINGS, PICKUP_EARNINGS, BONUS_PAYMENT, REFERRAL_COMMISSION, PLATFORM_FEE]
    DEDUCTION_TYPES = [WITHDRAWAL, REFUND_DEDUCTION, PENALTY_FEE, PLATFORM_FEE_ADJUSTMENT, CHARGEBACK]

    # Types an admin may enter by hand
    MANUAL_TYPES = [BONUS_PAYMENT, REFERRAL_COMMISSION, WITHDRAWAL, PENALTY_FEE, CHARGEBACK, PLATFORM_FEE_ADJUSTMENT]

    @classmethod
    def category_for(cls, transaction_type):
        if transaction_type in cls.EARNING_TYPES:
            return PartnerTransaction.CATEGORY_EARNING
        return PartnerTransaction.CATEGORY_DEDUCTION


class PartnerTransaction(models.Model):
    """
    Immutable ledger entry for partner and platform revenue.

    Design:
    - partner is null for platform entries (platform_fee, platform_fee_adjustment)
    - Positive amounts = earnings, negative amounts = deductions
    - Entries are never modified after creation; corrections are new entries
    """

    CATEGORY_EARNING = 'earning'
    CATEGORY_DEDUCTION = 'deduction'

    CATEGORY_CHOICES = (
        (CATEGORY_EARNING, 'Earning'),
        (CATEGORY_DEDUCTION, 'Deduction'),
    )

    STATUS_COMPLETED = 'completed'
    STATUS_PENDING = 'pending'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = (
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_PENDING, 'Pending'),
        (STATUS_CANCELLED, 'Cancelled'),
    )

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    partner = models.ForeignKey(
        'partners.Partner',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='transactions',
        help_text='Null for platform entries'
    )
    booking = models.ForeignKey(
        'bookings.Booking',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='partner_transactions'
    )
    payment = models.ForeignKey(
        Payment,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='ledger_entries'
    )

    transaction_type = models.CharField(max_length=30, choices=TransactionType.CHOICES)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES)
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text='Positive for earnings, negative for deductions'
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_COMPLETED)
    description = models.TextField(blank=True, default='')
    metadata = models.JSONField(default=dict, blank=True)

    related_transaction = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='child_transactions'
    )

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_partner_transactions'
    )

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['partner', '-created_at']),
            models.Index(fields=['partner', 'category']),
            models.Index(fields=['payment']),
            models.Index(fields=['booking']),
            models.Index(fields=['transaction_type']),
        ]

    def __str__(self):
        owner = self.partner.company_name if self.partner_id else 'Platform'
        sign = '+' if self.amount >= 0 else ''
        return f"{owner}: {sign}{self.amount} ({self.transaction_type})"

    def clean(self):
        if self.category == self.CATEGORY_EARNING and self.amount < 0:
            raise ValidationError("Earnings must have positive amounts.")
        if self.category == self.CATEGORY_DEDUCTION and self.amount > 0:
            raise ValidationError("Deductions must have negative amounts.")

    def save(self, *args, **kwargs):
        """Prevent modification of the amount after creation."""
        # self.pk is set before save() for UUID primary keys; use _state.adding
        if not self._state.adding and self.pk:
            original_amount = (
                PartnerTransaction.objects.filter(pk=self.pk).values_list('amount', flat=True).first()
            )
            if original_amount is not None and Decimal(original_amount) != Decimal(self.amount):
                raise ValidationError("Cannot modify transaction amount after creation.")
        self.full_clean()
        super().save(*args, **kwargs)


class PaymentMethod(models.Model):
    """
    A card or wallet the customer saved for later payments.

    Only a provider token is kept, never the card number. Each user has at
    most one default method.
    """

    uuid_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True, db_index=True)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='payment_methods')
    brand = models.CharField(max_length=20, choices=as_choices(CARD_BRANDS))
    last4 = models.CharField(max_length=4, blank=True, default='')
    expiry_month = models.PositiveSmallIntegerField(null=True, blank=True)
    expiry_year = models.PositiveSmallIntegerField(null=True, blank=True)
    is_default = models.BooleanField(default=False)
    provider_token = models.CharField(max_length=255, blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-is_default', '-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['user'],
                condition=models.Q(is_default=True),
                name='unique_default_payment_method',
            ),
        ]

    def __str__(self):
        return f"{self.get_brand_display()} {self.last4 or ''}".strip()

    @property
    def is_expired(self):
        if not (self.expiry_month and self.expiry_year):
            return False
        today = timezone.localdate()
        return (self.expiry_year, self.expiry_month) < (today.year, today.month)

    @property
    def payment_method_value(self):
        """The Payment.method a payment made with this saved method is recorded as."""
        return 'online' if self.brand == 'paypal' else 'card'
