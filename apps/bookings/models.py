# apps/bookings/models.py
"""
Booking, audit log and review models for the rental marketplace.

Models:
- Booking: Full lifecycle management for bike rentals
- BookingAuditLog: Per-action audit trail
- Review: One customer review per completed booking

Security:
- UUID field for public-safe endpoints (uuid_id)
- Human readable booking_number (BK-YYYYMMDD-XXXXXX)
- Strict status transitions
- Audit timestamps
"""
import secrets
import string
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone

from apps.common.enums import RENTAL_PACKAGES, as_choices
from apps.common.utils import to_money, get_client_ip
from .pricing import split_payment

User = settings.AUTH_USER_MODEL

BOOKING_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


class Booking(models.Model):
    """
    Bike rental booking with full lifecycle management.

    Lifecycle:
        requested -> confirmed   (owner partner accepts)
        requested -> cancelled   (partner rejects, or customer/admin cancels)
        confirmed -> active      (bike picked up, initial payment required)
        confirmed -> cancelled
        active    -> completed   (bike dropped off, initial payment required)

    Rules:
        - completed and cancelled are terminal
        - confirmed/active bookings of the same bike never overlap
        - a customer cannot book their own partner's bike
    """

    STATUS_REQUESTED = 'requested'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_ACTIVE = 'active'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = (
        (STATUS_REQUESTED, 'Requested'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_ACTIVE, 'Active'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    )

    # Statuses that occupy the bike for their date range
    BLOCKING_STATUSES = [STATUS_CONFIRMED, STATUS_ACTIVE]
    OPEN_STATUSES = [STATUS_REQUESTED, STATUS_CONFIRMED, STATUS_ACTIVE]

    PAYMENT_PENDING = 'pending'
    PAYMENT_PROCESSING = 'processing'
    PAYMENT_PARTIAL = 'partial_paid'
    PAYMENT_FULL = 'fully_paid'
    PAYMENT_REFUNDED = 'refunded'
    PAYMENT_FAILED = 'failed'

    PAYMENT_STATUS_CHOICES = (
        (PAYMENT_PENDING, 'Pending'),
        (PAYMENT_PROCESSING, 'Processing'),
        (PAYMENT_PARTIAL, 'Partially Paid'),
        (PAYMENT_FULL, 'Fully Paid'),
        (PAYMENT_REFUNDED, 'Refunded'),
        (PAYMENT_FAILED, 'Failed'),
    )

    # ========== STATE MACHINE ==========
    VALID_TRANSITIONS = {
        STATUS_REQUESTED: [STATUS_CONFIRMED, STATUS_CANCELLED],
        STATUS_CONFIRMED: [STATUS_ACTIVE, STATUS_CANCELLED],
        STATUS_ACTIVE: [STATUS_COMPLETED],
        # Terminal states
        STATUS_COMPLETED: [],
        STATUS_CANCELLED: [],
    }

    uuid_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        db_index=True,
        help_text='UUID for API-safe exposure'
    )

    booking_number = models.CharField(max_length=20, unique=True, editable=False)

    customer = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='bookings'
    )
    bike = models.ForeignKey(
        'bikes.Bike',
        on_delete=models.PROTECT,
        related_name='bookings'
    )
    partner = models.ForeignKey(
        'partners.Partner',
        on_delete=models.PROTECT,
        related_name='bookings',
        help_text='Owner partner of the bike'
    )
    dropoff_partner = models.ForeignKey(
        'partners.Partner',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='dropoff_bookings',
        help_text='Partner the bike is returned to (defaults to the owner)'
    )

    package = models.CharField(max_length=10, choices=as_choices(RENTAL_PACKAGES))
    start_date = models.DateField(db_index=True)
    end_date = models.DateField()
    pickup_location = models.CharField(max_length=200)
    dropoff_location = models.CharField(max_length=200)

    # ========== PRICING ==========
    base_price = models.DecimalField(max_digits=12, decimal_places=2)
    insurance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    extras = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default='LKR')

    additional_charges = models.JSONField(
        default=list,
        blank=True,
        help_text='Drop-off charges [{type, amount, description}], collected with the remaining installment'
    )

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_REQUESTED,
        db_index=True
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PAYMENT_STATUS_CHOICES,
        default=PAYMENT_PENDING,
        db_index=True
    )

    notes = models.TextField(blank=True, default='')
    cancellation_reason = models.TextField(blank=True, default='')
    cancelled_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='cancelled_bookings'
    )

    # Audit timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    activated_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['bike', 'status', 'start_date', 'end_date']),
            models.Index(fields=['customer', 'status']),
            models.Index(fields=['partner', 'status']),
            models.Index(fields=['dropoff_partner', 'status']),
            models.Index(fields=['status', 'start_date'], name='idx_booking_due_check'),
        ]

    def __str__(self):
        return f"{self.booking_number} ({self.status})"

    def clean(self):
        """Validate booking constraints."""
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValidationError("End date must be after start date.")

        # Start date must not be in the past (for new bookings)
        if not self.pk and self.start_date and self.start_date < timezone.localdate():
            raise ValidationError("Start date cannot be in the past.")

        if self.customer_id and self.partner_id and self.partner.user_id == self.customer_id:
            raise ValidationError("You cannot book a bike from your own partner account.")

    def save(self, *args, **kwargs):
        if not self.booking_number:
            self.booking_number = self.generate_booking_number()
        self.full_clean()
        super().save(*args, **kwargs)

    @classmethod
    def generate_booking_number(cls):
        """BK-YYYYMMDD-XXXXXX with a random uppercase alphanumeric suffix."""
        prefix = f"BK-{timezone.localdate().strftime('%Y%m%d')}-"
        while True:
            suffix = ''.join(secrets.choice(BOOKING_NUMBER_ALPHABET) for _ in range(6))
            number = prefix + suffix
            if not cls.objects.filter(booking_number=number).exists():
                return number

    def _validate_transition(self, new_status: str) -> bool:
        """
        Validate if a status transition is allowed.

        Raises:
            ValidationError: If transition is not allowed
        """
        allowed = self.VALID_TRANSITIONS.get(self.status, [])
        if new_status not in allowed:
            raise ValidationError(
                f"Invalid status transition: '{self.status}' → '{new_status}'. "
                f"Allowed transitions from '{self.status}': {allowed or 'none (terminal state)'}"
            )
        return True

    # ========== STATUS TRANSITION METHODS ==========

    def confirm(self):
        """Owner partner accepts the request."""
        self._validate_transition(self.STATUS_CONFIRMED)

        self.status = self.STATUS_CONFIRMED
        self.confirmed_at = timezone.now()
        self.save(update_fields=['status', 'confirmed_at', 'updated_at'])
        return self

    def reject(self, reason=''):
        """Owner partner declines the request. Recorded as a cancellation with rejected_at."""
        if self.status != self.STATUS_REQUESTED:
            raise ValidationError(f"Only requested bookings can be rejected (current status '{self.status}').")
        self._validate_transition(self.STATUS_CANCELLED)

        now = timezone.now()
        self.status = self.STATUS_CANCELLED
        self.rejected_at = now
        self.cancelled_at = now
        self.cancellation_reason = reason
        self.save(update_fields=['status', 'rejected_at', 'cancelled_at', 'cancellation_reason', 'updated_at'])
        return self

    def activate(self):
        """Bike picked up by the customer."""
        self._validate_transition(self.STATUS_ACTIVE)
        if not self.initial_paid:
            raise ValidationError("The initial payment must be completed before pickup.")

        self.status = self.STATUS_ACTIVE
        self.activated_at = timezone.now()
        self.save(update_fields=['status', 'activated_at', 'updated_at'])
        return self

    def complete(self):
        """Bike returned to the owner or drop-off partner."""
        self._validate_transition(self.STATUS_COMPLETED)
        if not self.initial_paid:
            raise ValidationError("The initial payment must be completed before drop-off.")

        self.status = self.STATUS_COMPLETED
        self.completed_at = timezone.now()
        self.save(update_fields=['status', 'completed_at', 'updated_at'])
        return self

    def cancel(self, reason='', cancelled_by=None):
        self._validate_transition(self.STATUS_CANCELLED)

        self.status = self.STATUS_CANCELLED
        self.cancelled_at = timezone.now()
        self.cancellation_reason = reason
        self.cancelled_by = cancelled_by
        self.save(update_fields=['status', 'cancelled_at', 'cancellation_reason', 'cancelled_by', 'updated_at'])
        return self

    # ========== HELPERS ==========

    @property
    def days(self):
        return max(1, (self.end_date - self.start_date).days)

    @property
    def effective_dropoff_partner(self):
        return self.dropoff_partner or self.partner

    @property
    def is_rejected(self):
        return self.rejected_at is not None

    @property
    def additional_charges_total(self):
        return to_money(sum(Decimal(str(charge.get('amount', 0))) for charge in self.additional_charges or []))

    @property
    def initial_payment_amount(self):
        return split_payment(self.total)[0]

    @property
    def remaining_payment_amount(self):
        return split_payment(self.total, self.additional_charges_total)[1]

    def _completed_payments(self):
        from apps.payments.models import Payment
        return self.payments.filter(status=Payment.STATUS_COMPLETED)

    @property
    def initial_paid(self):
        from apps.payments.models import Payment
        return self._completed_payments().filter(
            installment__in=[Payment.INSTALLMENT_INITIAL, Payment.INSTALLMENT_FULL]
        ).exists()

    @property
    def remaining_paid(self):
        from apps.payments.models import Payment
        return self._completed_payments().filter(
            installment__in=[Payment.INSTALLMENT_REMAINING, Payment.INSTALLMENT_FULL]
        ).exists()

    @property
    def next_payment_due(self):
        if not self.initial_paid:
            return 'initial'
        if not self.remaining_paid:
            return 'remaining'
        return None

    def is_partner_party(self, user):
        """Owner partner or drop-off partner."""
        partner = getattr(user, 'partner_profile', None)
        if partner is None:
            return False
        return partner.id in (self.partner_id, self.dropoff_partner_id)

    def compute_payment_status(self):
        """Derive payment_status from the booking's payments."""
        from apps.payments.models import Payment

        payments = list(self.payments.all())
        if self.initial_paid and self.remaining_paid:
            return self.PAYMENT_FULL
        if self.initial_paid:
            return self.PAYMENT_PARTIAL
        if any(p.status == Payment.STATUS_REFUNDED for p in payments):
            return self.PAYMENT_REFUNDED
        if any(p.status == Payment.STATUS_PENDING for p in payments):
            return self.PAYMENT_PROCESSING
        if payments and payments[0].status == Payment.STATUS_FAILED:
            return self.PAYMENT_FAILED
        return self.PAYMENT_PENDING

    def refresh_payment_status(self):
        new_status = self.compute_payment_status()
        if new_status != self.payment_status:
            self.payment_status = new_status
            self.save(update_fields=['payment_status', 'updated_at'])
        return self.payment_status


class BookingAuditLog(models.Model):
    """
    Audit log for booking-related actions.
    """

    ACTION_CREATED = 'created'
    ACTION_CONFIRMED = 'confirmed'
    ACTION_REJECTED = 'rejected'
    ACTION_ACTIVATED = 'activated'
    ACTION_COMPLETED = 'completed'
    ACTION_CANCELLED = 'cancelled'
    ACTION_EXPIRED = 'expired'
    ACTION_PAYMENT = 'payment'
    ACTION_CHARGES_ADDED = 'charges_added'
    ACTION_ADMIN_OVERRIDE = 'admin_override'

    ACTION_CHOICES = (
        (ACTION_CREATED, 'Created'),
        (ACTION_CONFIRMED, 'Confirmed'),
        (ACTION_REJECTED, 'Rejected'),
        (ACTION_ACTIVATED, 'Activated'),
        (ACTION_COMPLETED, 'Completed'),
        (ACTION_CANCELLED, 'Cancelled'),
        (ACTION_EXPIRED, 'Expired'),
        (ACTION_PAYMENT, 'Payment'),
        (ACTION_CHARGES_ADDED, 'Additional Charges Added'),
        (ACTION_ADMIN_OVERRIDE, 'Admin Override'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    booking = models.ForeignKey(
        Booking,
        on_delete=models.CASCADE,
        related_name='audit_logs'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name='booking_audit_logs'
    )
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    details = models.JSONField(default=dict, blank=True)

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['booking', 'action']),
            models.Index(fields=['user', 'action']),
        ]

    def __str__(self):
        return f"{self.user} - {self.action} - {self.booking}"

    @classmethod
    def log_action(cls, booking, user, action, details=None, request=None):
        """Create an audit log entry."""
        ip_address = None
        user_agent = ''

        if request:
            ip_address = get_client_ip(request)
            user_agent = request.META.get('HTTP_USER_AGENT', '')[:500]

        return cls.objects.create(
            booking=booking,
            user=user,
            action=action,
            details=details or {},
            ip_address=ip_address,
            user_agent=user_agent
        )


class Review(models.Model):
    """
    Customer review of a completed booking.

    Published reviews feed the bike's and the partner's average rating.
    """

    STATUS_PUBLISHED = 'published'
    STATUS_PENDING = 'pending'
    STATUS_REJECTED = 'rejected'

    STATUS_CHOICES = (
        (STATUS_PUBLISHED, 'Published'),
        (STATUS_PENDING, 'Pending'),
        (STATUS_REJECTED, 'Rejected'),
    )

    booking = models.OneToOneField(
        Booking,
        on_delete=models.CASCADE,
        related_name='review'
    )
    customer = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='reviews'
    )
    bike = models.ForeignKey(
        'bikes.Bike',
        on_delete=models.CASCADE,
        related_name='reviews'
    )
    partner = models.ForeignKey(
        'partners.Partner',
        on_delete=models.CASCADE,
        related_name='reviews'
    )

    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    comment = models.TextField(blank=True, default='')
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PUBLISHED,
        db_index=True
    )
    moderation_notes = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['bike', 'status']),
            models.Index(fields=['partner', 'status']),
        ]

    def __str__(self):
        return f"{self.rating}★ {self.booking.booking_number}"
