# apps/partners/models.py
"""
Partner (bike owner business) model.

Lifecycle:
    pending -> active (admin verifies) | inactive
    active  <-> inactive (admin)

Only active partners can list bikes or receive bookings.
Earnings columns are denormalised totals recomputed from the payments ledger.
"""
from decimal import Decimal
from django.conf import settings
from django.db import models
from django.utils import timezone
import uuid

from apps.common.enums import PARTNER_CATEGORIES, as_choices

User = settings.AUTH_USER_MODEL


def default_business_hours():
    hours = {}
    for day in ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday'):
        hours[day] = {'open': '08:00', 'close': '18:00', 'closed': False}
    hours['sunday'] = {'open': '', 'close': '', 'closed': True}
    return hours


class Partner(models.Model):
    """
    A bike-owning business entity that lists bikes and fulfils bookings.
    """

    STATUS_PENDING = 'pending'
    STATUS_ACTIVE = 'active'
    STATUS_INACTIVE = 'inactive'

    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACTIVE, 'Active'),
        (STATUS_INACTIVE, 'Inactive'),
    )

    VERIFICATION_PENDING = 'pending'
    VERIFICATION_VERIFIED = 'verified'
    VERIFICATION_REJECTED = 'rejected'

    VERIFICATION_CHOICES = (
        (VERIFICATION_PENDING, 'Pending'),
        (VERIFICATION_VERIFIED, 'Verified'),
        (VERIFICATION_REJECTED, 'Rejected'),
    )

    uuid_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        db_index=True,
        help_text='UUID for API-safe exposure'
    )

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='partner_profile'
    )

    # ========== BUSINESS DETAILS ==========
    company_name = models.CharField(max_length=200)
    category = models.CharField(
        max_length=30,
        choices=as_choices(PARTNER_CATEGORIES),
        default='rental_shop'
    )
    description = models.TextField(blank=True, default='')
    tagline = models.CharField(max_length=255, blank=True, default='')
    logo = models.URLField(blank=True, default='')
    images = models.JSONField(default=list, blank=True, help_text='Image URLs')
    specialties = models.JSONField(default=list, blank=True)
    features = models.JSONField(default=list, blank=True)
    years_active = models.PositiveIntegerField(default=0)

    # ========== LOCATION ==========
    location = models.CharField(max_length=200, blank=True, default='')
    address = models.CharField(max_length=255, blank=True, default='')
    city = models.CharField(max_length=100, blank=True, default='', db_index=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    map_location = models.JSONField(
        default=dict,
        blank=True,
        help_text='{"name", "address", "place_id"} from the maps picker'
    )

    # ========== CONTACT ==========
    contact_email = models.EmailField(blank=True, default='')
    contact_phone = models.CharField(max_length=30, blank=True, default='')
    website = models.URLField(blank=True, default='')
    business_hours = models.JSONField(default=default_business_hours, blank=True)

    # ========== STATUS & VERIFICATION ==========
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        db_index=True
    )
    verification_status = models.CharField(
        max_length=20,
        choices=VERIFICATION_CHOICES,
        default=VERIFICATION_PENDING,
        db_index=True
    )
    verification_documents = models.JSONField(default=list, blank=True, help_text='Document URLs')
    verification_notes = models.TextField(blank=True, default='')
    verified_at = models.DateTimeField(null=True, blank=True)
    verified_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='verified_partners'
    )

    # ========== BANK DETAILS ==========
    bank_name = models.CharField(max_length=120, blank=True, default='')
    bank_account_number = models.CharField(max_length=50, blank=True, default='')
    bank_account_holder = models.CharField(max_length=120, blank=True, default='')
    bank_branch_code = models.CharField(max_length=30, blank=True, default='')

    # ========== EARNINGS (recomputed from ledger) ==========
    total_earnings = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    pending_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    owner_earnings = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    pickup_earnings = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    # ========== RATINGS ==========
    rating = models.DecimalField(max_digits=3, decimal_places=2, default=Decimal('0.00'))
    review_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'verification_status']),
            models.Index(fields=['city', 'status']),
        ]

    def __str__(self):
        return f"{self.company_name} ({self.status})"

    @property
    def is_active(self):
        return self.status == self.STATUS_ACTIVE

    @property
    def is_verified(self):
        return self.verification_status == self.VERIFICATION_VERIFIED

    @property
    def bike_count(self):
        return self.bikes.filter(is_active=True).count()

    @property
    def has_bank_details(self):
        return bool(self.bank_name and self.bank_account_number and self.bank_account_holder)

    # ========== VERIFICATION ==========

    def verify(self, admin_user=None, notes=''):
        """Verify the partner and activate it."""
        self.verification_status = self.VERIFICATION_VERIFIED
        self.status = self.STATUS_ACTIVE
        self.verified_at = timezone.now()
        self.verified_by = admin_user
        self.verification_notes = notes
        self.save(update_fields=[
            'verification_status', 'status', 'verified_at',
            'verified_by', 'verification_notes', 'updated_at'
        ])
        return self

    def reject_verification(self, admin_user=None, notes=''):
        """Reject the verification request; a rejected partner cannot trade."""
        self.verification_status = self.VERIFICATION_REJECTED
        self.status = self.STATUS_INACTIVE
        self.verified_at = None
        self.verified_by = admin_user
        self.verification_notes = notes
        self.save(update_fields=[
            'verification_status', 'status', 'verified_at',
            'verified_by', 'verification_notes', 'updated_at'
        ])
        return self

    def reset_verification(self):
        self.verification_status = self.VERIFICATION_PENDING
        self.verified_at = None
        self.verified_by = None
        self.save(update_fields=['verification_status', 'verified_at', 'verified_by', 'updated_at'])
        return self

    def get_earnings_summary(self):
        """Get earnings summary for API responses."""
        return {
            'total_earnings': self.total_earnings,
            'total_paid': self.total_paid,
            'pending_amount': self.pending_amount,
            'owner_earnings': self.owner_earnings,
            'pickup_earnings': self.pickup_earnings,
        }
