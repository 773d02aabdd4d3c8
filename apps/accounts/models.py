# apps/accounts/models.py
from django.contrib.auth.models import AbstractUser
from django.db import models
import uuid


def default_notification_preferences():
    return {
        'booking_updates': True,
        'promotions': False,
        'partner_news': False,
        'sms': False,
        'email_digest': True,
    }


class User(AbstractUser):
    """
    Authentication model.
    - Email is primary identifier
    - Username is required for signup
    - Role decides which dashboard the user sees (customer, partner, admin)
    """

    ROLE_USER = 'user'
    ROLE_PARTNER = 'partner'
    ROLE_ADMIN = 'admin'

    ROLE_CHOICES = (
        (ROLE_USER, 'Customer'),
        (ROLE_PARTNER, 'Partner'),
        (ROLE_ADMIN, 'Admin'),
    )

    STATUS_ACTIVE = 'active'
    STATUS_INACTIVE = 'inactive'
    STATUS_SUSPENDED = 'suspended'

    STATUS_CHOICES = (
        (STATUS_ACTIVE, 'Active'),
        (STATUS_INACTIVE, 'Inactive'),
        (STATUS_SUSPENDED, 'Suspended'),
    )

    email = models.EmailField(unique=True)

    # Username is required and unique
    username = models.CharField(max_length=150, unique=True)

    # UUID for public-safe API exposure and channel group names
    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        db_index=True,
    )

    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default=ROLE_USER,
        db_index=True,
    )

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_ACTIVE,
    )

    phone = models.CharField(max_length=30, blank=True, default='')

    notification_preferences = models.JSONField(
        default=default_notification_preferences,
        blank=True,
    )

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']  # Username required when creating superuser

    def __str__(self):
        return self.email

    @property
    def is_admin_user(self):
        return self.is_staff or self.is_superuser or self.role == self.ROLE_ADMIN

    @property
    def is_partner(self):
        return self.role == self.ROLE_PARTNER

    @property
    def is_customer(self):
        return self.role == self.ROLE_USER

    @property
    def display_name(self):
        full_name = self.get_full_name()
        return full_name or self.username or self.email

    def wants_notification(self, key):
        """Check a single notification preference, defaulting to enabled."""
        prefs = self.notification_preferences or {}
        return prefs.get(key, True)
