# apps/common/enums.py
"""
Centralized constants/enums for the bike rental marketplace.
Single source of truth for frontend and backend.

These values are exposed via GET /api/enums/ endpoint.
"""

# ========== BIKES ==========
BIKE_TYPES = [
    {"value": "city", "label": "City Bike"},
    {"value": "mountain", "label": "Mountain Bike"},
    {"value": "road", "label": "Road Bike"},
    {"value": "hybrid", "label": "Hybrid Bike"},
    {"value": "electric", "label": "Electric Bike"},
    {"value": "touring", "label": "Touring Bike"},
    {"value": "folding", "label": "Folding Bike"},
    {"value": "cruiser", "label": "Cruiser"},
]

BIKE_CONDITIONS = [
    {"value": "excellent", "label": "Excellent"},
    {"value": "good", "label": "Good"},
    {"value": "fair", "label": "Fair"},
]

BIKE_FEATURES = [
    "Helmet included",
    "Lock included",
    "Lights",
    "Basket",
    "Child seat",
    "Phone mount",
    "Water bottle holder",
    "Rear rack",
    "Repair kit",
    "GPS tracker",
]

# ========== RENTAL PACKAGES ==========
RENTAL_PACKAGES = [
    {"value": "day", "label": "Daily", "days": 1},
    {"value": "week", "label": "Weekly", "days": 7},
    {"value": "month", "label": "Monthly", "days": 30},
]

# ========== PARTNERS ==========
PARTNER_CATEGORIES = [
    {"value": "rental_shop", "label": "Rental Shop"},
    {"value": "tour_operator", "label": "Tour Operator"},
    {"value": "hotel", "label": "Hotel / Guest House"},
    {"value": "individual", "label": "Individual Owner"},
    {"value": "other", "label": "Other"},
]

# ========== PAYMENTS ==========
PAYMENT_METHODS = [
    {"value": "card", "label": "Card"},
    {"value": "cash", "label": "Cash"},
    {"value": "bank_transfer", "label": "Bank Transfer"},
    {"value": "online", "label": "Online Wallet"},
]

CARD_BRANDS = [
    {"value": "visa", "label": "Visa"},
    {"value": "mastercard", "label": "Mastercard"},
    {"value": "amex", "label": "American Express"},
    {"value": "paypal", "label": "PayPal"},
    {"value": "other", "label": "Other"},
]

ADDITIONAL_CHARGE_TYPES = [
    {"value": "damage", "label": "Damage"},
    {"value": "cleaning", "label": "Cleaning"},
    {"value": "late_return", "label": "Late Return"},
    {"value": "fuel", "label": "Fuel / Battery"},
    {"value": "other", "label": "Other"},
]

# ========== NOTIFICATIONS ==========
NOTIFICATION_CATEGORIES = [
    {"value": "reminder", "label": "Reminder"},
    {"value": "offer", "label": "Offer"},
    {"value": "system", "label": "System"},
    {"value": "partner", "label": "Partner"},
    {"value": "payment", "label": "Payment"},
    {"value": "owner", "label": "Owner"},
]

# ========== SUPPORT ==========
SUPPORT_CATEGORIES = [
    {"value": "booking", "label": "Booking"},
    {"value": "payment", "label": "Payment"},
    {"value": "bike", "label": "Bike"},
    {"value": "account", "label": "Account"},
    {"value": "other", "label": "Other"},
]

# ========== ROLES ==========
USER_ROLES = [
    {"value": "user", "label": "Customer", "description": "Can browse bikes and make bookings"},
    {"value": "partner", "label": "Partner", "description": "Lists bikes and fulfils bookings"},
    {"value": "admin", "label": "Admin", "description": "Manages partners, users and platform settings"},
]

# ========== DAYS OF WEEK ==========
DAYS_OF_WEEK = [
    {"value": "monday", "label": "Monday"},
    {"value": "tuesday", "label": "Tuesday"},
    {"value": "wednesday", "label": "Wednesday"},
    {"value": "thursday", "label": "Thursday"},
    {"value": "friday", "label": "Friday"},
    {"value": "saturday", "label": "Saturday"},
    {"value": "sunday", "label": "Sunday"},
]


def as_choices(options):
    """Turn a list of {"value", "label"} dicts into Django field choices."""
    return [(option["value"], option["label"]) for option in options]


def _model_choices(choices):
    return [{"value": value, "label": str(label)} for value, label in choices]


def get_all_enums():
    """
    Returns all enums as a single dictionary.
    Statuses are read from the models so they never drift from the state machines.
    """
    from apps.bookings.models import Booking
    from apps.payments.models import Payment
    from apps.notifications.models import Notification, RealtimeEvent

    return {
        "bike_types": BIKE_TYPES,
        "bike_conditions": BIKE_CONDITIONS,
        "bike_features": BIKE_FEATURES,
        "rental_packages": RENTAL_PACKAGES,
        "partner_categories": PARTNER_CATEGORIES,
        "booking_statuses": _model_choices(Booking.STATUS_CHOICES),
        "booking_payment_statuses": _model_choices(Booking.PAYMENT_STATUS_CHOICES),
        "payment_methods": PAYMENT_METHODS,
        "card_brands": CARD_BRANDS,
        "payment_statuses": _model_choices(Payment.STATUS_CHOICES),
        "additional_charge_types": ADDITIONAL_CHARGE_TYPES,
        "notification_categories": NOTIFICATION_CATEGORIES,
        "notification_types": _model_choices(Notification.TYPE_CHOICES),
        "event_types": _model_choices(RealtimeEvent.TYPE_CHOICES),
        "support_categories": SUPPORT_CATEGORIES,
        "user_roles": USER_ROLES,
        "days_of_week": DAYS_OF_WEEK,
    }
