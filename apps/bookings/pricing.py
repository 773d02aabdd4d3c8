# apps/bookings/pricing.py
"""
Rental price calculation.

Rules:
- days = max(1, (end - start).days)
- day:   price_per_day * days
- week:  price_per_week * ceil(days / 7)   (falls back to 7 * price_per_day)
- month: price_per_month * ceil(days / 30) (falls back to 30 * price_per_day)
- insurance = BOOKING_INSURANCE_PERCENT of the base price
- total = base + insurance + extras - discount

All amounts are Decimals rounded half-up to 2 places.
"""
import math
from decimal import Decimal

from django.conf import settings

from apps.common.utils import to_money, percent_of

PACKAGE_DAY = 'day'
PACKAGE_WEEK = 'week'
PACKAGE_MONTH = 'month'

PACKAGE_DAYS = {
    PACKAGE_DAY: 1,
    PACKAGE_WEEK: 7,
    PACKAGE_MONTH: 30,
}


def rental_days(start_date, end_date) -> int:
    return max(1, (end_date - start_date).days)


def calculate_base_price(bike, package: str, start_date, end_date) -> Decimal:
    """
    Base rental price for a bike, package and date range.

    Raises:
        ValueError: If the package is unknown
    """
    if package not in PACKAGE_DAYS:
        raise ValueError(f"Unknown rental package '{package}'.")

    days = rental_days(start_date, end_date)
    per_day = Decimal(bike.price_per_day)

    if package == PACKAGE_DAY:
        return to_money(per_day * days)

    if package == PACKAGE_WEEK:
        rate = Decimal(bike.price_per_week) if bike.price_per_week else per_day * 7
    else:
        rate = Decimal(bike.price_per_month) if bike.price_per_month else per_day * 30

    units = math.ceil(days / PACKAGE_DAYS[package])
    return to_money(rate * units)


def split_payment(total, additional_charges=Decimal('0')):
    """
    Split a booking total into the initial and remaining installments.

    Additional charges are always collected with the remaining installment.
    """
    total = to_money(total)
    initial = percent_of(total, settings.BOOKING_INITIAL_PAYMENT_PERCENT)
    remaining = to_money(total - initial + to_money(additional_charges))
    return initial, remaining


def calculate_booking_price(bike, package, start_date, end_date, extras=Decimal('0'), discount=Decimal('0')):
    """
    Full price breakdown used for quotes and new bookings.

    Raises:
        ValueError: If the package is unknown, amounts are negative or
                    the discount exceeds the gross amount
    """
    extras = to_money(extras or 0)
    discount = to_money(discount or 0)
    if extras < 0 or discount < 0:
        raise ValueError("Extras and discount cannot be negative.")

    base_price = calculate_base_price(bike, package, start_date, end_date)
    insurance = percent_of(base_price, settings.BOOKING_INSURANCE_PERCENT)
    gross = base_price + insurance + extras

    if discount > gross:
        raise ValueError("Discount cannot exceed the booking amount.")

    total = to_money(gross - discount)
    initial_payment, remaining_payment = split_payment(total)

    return {
        'package': package,
        'days': rental_days(start_date, end_date),
        'base_price': base_price,
        'insurance': insurance,
        'extras': extras,
        'discount': discount,
        'total': total,
        'initial_payment': initial_payment,
        'remaining_payment': remaining_payment,
        'currency': settings.BOOKING_CURRENCY,
    }
