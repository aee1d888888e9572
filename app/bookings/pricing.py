"""
Booking price calculation with the RubGo service fee.

Every booking is split between the therapist and the platform:

    subtotal           = base_price + travel_fee - discount_amount
    rubgo_service_fee  = subtotal * fee_percent / 100   (rounded half-up to cents)
    therapist_earnings = subtotal - rubgo_service_fee
    total_price        = subtotal

Earnings are derived by subtraction so that
rubgo_service_fee + therapist_earnings == total_price holds exactly.

Usage:
    from bookings.pricing import calculate_pricing

    breakdown = calculate_pricing(Decimal("400"), Decimal("50"), Decimal("0"))
    breakdown.rubgo_service_fee   # Decimal("54.00")
    breakdown.therapist_earnings  # Decimal("396.00")
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

from bookings.exceptions import PricingError

CENTS = Decimal("0.01")

# Default RubGo cut when RUBGO_SERVICE_FEE_PERCENT is not configured
DEFAULT_SERVICE_FEE_PERCENT = Decimal("12")


@dataclass(frozen=True)
class PricingBreakdown:
    """
    Result of pricing a booking.

    Attributes:
        subtotal: base + travel - discount
        rubgo_service_fee: Platform cut
        therapist_earnings: Amount owed to the therapist
        total_price: Amount charged to the customer
    """

    subtotal: Decimal
    rubgo_service_fee: Decimal
    therapist_earnings: Decimal
    total_price: Decimal


def to_money(value) -> Decimal:
    """Coerce a number to a Decimal rounded to cents."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def get_service_fee_percent() -> Decimal:
    """Read the configured service fee percentage."""
    configured = getattr(settings, "RUBGO_SERVICE_FEE_PERCENT", None)
    if configured is None:
        return DEFAULT_SERVICE_FEE_PERCENT
    return Decimal(str(configured))


def calculate_pricing(
    base_price,
    travel_fee=Decimal("0"),
    discount_amount=Decimal("0"),
    fee_percent: Decimal | None = None,
) -> PricingBreakdown:
    """
    Split a booking price between the therapist and the platform.

    Args:
        base_price: Price of the massage itself
        travel_fee: Call-out fee
        discount_amount: Promotion or loyalty discount
        fee_percent: Platform fee percentage (defaults to settings)

    Returns:
        PricingBreakdown with all amounts rounded to cents

    Raises:
        PricingError: If any input is negative or the discount exceeds
            base price plus travel fee
    """
    base_price = to_money(base_price)
    travel_fee = to_money(travel_fee)
    discount_amount = to_money(discount_amount)
    if fee_percent is None:
        fee_percent = get_service_fee_percent()

    for name, value in (
        ("base_price", base_price),
        ("travel_fee", travel_fee),
        ("discount_amount", discount_amount),
    ):
        if value < 0:
            raise PricingError(
                f"{name} must not be negative",
                details={name: str(value)},
            )

    subtotal = base_price + travel_fee - discount_amount
    if subtotal < 0:
        raise PricingError(
            "Discount exceeds base price plus travel fee",
            details={
                "base_price": str(base_price),
                "travel_fee": str(travel_fee),
                "discount_amount": str(discount_amount),
            },
        )

    service_fee = to_money(subtotal * Decimal(fee_percent) / Decimal("100"))
    return PricingBreakdown(
        subtotal=subtotal,
        rubgo_service_fee=service_fee,
        therapist_earnings=subtotal - service_fee,
        total_price=subtotal,
    )


__all__ = [
    "PricingBreakdown",
    "calculate_pricing",
    "get_service_fee_percent",
    "to_money",
]
