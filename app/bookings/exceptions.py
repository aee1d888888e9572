"""
Booking-specific exceptions.

Exception Hierarchy:
    ValidationError (core)
    └── PricingError - Invalid price inputs for fee calculation
"""

from __future__ import annotations

from core.exceptions import ValidationError


class PricingError(ValidationError):
    """
    Raised when a booking cannot be priced.

    Covers negative base prices, travel fees or discounts, and discounts
    larger than the base price plus travel fee.

    Example:
        raise PricingError(
            "Discount exceeds subtotal",
            details={"base_price": "400.00", "discount_amount": "500.00"},
        )
    """

    default_error_code: str = "INVALID_PRICING"


__all__ = ["PricingError"]
