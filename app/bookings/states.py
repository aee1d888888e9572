"""
Choice enums for ServiceRequest fields.

RequestStatus:
    pending → preparation → accepted → in-progress → completed
    pending/accepted → cancelled
    accepted → no-show

PaymentStatus:
    pending → paid → refunded
    pending → failed
"""

from django.db import models


class RequestStatus(models.TextChoices):
    """
    Lifecycle of a booked massage.

    Only COMPLETED requests are considered for settlement.
    """

    PENDING = "pending", "Pending"
    PREPARATION = "preparation", "Preparation"
    ACCEPTED = "accepted", "Accepted"
    IN_PROGRESS = "in-progress", "In Progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"
    NO_SHOW = "no-show", "No Show"


class PaymentStatus(models.TextChoices):
    """Customer payment status for a booking. Only PAID is settled."""

    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class PaymentMethod(models.TextChoices):
    CREDIT_CARD = "credit-card", "Credit Card"
    DEBIT_CARD = "debit-card", "Debit Card"
    PAYPAL = "paypal", "PayPal"
    BANK_TRANSFER = "bank-transfer", "Bank Transfer"


__all__ = [
    "PaymentMethod",
    "PaymentStatus",
    "RequestStatus",
]
