"""
ServiceRequest model: a booked massage and its price split.

The request store consumed by the weekly settlement run. Fee fields are
derived from the price fields on save; payout_processed is flipped once,
by the settlement run, in the same transaction that creates the Payment.

Usage:
    from bookings.models import ServiceRequest

    request = ServiceRequest.objects.create(
        customer_id="cust_1",
        therapist_id="ther_1",
        service_type="swedish",
        duration_minutes=60,
        scheduled_time=timezone.now(),
        base_price=Decimal("400.00"),
        payment_method=PaymentMethod.CREDIT_CARD,
    )
    request.rubgo_service_fee   # Decimal("54.00") with the default R50 travel fee

    ServiceRequest.objects.settleable(as_of=timezone.now())
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import models
from django.utils import timezone

from core.managers import BaseQuerySet
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from bookings.pricing import calculate_pricing
from bookings.states import PaymentMethod, PaymentStatus, RequestStatus

if TYPE_CHECKING:
    from datetime import datetime

# Discovery window for settlement, counted back from the run's as_of
SETTLEMENT_WINDOW = timedelta(days=7)

# Fields whose change requires the fee split to be recomputed
PRICE_FIELDS = frozenset({"base_price", "travel_fee", "discount_amount"})
COMPUTED_PRICE_FIELDS = ("rubgo_service_fee", "therapist_earnings", "total_price")


class ServiceRequestQuerySet(BaseQuerySet):
    """QuerySet with booking lifecycle filters."""

    def completed_and_paid(self) -> ServiceRequestQuerySet:
        return self.filter(
            status=RequestStatus.COMPLETED,
            payment_status=PaymentStatus.PAID,
        )

    def unsettled(self) -> ServiceRequestQuerySet:
        return self.filter(payout_processed=False)

    def settleable(self, as_of: datetime) -> ServiceRequestQuerySet:
        """
        Requests eligible for the settlement run at as_of.

        Completed, paid, created within SETTLEMENT_WINDOW before as_of,
        and not yet settled.
        """
        return (
            self.completed_and_paid()
            .unsettled()
            .created_since(as_of - SETTLEMENT_WINDOW)
        )


class ServiceRequest(UUIDPrimaryKeyMixin, BaseModel):
    """
    A customer's booking of a therapist.

    Fields:
        customer_id / therapist_id: External user references
        status: Booking lifecycle (RequestStatus)
        payment_status: Customer payment state (PaymentStatus)
        base_price / travel_fee / discount_amount: Price inputs (ZAR)
        rubgo_service_fee / therapist_earnings / total_price: Computed on save
        payout_processed: Set once a Payment exists for this request
        created_at: Booking time, settable for imported bookings

    Invariant:
        rubgo_service_fee + therapist_earnings == total_price
    """

    # ==========================================================================
    # Parties & Service
    # ==========================================================================

    customer_id = models.CharField(
        max_length=64,
        db_index=True,
        help_text="Customer who booked the service",
    )
    therapist_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        db_index=True,
        help_text="Therapist assigned to the request",
    )
    service_type = models.CharField(max_length=100)
    duration_minutes = models.PositiveIntegerField()
    scheduled_time = models.DateTimeField()

    status = models.CharField(
        max_length=20,
        choices=RequestStatus.choices,
        default=RequestStatus.PENDING,
        db_index=True,
    )

    # ==========================================================================
    # Pricing
    # ==========================================================================

    base_price = models.DecimalField(max_digits=12, decimal_places=2)
    travel_fee = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("50.00"),
        help_text="Call-out fee (R50 by default)",
    )
    discount_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    loyalty_points_used = models.PositiveIntegerField(default=0)

    rubgo_service_fee = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Platform fee, computed on save",
    )
    therapist_earnings = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Therapist share, computed on save",
    )
    total_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Amount charged to the customer, computed on save",
    )

    # ==========================================================================
    # Payment & Settlement
    # ==========================================================================

    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True,
    )
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
    )
    payout_processed = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Set once the weekly settlement created a Payment for this request",
    )

    created_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="When the booking was made",
    )

    objects = ServiceRequestQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Service Request"
        verbose_name_plural = "Service Requests"
        indexes = [
            models.Index(
                fields=["status", "payment_status", "payout_processed", "created_at"],
                name="booking_settleable_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"ServiceRequest({self.id}, {self.status}, R{self.total_price})"

    def save(self, *args, **kwargs):
        """Recompute the fee split before persisting price changes."""
        update_fields = kwargs.get("update_fields")
        if update_fields is None:
            self.apply_pricing()
        elif PRICE_FIELDS.intersection(update_fields):
            self.apply_pricing()
            kwargs["update_fields"] = set(update_fields).union(COMPUTED_PRICE_FIELDS)
        super().save(*args, **kwargs)

    def apply_pricing(self) -> None:
        breakdown = calculate_pricing(
            self.base_price,
            self.travel_fee,
            self.discount_amount,
        )
        self.rubgo_service_fee = breakdown.rubgo_service_fee
        self.therapist_earnings = breakdown.therapist_earnings
        self.total_price = breakdown.total_price

    @property
    def is_settleable(self) -> bool:
        return (
            self.status == RequestStatus.COMPLETED
            and self.payment_status == PaymentStatus.PAID
            and not self.payout_processed
        )
