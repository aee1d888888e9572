"""
Payment model: one settlement record per settled ServiceRequest.

A Payment is created in PENDING state by the weekly settlement run, in the
same transaction that marks its ServiceRequest as payout_processed. The
run then moves the therapist's earnings through the payout gateway.

Usage:
    from payments.models import Payment
    from payments.state_machines import PaymentState

    payment = Payment.objects.create_for_request(service_request)

    # State transitions using django-fsm
    payment.start_transfer()       # pending -> processing
    payment.save()

    # After the gateway accepted the transfer
    payment.complete(reference="tr_123")   # processing -> completed
    payment.save()
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.managers import BaseQuerySet
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import PaymentState

if TYPE_CHECKING:
    from bookings.models import ServiceRequest


class PaymentQuerySet(BaseQuerySet):
    """QuerySet with ledger filters used by the settlement run and the API."""

    def pending(self) -> PaymentQuerySet:
        return self.filter(status=PaymentState.PENDING)

    def completed(self) -> PaymentQuerySet:
        return self.filter(status=PaymentState.COMPLETED)

    def unswept(self) -> PaymentQuerySet:
        """Completed payments whose service fee no sweep has claimed yet."""
        return self.completed().filter(fee_transfer__isnull=True)

    def for_therapist(self, therapist_id: str) -> PaymentQuerySet:
        return self.filter(therapist_id=therapist_id)

    def executable(self, stuck_before: datetime) -> PaymentQuerySet:
        """
        Payments the settlement run should transfer.

        All PENDING payments, plus PROCESSING ones untouched since
        stuck_before (a previous run died mid-transfer).
        """
        return self.filter(
            models.Q(status=PaymentState.PENDING)
            | models.Q(status=PaymentState.PROCESSING, updated_at__lt=stuck_before)
        )


class PaymentManager(models.Manager.from_queryset(PaymentQuerySet)):
    def create_for_request(
        self, service_request: ServiceRequest, now: datetime | None = None
    ) -> Payment:
        """
        Create the PENDING Payment for a settleable request.

        Copies the request's price split; total_amount is the request's
        total_price. Callers are responsible for flipping
        payout_processed in the same transaction.
        """
        now = now or timezone.now()
        return self.create(
            therapist_id=service_request.therapist_id,
            request=service_request,
            base_price=service_request.base_price,
            travel_fee=service_request.travel_fee,
            rubgo_service_fee=service_request.rubgo_service_fee,
            therapist_earnings=service_request.therapist_earnings,
            total_amount=service_request.total_price,
            currency=getattr(settings, "PAYOUT_CURRENCY", "zar"),
            payment_date=now,
            payout_date=now,
        )


class Payment(UUIDPrimaryKeyMixin, BaseModel):
    """
    Settlement of a single completed, paid ServiceRequest.

    State Flow:
        PENDING -> PROCESSING -> COMPLETED
        PROCESSING -> PENDING (gateway failure, retried next run)
        PROCESSING -> FAILED (MAX_TRANSFER_ATTEMPTS reached)
        FAILED -> PENDING (manual retry from admin)

    Fields:
        therapist_id: Therapist receiving therapist_earnings
        request: Originating ServiceRequest (one Payment per request)
        base_price / travel_fee / rubgo_service_fee / therapist_earnings /
        total_amount: Copied from the request at materialization
        status: Current FSM state
        payment_date / payout_date: Set at materialization
        processed_date: Set when the therapist transfer succeeds
        transfer_reference: Gateway transfer ID
        transfer_attempts: Gateway calls made for this payment
        last_error: Latest gateway failure
        fee_transfer: Platform fee sweep this payment's fee went into
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    therapist_id = models.CharField(
        max_length=64,
        db_index=True,
        help_text="Therapist receiving the payout",
    )

    request = models.OneToOneField(
        "bookings.ServiceRequest",
        on_delete=models.PROTECT,
        related_name="payment",
        help_text="Service request this payment settles",
    )

    fee_transfer = models.ForeignKey(
        "payments.PlatformFeeTransfer",
        on_delete=models.PROTECT,
        related_name="payments",
        null=True,
        blank=True,
        help_text="Platform fee transfer that carried this payment's service fee",
    )

    # ==========================================================================
    # Amounts (ZAR)
    # ==========================================================================

    base_price = models.DecimalField(max_digits=12, decimal_places=2)
    travel_fee = models.DecimalField(max_digits=12, decimal_places=2)
    rubgo_service_fee = models.DecimalField(max_digits=12, decimal_places=2)
    therapist_earnings = models.DecimalField(max_digits=12, decimal_places=2)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)

    currency = models.CharField(
        max_length=3,
        default="zar",
        help_text="ISO 4217 currency code (lowercase)",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PaymentState.PENDING,
        choices=PaymentState.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the payment (managed by FSM)",
    )

    payment_date = models.DateTimeField(default=timezone.now)
    payout_date = models.DateTimeField(default=timezone.now)
    processed_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the therapist transfer succeeded",
    )

    # ==========================================================================
    # Gateway
    # ==========================================================================

    transfer_reference = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Gateway transfer ID (tr_xxx)",
    )
    transfer_attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True, default="")

    objects = PaymentManager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        indexes = [
            models.Index(
                fields=["status", "updated_at"], name="payment_status_updated_idx"
            ),
            models.Index(
                fields=["therapist_id", "status"], name="payment_therapist_status_idx"
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(therapist_earnings__gte=0),
                name="payment_earnings_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Payment({self.id}, {self.status}, R{self.therapist_earnings})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=PaymentState.PENDING,
        target=PaymentState.PROCESSING,
    )
    def start_transfer(self):
        """
        Claim the payment for a gateway call.

        Transition: PENDING -> PROCESSING
        """
        self.transfer_attempts += 1

    @transition(
        field=status,
        source=PaymentState.PROCESSING,
        target=PaymentState.COMPLETED,
    )
    def complete(self, reference: str | None = None):
        """
        Record a successful therapist transfer.

        Transition: PROCESSING -> COMPLETED
        """
        self.processed_date = timezone.now()
        self.transfer_reference = reference
        self.last_error = ""

    @transition(
        field=status,
        source=PaymentState.PROCESSING,
        target=PaymentState.PENDING,
    )
    def release(self, error: str = ""):
        """
        Hand the payment back to the next run after a failed transfer.

        Transition: PROCESSING -> PENDING
        """
        self.last_error = error

    @transition(
        field=status,
        source=PaymentState.PROCESSING,
        target=PaymentState.FAILED,
    )
    def fail(self, error: str = ""):
        """
        Stop retrying automatically.

        Transition: PROCESSING -> FAILED
        """
        self.last_error = error

    @transition(
        field=status,
        source=PaymentState.FAILED,
        target=PaymentState.PENDING,
    )
    def retry(self):
        """
        Put a failed payment back in the queue with a fresh attempt budget.

        Transition: FAILED -> PENDING
        """
        self.transfer_attempts = 0
        self.last_error = ""

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_complete(self) -> bool:
        return self.status == PaymentState.COMPLETED

    @property
    def is_consistent(self) -> bool:
        """Fee and earnings add up to the amount the customer paid."""
        return (
            self.rubgo_service_fee + self.therapist_earnings
            == Decimal(self.total_amount)
        )
