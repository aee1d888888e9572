"""
PlatformFeeTransfer model: a service-fee sweep to the master account.

Each settlement run that completes at least one therapist transfer records
the sum of those payments' service fees as one PlatformFeeTransfer. The
amount is fixed at creation; a failed sweep is re-attempted by later runs
with the stored amount, never by re-summing completed payments.

Usage:
    from payments.models import PlatformFeeTransfer

    sweep = PlatformFeeTransfer.objects.create(
        settlement_run=run,
        amount=Decimal("54.00"),
    )
    sweep.complete(reference="po_123")
    sweep.save()
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.managers import BaseQuerySet
from core.model_mixins import MetadataMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import FeeTransferState


class PlatformFeeTransferQuerySet(BaseQuerySet):
    def outstanding(self) -> PlatformFeeTransferQuerySet:
        """Sweeps whose money has not reached the master account yet."""
        return self.exclude(status=FeeTransferState.COMPLETED)


class PlatformFeeTransfer(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
    """
    Transfer of accumulated service fees to the platform master account.

    State Flow:
        PENDING -> COMPLETED
        PENDING -> FAILED -> COMPLETED (later run)
        FAILED -> FAILED (later run failed again)

    Fields:
        settlement_run: Run whose completed payments produced the amount
        amount: Sum of rubgo_service_fee over those payments
        currency: ISO 4217 currency code
        status: Current FSM state
        transfer_reference: Gateway reference once transferred
        attempts: Gateway calls made for this sweep
        last_error: Latest gateway failure
        completed_at: When the master transfer succeeded
    """

    settlement_run = models.ForeignKey(
        "payments.SettlementRun",
        on_delete=models.PROTECT,
        related_name="fee_transfers",
        help_text="Settlement run that accumulated these fees",
    )

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(
        max_length=3,
        default="zar",
        help_text="ISO 4217 currency code (lowercase)",
    )

    status = FSMField(
        default=FeeTransferState.PENDING,
        choices=FeeTransferState.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the fee transfer (managed by FSM)",
    )

    transfer_reference = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Gateway reference for the master account transfer",
    )
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True, default="")
    completed_at = models.DateTimeField(null=True, blank=True)

    objects = PlatformFeeTransferQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Platform Fee Transfer"
        verbose_name_plural = "Platform Fee Transfers"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="fee_transfer_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"PlatformFeeTransfer({self.id}, {self.status}, R{self.amount})"

    @transition(
        field=status,
        source=[FeeTransferState.PENDING, FeeTransferState.FAILED],
        target=FeeTransferState.COMPLETED,
    )
    def complete(self, reference: str | None = None):
        """
        Record the successful master account transfer.

        Transition: PENDING/FAILED -> COMPLETED
        """
        self.attempts += 1
        self.transfer_reference = reference
        self.completed_at = timezone.now()
        self.last_error = ""

    @transition(
        field=status,
        source=[FeeTransferState.PENDING, FeeTransferState.FAILED],
        target=FeeTransferState.FAILED,
    )
    def fail(self, error: str = ""):
        """
        Record a failed master account transfer; later runs re-attempt it.

        Transition: PENDING/FAILED -> FAILED
        """
        self.attempts += 1
        self.last_error = error
