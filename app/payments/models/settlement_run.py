"""
SettlementRun model: audit record of one weekly settlement run.

The settlement service creates a run at the start, fills in counters as
it discovers, materializes and transfers, and marks it completed or
failed at the end. Dashboards and alerting read from it.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import SettlementRunStatus


class SettlementRun(UUIDPrimaryKeyMixin, BaseModel):
    """
    Tracks a settlement run execution.

    Indexes:
        - (status, started_at): For finding recent runs by status
    """

    as_of = models.DateTimeField(
        help_text="Reference time; requests created within 7 days before it are settled",
    )
    started_at = models.DateTimeField(
        default=timezone.now,
        help_text="When this settlement run started",
    )
    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When this settlement run completed (or failed)",
    )

    # Discovery and materialization
    requests_discovered = models.PositiveIntegerField(default=0)
    payments_created = models.PositiveIntegerField(default=0)
    materialization_failures = models.PositiveIntegerField(default=0)

    # Execution
    payouts_completed = models.PositiveIntegerField(default=0)
    payout_failures = models.PositiveIntegerField(default=0)
    total_payouts = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Sum of therapist_earnings transferred in this run",
    )
    total_fees = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Sum of rubgo_service_fee over payments completed in this run",
    )
    fee_transfer_failed = models.BooleanField(
        default=False,
        help_text="Whether a master account transfer failed during this run",
    )

    status = models.CharField(
        max_length=20,
        choices=SettlementRunStatus.choices,
        default=SettlementRunStatus.RUNNING,
        db_index=True,
        help_text="Current status of this settlement run",
    )
    error_message = models.TextField(
        blank=True,
        help_text="Error message if the run failed",
    )

    class Meta:
        indexes = [
            models.Index(
                fields=["status", "started_at"], name="settlement_status_started_idx"
            ),
        ]
        ordering = ["-started_at"]

    def __str__(self) -> str:
        return f"SettlementRun({self.id}, {self.status}, {self.as_of})"

    def mark_completed(self) -> None:
        self.status = SettlementRunStatus.COMPLETED
        self.completed_at = timezone.now()
        self.save()

    def mark_failed(self, error: str) -> None:
        self.status = SettlementRunStatus.FAILED
        self.error_message = error
        self.completed_at = timezone.now()
        self.save()

    @property
    def duration_seconds(self) -> float | None:
        """Calculate run duration in seconds, or None if not complete."""
        if self.completed_at and self.started_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None
