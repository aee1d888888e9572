"""
Payout reporting for the admin dashboard.

Aggregates the Payment ledger into the totals shown on the payment
management screen: revenue, platform fees, therapist earnings, and what
is still owed versus already paid out.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db.models import Count, DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce

from core.services import BaseService

from payments.models import Payment, PlatformFeeTransfer
from payments.state_machines import PaymentState

if TYPE_CHECKING:
    from datetime import datetime

ZERO = Decimal("0.00")


@dataclass
class PayoutSummary:
    total_revenue: Decimal
    service_fees: Decimal
    therapist_earnings: Decimal
    pending_payouts: Decimal
    completed_payouts: Decimal
    failed_payouts: Decimal
    outstanding_platform_fees: Decimal
    payment_count: int


def _sum(field_name: str, condition: Q | None = None) -> Coalesce:
    return Coalesce(
        Sum(field_name, filter=condition),
        Value(ZERO),
        output_field=DecimalField(max_digits=14, decimal_places=2),
    )


class PayoutReportService(BaseService):
    """Read-only aggregates over the settlement ledger."""

    @classmethod
    def get_summary(
        cls, since: datetime | None = None, until: datetime | None = None
    ) -> PayoutSummary:
        """
        Totals across all payments, optionally limited by payment creation time.

        pending_payouts counts earnings not yet transferred (PENDING and
        PROCESSING); failed_payouts counts payments parked for manual retry.
        """
        payments = Payment.objects.all()
        if since is not None:
            payments = payments.filter(created_at__gte=since)
        if until is not None:
            payments = payments.filter(created_at__lte=until)

        # Aliases must not shadow model fields referenced by later aggregates
        totals = payments.aggregate(
            revenue=_sum("total_amount"),
            fees=_sum("rubgo_service_fee"),
            earnings=_sum("therapist_earnings"),
            pending=_sum(
                "therapist_earnings",
                Q(status__in=[PaymentState.PENDING, PaymentState.PROCESSING]),
            ),
            completed=_sum(
                "therapist_earnings", Q(status=PaymentState.COMPLETED)
            ),
            failed=_sum("therapist_earnings", Q(status=PaymentState.FAILED)),
            count=Count("id"),
        )
        outstanding_fees = PlatformFeeTransfer.objects.outstanding().aggregate(
            total=_sum("amount")
        )["total"]

        return PayoutSummary(
            total_revenue=totals["revenue"],
            service_fees=totals["fees"],
            therapist_earnings=totals["earnings"],
            pending_payouts=totals["pending"],
            completed_payouts=totals["completed"],
            failed_payouts=totals["failed"],
            outstanding_platform_fees=outstanding_fees,
            payment_count=totals["count"],
        )


__all__ = ["PayoutReportService", "PayoutSummary"]
