"""
Payout gateway that only logs.

Development and staging default: every transfer is logged and succeeds
with a synthetic reference, so the full settlement flow can run without
a Stripe account.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from payments.gateways.base import TransferResult

logger = logging.getLogger(__name__)


class LoggingPayoutGateway:
    """PayoutGateway that records transfers in the log and never fails."""

    def transfer_to_therapist(
        self,
        therapist_id: str,
        amount: Decimal,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> TransferResult:
        reference = f"log_tr_{uuid.uuid4().hex[:24]}"
        logger.info(
            f"Transferring {amount} {currency.upper()} to therapist {therapist_id}",
            extra={
                "therapist_id": therapist_id,
                "amount": str(amount),
                "idempotency_key": idempotency_key,
                "reference": reference,
            },
        )
        return TransferResult(
            reference=reference,
            amount=amount,
            currency=currency,
            destination=therapist_id,
            metadata=metadata or {},
        )

    def transfer_to_master(
        self,
        amount: Decimal,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> TransferResult:
        reference = f"log_po_{uuid.uuid4().hex[:24]}"
        logger.info(
            f"Transferring {amount} {currency.upper()} in service fees to master account",
            extra={
                "amount": str(amount),
                "idempotency_key": idempotency_key,
                "reference": reference,
            },
        )
        return TransferResult(
            reference=reference,
            amount=amount,
            currency=currency,
            destination="master",
            metadata=metadata or {},
        )


__all__ = ["LoggingPayoutGateway"]
