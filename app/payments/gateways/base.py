"""
Payout gateway interface and shared helpers.

The settlement run moves money through a narrow two-operation interface so
the real provider can be swapped for a test double. Implementations:

- StripePayoutGateway: Stripe Connect transfers and platform payouts
- LoggingPayoutGateway: Logs the transfer and returns a synthetic reference

Configuration (via settings):
- PAYOUT_GATEWAY_CLASS: Dotted path of the gateway class to use

Usage:
    from payments.gateways import get_gateway

    gateway = get_gateway()
    result = gateway.transfer_to_therapist(
        therapist_id="ther_42",
        amount=Decimal("396.00"),
        currency="zar",
        idempotency_key=IdempotencyKeyGenerator.generate("therapist_transfer", payment.id),
    )
    result.reference  # "tr_..."
"""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from django.conf import settings
from django.utils.module_loading import import_string

if TYPE_CHECKING:
    from typing import Any

DEFAULT_GATEWAY_CLASS = "payments.gateways.logging_gateway.LoggingPayoutGateway"


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class TransferResult:
    """
    Result of a successful gateway transfer.

    Attributes:
        reference: Provider transfer ID (tr_xxx, po_xxx, ...)
        amount: Amount moved, in currency units
        currency: Currency code
        destination: Destination account identifier
        metadata: Attached metadata
        raw_response: Full provider response (for debugging)
    """

    reference: str
    amount: Decimal
    currency: str
    destination: str = ""
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class PayoutGateway(Protocol):
    """
    Protocol for moving settled money out of the platform.

    Both operations either return a TransferResult or raise a
    payments.exceptions.GatewayError subclass. Callers pass a stable
    idempotency_key per Payment / fee transfer so a retried call cannot
    move the money twice.
    """

    def transfer_to_therapist(
        self,
        therapist_id: str,
        amount: Decimal,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> TransferResult:
        """Move amount to the therapist's payout account."""
        ...

    def transfer_to_master(
        self,
        amount: Decimal,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> TransferResult:
        """Move amount into the platform's master settlement account."""
        ...


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for gateway calls.

    Format: "{operation}:{entity_id}:{hash}"

    Keys are derived only from the operation and the entity, so every
    attempt for the same Payment or fee transfer reuses the same key.

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation="therapist_transfer",
            entity_id=payment.id,
        )
        # Result: "therapist_transfer:550e8400-e29b-41d4-a716-446655440000:a1b2c3d4"
    """

    @staticmethod
    def generate(operation: str, entity_id: uuid.UUID | str) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{short_hash}"


# =============================================================================
# Helpers
# =============================================================================


def to_minor_units(amount: Decimal) -> int:
    """Convert a currency amount to cents."""
    return int((Decimal(amount) * 100).to_integral_value())


def get_gateway() -> PayoutGateway:
    """Instantiate the gateway named by settings.PAYOUT_GATEWAY_CLASS."""
    dotted_path = getattr(settings, "PAYOUT_GATEWAY_CLASS", None) or DEFAULT_GATEWAY_CLASS
    gateway_class = import_string(dotted_path)
    return gateway_class()


__all__ = [
    "IdempotencyKeyGenerator",
    "PayoutGateway",
    "TransferResult",
    "get_gateway",
    "to_minor_units",
]
