"""
Payout gateways for moving settled money.

Usage:
    from payments.gateways import IdempotencyKeyGenerator, get_gateway

    gateway = get_gateway()
    gateway.transfer_to_master(
        amount=Decimal("54.00"),
        currency="zar",
        idempotency_key=IdempotencyKeyGenerator.generate("master_transfer", sweep.id),
    )
"""

from payments.gateways.base import (
    IdempotencyKeyGenerator,
    PayoutGateway,
    TransferResult,
    get_gateway,
    to_minor_units,
)
from payments.gateways.logging_gateway import LoggingPayoutGateway
from payments.gateways.stripe_gateway import StripePayoutGateway

__all__ = [
    "IdempotencyKeyGenerator",
    "LoggingPayoutGateway",
    "PayoutGateway",
    "StripePayoutGateway",
    "TransferResult",
    "get_gateway",
    "to_minor_units",
]
