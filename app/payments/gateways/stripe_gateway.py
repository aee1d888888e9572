"""
Stripe implementation of the payout gateway.

Therapist payouts are Stripe Connect transfers from the platform balance
to the therapist's connected account. The fee sweep is a Stripe payout
from the platform balance to the master bank account.

Features:
- Configurable timeouts on all API calls
- Automatic error translation to gateway exceptions
- Structured logging with timing metrics
- Idempotency keys forwarded to Stripe and stored on the created object

Stripe forgets idempotency keys after about 24 hours, but a failed or
interrupted transfer is only retried by the next weekly run. Before creating
a transfer or payout the gateway therefore looks for one already created
with the same key (transfer_group for transfers, metadata for payouts) and
returns it instead of moving the money again.

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MASTER_PAYOUT_DESTINATION: Optional bank account / card ID for
  the master payout (Stripe's default external account otherwise)
"""

from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import TYPE_CHECKING

import stripe
from django.conf import settings

from payments.exceptions import (
    GatewayRateLimitError,
    GatewayRequestError,
    GatewayTimeoutError,
    GatewayUnavailableError,
    InvalidPayoutAccountError,
)
from payments.gateways.base import TransferResult, to_minor_units
from payments.models import TherapistPayoutAccount

if TYPE_CHECKING:
    from typing import Any

# Metadata key holding the settlement idempotency key on Stripe objects
IDEMPOTENCY_METADATA_KEY = "settlement_idempotency_key"

# How far back to search payouts for an earlier sweep attempt
PAYOUT_LOOKBACK_DAYS = 90

# Payout states in which the money did not leave the platform
UNPAID_PAYOUT_STATUSES = frozenset({"failed", "canceled"})


class StripePayoutGateway:
    """
    PayoutGateway backed by Stripe Connect.

    Thread-safe for use from Celery workers; no instance state besides
    configuration.
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key and timeout."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    # =========================================================================
    # PayoutGateway
    # =========================================================================

    def transfer_to_therapist(
        self,
        therapist_id: str,
        amount: Decimal,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> TransferResult:
        """
        Transfer earnings to the therapist's connected account.

        Raises:
            InvalidPayoutAccountError: No ready payout account, or Stripe
                rejected the destination
            GatewayRateLimitError / GatewayUnavailableError /
            GatewayTimeoutError: Transient Stripe failures
            GatewayRequestError: Stripe rejected the request
        """
        account = TherapistPayoutAccount.objects.filter(
            therapist_id=therapist_id
        ).first()
        if account is None or not account.is_ready_for_payouts:
            raise InvalidPayoutAccountError(
                f"Therapist {therapist_id} has no payout-enabled account",
                details={"therapist_id": therapist_id},
            )

        self._configure_stripe()
        log_context = {
            "operation": "transfer_to_therapist",
            "therapist_id": therapist_id,
            "destination_account": account.stripe_account_id,
            "amount": str(amount),
            "currency": currency,
            "idempotency_key": idempotency_key,
        }

        start_time = time.time()
        self.logger.info("Starting Stripe operation", extra=log_context)

        try:
            transfer = self._find_existing_transfer(idempotency_key)
            if transfer is not None:
                self.logger.warning(
                    "Stripe transfer already exists for this key, not creating another",
                    extra={**log_context, "transfer_id": transfer.id},
                )
            else:
                transfer = stripe.Transfer.create(
                    amount=to_minor_units(amount),
                    currency=currency,
                    destination=account.stripe_account_id,
                    transfer_group=idempotency_key,
                    metadata={
                        **(metadata or {}),
                        IDEMPOTENCY_METADATA_KEY: idempotency_key,
                    },
                    idempotency_key=idempotency_key,
                )
        except stripe.StripeError as e:
            self._handle_stripe_error(e, log_context, start_time)
            raise

        self.logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "transfer_id": transfer.id,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )
        return TransferResult(
            reference=transfer.id,
            amount=Decimal(transfer.amount) / 100,
            currency=transfer.currency,
            destination=account.stripe_account_id,
            metadata=dict(transfer.metadata or {}),
            raw_response=transfer.to_dict(),
        )

    def transfer_to_master(
        self,
        amount: Decimal,
        currency: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> TransferResult:
        """Pay the accumulated service fees out to the master bank account."""
        self._configure_stripe()
        destination = getattr(settings, "STRIPE_MASTER_PAYOUT_DESTINATION", "")
        log_context = {
            "operation": "transfer_to_master",
            "amount": str(amount),
            "currency": currency,
            "destination": destination or "default",
            "idempotency_key": idempotency_key,
        }

        start_time = time.time()
        self.logger.info("Starting Stripe operation", extra=log_context)

        payout_params: dict[str, Any] = {
            "amount": to_minor_units(amount),
            "currency": currency,
            "metadata": {**(metadata or {}), IDEMPOTENCY_METADATA_KEY: idempotency_key},
        }
        if destination:
            payout_params["destination"] = destination

        try:
            payout = self._find_existing_payout(idempotency_key)
            if payout is not None:
                self.logger.warning(
                    "Stripe payout already exists for this key, not creating another",
                    extra={**log_context, "payout_id": payout.id},
                )
            else:
                payout = stripe.Payout.create(
                    idempotency_key=idempotency_key,
                    **payout_params,
                )
        except stripe.StripeError as e:
            self._handle_stripe_error(e, log_context, start_time)
            raise

        self.logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "payout_id": payout.id,
                "duration_ms": (time.time() - start_time) * 1000,
            },
        )
        return TransferResult(
            reference=payout.id,
            amount=Decimal(payout.amount) / 100,
            currency=payout.currency,
            destination=destination,
            metadata=dict(payout.metadata or {}),
            raw_response=payout.to_dict(),
        )

    # =========================================================================
    # Earlier Attempts
    # =========================================================================

    @staticmethod
    def _find_existing_transfer(idempotency_key: str):
        """Transfer created by an earlier attempt with this key, if any."""
        transfers = stripe.Transfer.list(transfer_group=idempotency_key, limit=10)
        for transfer in transfers.data:
            if not transfer.reversed:
                return transfer
        return None

    @staticmethod
    def _find_existing_payout(idempotency_key: str):
        """Payout created by an earlier attempt with this key, if any."""
        cutoff = int(time.time()) - PAYOUT_LOOKBACK_DAYS * 24 * 60 * 60
        payouts = stripe.Payout.list(created={"gte": cutoff}, limit=100)
        for payout in payouts.auto_paging_iter():
            if payout.status in UNPAID_PAYOUT_STATUSES:
                continue
            if (payout.metadata or {}).get(IDEMPOTENCY_METADATA_KEY) == idempotency_key:
                return payout
        return None

    # =========================================================================
    # Error Handling
    # =========================================================================

    def _handle_stripe_error(
        self,
        error: stripe.StripeError,
        log_context: dict[str, Any],
        start_time: float,
    ) -> None:
        """
        Translate Stripe exceptions to gateway exceptions.

        Raises:
            InvalidPayoutAccountError: Destination account rejected
            GatewayRequestError: Invalid parameters or authentication
            GatewayRateLimitError: Rate limited
            GatewayTimeoutError: Request timed out
            GatewayUnavailableError: Connection or server error
        """
        log_context = {
            **log_context,
            "duration_ms": (time.time() - start_time) * 1000,
        }

        if isinstance(error, stripe.InvalidRequestError):
            self.logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            if "account" in str(error).lower():
                raise InvalidPayoutAccountError(str(error), provider_code=error.code)
            raise GatewayRequestError(str(error), provider_code=error.code)

        if isinstance(error, stripe.RateLimitError):
            self.logger.warning("Rate limited by Stripe", extra=log_context)
            raise GatewayRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                provider_code="rate_limit",
            )

        if isinstance(error, stripe.APIConnectionError):
            if "timed out" in str(error).lower():
                self.logger.warning("Stripe request timed out", extra=log_context)
                raise GatewayTimeoutError(
                    "Stripe request timed out. Please retry.",
                    provider_code="timeout",
                )
            self.logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            raise GatewayUnavailableError(
                "Could not connect to Stripe. Please retry.",
                provider_code="api_connection_error",
            )

        if isinstance(error, stripe.AuthenticationError):
            self.logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise GatewayRequestError(
                "Stripe authentication failed",
                provider_code="authentication_error",
            )

        self.logger.error(
            f"Stripe API error: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise GatewayUnavailableError(
            "Stripe service error. Please retry.",
            provider_code="api_error",
        )


__all__ = ["StripePayoutGateway"]
