"""
Settlement-specific exceptions.

This module provides a hierarchy of exceptions for the weekly settlement
run, the payout gateway and the concurrency controls around them.

Exception Hierarchy:
    PaymentError (base for settlement domain)
    ├── PaymentNotFoundError - Payment or fee transfer lookup failures
    └── SettlementError - Run aborted (request store unreachable)

    GatewayError (inherits ExternalServiceError) - Base for payout gateway errors
    ├── InvalidPayoutAccountError - Therapist has no usable payout account (permanent)
    ├── GatewayRequestError - Malformed or rejected request (permanent)
    ├── GatewayRateLimitError - Rate limited (transient)
    ├── GatewayUnavailableError - Provider unavailable (transient)
    └── GatewayTimeoutError - Request timeout (transient)

    LockAcquisitionError - Distributed lock contention (inherits ConflictError)
    └── SettlementLockError - Another settlement run holds the run lock
    InvalidStateTransitionError - FSM transition not allowed (inherits ConflictError)

Usage:
    from payments.exceptions import GatewayError, SettlementLockError

    try:
        gateway.transfer_to_therapist(...)
    except GatewayError as e:
        if e.is_retryable:
            ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError, ExternalServiceError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Settlement Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for settlement ledger operations.

    Example:
        except PaymentError as e:
            logger.error(f"Settlement operation failed: {e}")
            return Response(e.to_dict(), status=400)
    """

    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """Raised when a Payment or PlatformFeeTransfer cannot be found."""

    default_error_code: str = "PAYMENT_NOT_FOUND"


class SettlementError(PaymentError):
    """
    Raised when a settlement run has to abort.

    Only store-level failures (the request store or ledger cannot be
    queried) abort a run. Per-request and per-payment failures are
    counted in the run summary instead.
    """

    default_error_code: str = "SETTLEMENT_FAILED"


# =============================================================================
# Payout Gateway Exceptions
# =============================================================================


class GatewayError(ExternalServiceError):
    """
    Base exception for all payout gateway errors.

    Provides common attributes for gateway error handling:
    - provider_code: The provider's own error code
    - is_retryable: Whether the same transfer may succeed later

    A failed therapist transfer leaves the Payment pending regardless of
    is_retryable; the flag only feeds logging and the admin view.
    """

    default_error_code: str = "GATEWAY_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        provider_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if provider_code:
            details["provider_code"] = provider_code
        super().__init__(message, error_code=error_code, details=details)
        self.provider_code = provider_code


# -----------------------------------------------------------------------------
# Permanent Errors
# -----------------------------------------------------------------------------


class InvalidPayoutAccountError(GatewayError):
    """
    The therapist cannot receive transfers.

    Raised when no TherapistPayoutAccount exists, payouts are disabled on
    it, or the provider rejects the destination account. Needs manual
    intervention on the therapist's account.
    """

    default_error_code: str = "INVALID_PAYOUT_ACCOUNT"
    is_retryable: bool = False


class GatewayRequestError(GatewayError):
    """
    The provider rejected the request parameters.

    Usually a bug or a configuration problem (bad API key, unsupported
    currency). Logged for developer investigation.
    """

    default_error_code: str = "GATEWAY_REQUEST_REJECTED"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Transient Errors
# -----------------------------------------------------------------------------


class GatewayRateLimitError(GatewayError):
    """Rate limited by the provider."""

    default_error_code: str = "GATEWAY_RATE_LIMITED"
    is_retryable: bool = True


class GatewayUnavailableError(GatewayError):
    """
    Provider temporarily unavailable.

    Covers connection failures and provider-side 5xx errors.
    """

    default_error_code: str = "GATEWAY_UNAVAILABLE"
    is_retryable: bool = True


class GatewayTimeoutError(GatewayError):
    """
    Gateway call timed out.

    IMPORTANT: The transfer may have succeeded on the provider's side.
    The retry reuses the same idempotency key, so the provider returns
    the original transfer instead of sending the money twice.
    """

    default_error_code: str = "GATEWAY_TIMEOUT"
    is_retryable: bool = True


# =============================================================================
# Concurrency Control Exceptions
# =============================================================================


class LockAcquisitionError(ConflictError):
    """
    Raised when a distributed lock cannot be acquired.

    Attributes:
        details: Contains key and timeout information

    Note:
        Inherits from ConflictError (HTTP 409) because it represents a
        resource contention conflict.
    """

    default_error_code: str = "LOCK_ACQUISITION_FAILED"


class SettlementLockError(LockAcquisitionError):
    """
    Raised when a settlement run is already in progress.

    The run is skipped without touching any state.
    """

    default_error_code: str = "SETTLEMENT_IN_PROGRESS"


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a state machine transition is not allowed.

    Wraps django-fsm's TransitionNotAllowed in our standard error format.

    Example:
        try:
            payment.retry()
        except TransitionNotAllowed:
            raise InvalidStateTransitionError(
                f"Cannot retry payment from '{payment.status}' state",
                details={"current_state": payment.status, "transition": "retry"},
            )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Settlement domain
    "PaymentError",
    "PaymentNotFoundError",
    "SettlementError",
    # Gateway
    "GatewayError",
    "InvalidPayoutAccountError",
    "GatewayRequestError",
    "GatewayRateLimitError",
    "GatewayUnavailableError",
    "GatewayTimeoutError",
    # Concurrency control
    "LockAcquisitionError",
    "SettlementLockError",
    "InvalidStateTransitionError",
]
