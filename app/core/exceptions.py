"""
Base exception classes shared by the settlement backend apps.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Invalid input (prices, timestamps)
    ├── ConflictError - State conflicts (locks, concurrent runs)
    └── ExternalServiceError - Payout gateway and other third-party failures

Usage:
    from core.exceptions import ConflictError

    raise ConflictError(
        "Settlement run already in progress",
        error_code="SETTLEMENT_LOCKED",
        details={"lock_key": "lock:settlement:weekly"},
    )

    # Convert to dict for API responses or task results
    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=409)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code (defaults to the class default)
        details: Additional error context
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to a serializable dict.

        Returns:
            Dict with error, error_code and (if present) details keys
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for service-layer checks such as negative prices or a naive
    settlement timestamp. Model field validation stays with Django.
    """

    default_error_code: str = "VALIDATION_ERROR"


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current state.

    Use for lock contention and invalid state transitions.
    HTTP 409 Conflict is the matching status for API responses.
    """

    default_error_code: str = "CONFLICT"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    The payout gateway errors in payments.exceptions derive from this.
    Log the original error, but do not expose provider internals to clients.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
