"""
State machine enums for settlement models.

This module defines the state enums used by payment models with django-fsm.
"""

from payments.state_machines.states import (
    FeeTransferState,
    PaymentState,
    SettlementRunStatus,
)

__all__ = [
    "FeeTransferState",
    "PaymentState",
    "SettlementRunStatus",
]
