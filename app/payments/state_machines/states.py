"""
State enums for settlement models.

This module defines the state enums used by payment models with django-fsm.
These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Payment States:
    pending → processing → completed
    processing → pending (transfer failed, retried next run)
    processing → failed (attempts exhausted) → pending (manual retry)

PlatformFeeTransfer States:
    pending → completed
    pending → failed → completed (re-attempted next run)
"""

from django.db import models


class PaymentState(models.TextChoices):
    """
    States for the Payment model lifecycle.

    Terminal states: COMPLETED (FAILED can be retried manually)

    State Flow:
        PENDING → PROCESSING → COMPLETED
        PROCESSING → PENDING (gateway rejected, picked up next run)
        PROCESSING → FAILED (MAX_TRANSFER_ATTEMPTS reached)
        FAILED → PENDING (admin retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class FeeTransferState(models.TextChoices):
    """
    States for the PlatformFeeTransfer model lifecycle.

    State Flow:
        PENDING → COMPLETED
        PENDING → FAILED → COMPLETED (re-attempted by a later run)
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class SettlementRunStatus(models.TextChoices):
    """Status of a weekly settlement run."""

    RUNNING = "running", "Running"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


__all__ = [
    "PaymentState",
    "FeeTransferState",
    "SettlementRunStatus",
]
