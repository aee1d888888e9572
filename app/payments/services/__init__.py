"""
Settlement services.

This module provides:
- SettlementService: The weekly settlement run and manual payment retry
- PayoutReportService: Ledger aggregates for the admin dashboard

Usage:
    from payments.services import SettlementService

    result = SettlementService.run_weekly_settlement(as_of=timezone.now())

    from payments.services import PayoutReportService

    summary = PayoutReportService.get_summary()
"""

from payments.services.reporting import PayoutReportService, PayoutSummary
from payments.services.settlement_service import (
    MAX_TRANSFER_ATTEMPTS,
    SETTLEMENT_LOCK_KEY,
    STUCK_PROCESSING_MINUTES,
    SettlementService,
    SettlementSummary,
)

__all__ = [
    "MAX_TRANSFER_ATTEMPTS",
    "PayoutReportService",
    "PayoutSummary",
    "SETTLEMENT_LOCK_KEY",
    "STUCK_PROCESSING_MINUTES",
    "SettlementService",
    "SettlementSummary",
]
