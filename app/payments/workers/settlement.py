"""
Settlement worker: the Celery entry point of the weekly settlement run.

Scheduled by celery-beat (see migration 0002_weekly_settlement_schedule)
for Monday 09:00 Africa/Johannesburg. Operators can also queue it from
the admin API.

Usage:
    from payments.workers import run_weekly_settlement

    run_weekly_settlement.delay()
    run_weekly_settlement.delay(as_of="2025-06-02T09:00:00+02:00")
"""

from __future__ import annotations

import logging

from celery import shared_task
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from payments.exceptions import SettlementError, SettlementLockError
from payments.services import SettlementService

logger = logging.getLogger(__name__)


@shared_task(bind=True, acks_late=True)
def run_weekly_settlement(self, as_of: str | None = None) -> dict:
    """
    Run the weekly settlement.

    Args:
        as_of: Optional ISO 8601 reference time; defaults to now. A naive
            value is interpreted in the project time zone.

    Returns:
        Dict with:
        - status: One of "completed", "skipped", "invalid", "failed"
        - summary: SettlementSummary.to_dict() when completed
        - error / error_code: When not completed
    """
    if as_of:
        as_of_dt = parse_datetime(as_of)
        if as_of_dt is None:
            logger.error(f"Invalid as_of for settlement run: {as_of}")
            return {
                "status": "invalid",
                "error": f"Invalid as_of timestamp: {as_of}",
                "error_code": "INVALID_AS_OF",
            }
        if timezone.is_naive(as_of_dt):
            as_of_dt = timezone.make_aware(as_of_dt)
    else:
        as_of_dt = timezone.now()

    logger.info(
        "Starting scheduled weekly settlement",
        extra={"as_of": as_of_dt.isoformat(), "task_id": self.request.id},
    )

    try:
        result = SettlementService.run_weekly_settlement(as_of=as_of_dt)
    except SettlementLockError as e:
        logger.warning(
            f"Settlement already running, skipping: {e}",
            extra={"as_of": as_of_dt.isoformat()},
        )
        return {"status": "skipped", "error": str(e), "error_code": e.error_code}
    except SettlementError as e:
        logger.error(
            f"Weekly settlement failed: {e}",
            extra={"as_of": as_of_dt.isoformat(), **e.details},
        )
        return {"status": "failed", "error": e.message, "error_code": e.error_code}

    if not result:
        return {
            "status": "invalid",
            "error": result.error,
            "error_code": result.error_code,
        }

    return {"status": "completed", "summary": result.data.to_dict()}


__all__ = ["run_weekly_settlement"]
