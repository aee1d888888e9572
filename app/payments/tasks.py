"""
Celery tasks for settlement processing.

Celery's autodiscovery imports this module; the task implementations live
in payments.workers.

Usage:
    from payments.tasks import run_weekly_settlement

    run_weekly_settlement.delay()
"""

from payments.workers import run_weekly_settlement

__all__ = ["run_weekly_settlement"]
