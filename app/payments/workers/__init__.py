"""
Workers for async settlement processing.

This module contains Celery tasks for background settlement operations:
- run_weekly_settlement: Weekly settlement run (celery-beat, Monday 09:00)

Usage:
    from payments.workers import run_weekly_settlement

    # Trigger a manual run
    run_weekly_settlement.delay()
"""

from payments.workers.settlement import run_weekly_settlement

__all__ = [
    "run_weekly_settlement",
]
