"""
Core views providing infrastructure endpoints.

Health checks for load balancers and settlement monitoring.
"""

import logging

from django.db import DatabaseError, connection
from django.http import JsonResponse
from django_redis import get_redis_connection
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        JsonResponse with status and component health:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"
        - redis: "connected" or "disconnected"
        - last_settlement: status of the most recent settlement run, or null

    HTTP Status Codes:
        200: Database reachable
        503: Database unreachable

    Redis backs the settlement lock; losing it blocks the next weekly run
    but not the API, so it degrades the report without failing the check.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "redis": "unknown",
        "last_settlement": None,
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        logger.exception("Health check: database unreachable")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    try:
        get_redis_connection("default").ping()
        health_status["redis"] = "connected"
    except RedisError:
        logger.warning("Health check: redis unreachable")
        health_status["redis"] = "disconnected"

    if is_healthy:
        from payments.models import SettlementRun

        last_run = SettlementRun.objects.order_by("-started_at").first()
        if last_run is not None:
            health_status["last_settlement"] = {
                "status": last_run.status,
                "started_at": last_run.started_at.isoformat(),
                "payout_failures": last_run.payout_failures,
                "fee_transfer_failed": last_run.fee_transfer_failed,
            }

    return JsonResponse(health_status, status=200 if is_healthy else 503)
