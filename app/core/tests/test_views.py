"""
Tests for the health check endpoint.
"""

from unittest.mock import MagicMock

import pytest
from django.db import DatabaseError
from django.urls import reverse
from redis.exceptions import ConnectionError as RedisConnectionError

from payments.tests.factories import SettlementRunFactory


@pytest.fixture
def redis_up(mocker):
    connection = MagicMock()
    connection.ping.return_value = True
    return mocker.patch("core.views.get_redis_connection", return_value=connection)


@pytest.mark.django_db
class TestHealthCheck:
    def test_healthy(self, client, redis_up):
        response = client.get(reverse("health_check"))

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["redis"] == "connected"
        assert body["last_settlement"] is None

    def test_reports_last_settlement(self, client, redis_up):
        run = SettlementRunFactory()
        run.mark_failed("ledger unavailable")

        body = client.get(reverse("health_check")).json()

        assert body["last_settlement"]["status"] == "failed"
        assert body["last_settlement"]["fee_transfer_failed"] is False

    def test_redis_down_degrades_only(self, client, mocker):
        mocker.patch(
            "core.views.get_redis_connection",
            side_effect=RedisConnectionError("refused"),
        )

        response = client.get(reverse("health_check"))

        assert response.status_code == 200
        assert response.json()["redis"] == "disconnected"

    def test_database_down(self, client, redis_up, mocker):
        cursor = mocker.patch("core.views.connection.cursor")
        cursor.side_effect = DatabaseError("no connection")

        response = client.get(reverse("health_check"))

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "unhealthy"
        assert body["database"] == "disconnected"
        assert body["last_settlement"] is None
