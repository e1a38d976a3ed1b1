"""Tests for health check endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError


def _engine(conn: AsyncMock) -> MagicMock:
    engine = MagicMock()
    engine.connect.return_value.__aenter__.return_value = conn
    engine.connect.return_value.__aexit__.return_value = False
    return engine


class TestHealth:
    """Test liveness and readiness probes."""

    @pytest.mark.asyncio
    async def test_liveness(self, client: AsyncClient):
        """Test /health/live returns ok for a running process."""
        response = await client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_readiness_without_database(self, client: AsyncClient):
        """Test that an uninitialized database makes the instance unready."""
        with patch(
            "citizen_backend.api.health.get_engine",
            side_effect=RuntimeError("Database not initialized. Call init_db() first."),
        ):
            response = await client.get("/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        assert body["checks"]["database"] == {"ok": False, "error": "RuntimeError"}

    @pytest.mark.asyncio
    async def test_readiness_when_connection_refused(self, client: AsyncClient):
        """Test that a raw driver connection error is reported, not raised."""
        engine = MagicMock()
        engine.connect.return_value.__aenter__.side_effect = ConnectionRefusedError("db down")

        with patch("citizen_backend.api.health.get_engine", return_value=engine):
            response = await client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["checks"]["database"]["error"] == "ConnectionRefusedError"

    @pytest.mark.asyncio
    async def test_readiness_when_query_fails(self, client: AsyncClient):
        """Test that a failing SELECT 1 makes the instance unready."""
        conn = AsyncMock()
        conn.execute.side_effect = OperationalError("SELECT 1", {}, ConnectionError("reset"))

        with patch("citizen_backend.api.health.get_engine", return_value=_engine(conn)):
            response = await client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["checks"]["database"]["error"] == "OperationalError"

    @pytest.mark.asyncio
    async def test_readiness_with_database(self, client: AsyncClient):
        """Test that a reachable database reports ready with its latency."""
        conn = AsyncMock()

        with patch("citizen_backend.api.health.get_engine", return_value=_engine(conn)):
            response = await client.get("/health/ready")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        assert body["checks"]["database"]["ok"] is True
        assert body["checks"]["database"]["latency_ms"] >= 0
        conn.execute.assert_awaited_once()
