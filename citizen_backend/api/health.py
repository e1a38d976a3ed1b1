"""Probe endpoints for the container orchestrator.

GET /health/live   - process is up; never touches the database
GET /health/ready  - database answers a trivial query; 503 otherwise

The readiness body reports the database check with its latency so a failing
probe can be diagnosed from the orchestrator events alone.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from citizen_backend.database import get_engine

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


async def _check_database() -> dict[str, Any]:
    started = time.perf_counter()
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    # RuntimeError: engine not initialized; OSError: driver could not connect
    except (RuntimeError, SQLAlchemyError, OSError) as exc:
        log.warning("health.database_unreachable", error_type=type(exc).__name__)
        return {"ok": False, "error": type(exc).__name__}
    return {"ok": True, "latency_ms": round((time.perf_counter() - started) * 1000, 2)}


@router.get("/live")
async def liveness() -> dict:
    return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}


@router.get("/ready")
async def readiness() -> JSONResponse:
    """Report whether this instance should receive traffic."""
    database = await _check_database()
    ready = database["ok"]
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "not_ready",
            "checks": {"database": database},
            "timestamp": datetime.now(UTC).isoformat(),
        },
    )
