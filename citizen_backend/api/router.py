"""Main API router - aggregates all sub-routers.

All routes are versioned under /api/v1 except health checks.
"""

from __future__ import annotations

from fastapi import APIRouter

from citizen_backend.api import health, messages, user_data_processing

# Public router (probes)
public_router = APIRouter()
public_router.include_router(health.router)

# Versioned API router
api_v1_router = APIRouter(prefix="/api/v1")
api_v1_router.include_router(messages.router)
api_v1_router.include_router(user_data_processing.router)
