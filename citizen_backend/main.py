"""FastAPI application entrypoint.

Application startup order:
1. Load settings (from environment)
2. Configure structured logging
3. Initialize database engine and session factory
4. Register middleware (CORS, security headers, request id)
5. Include all routers

Shutdown order:
1. Close DB connection pool
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from citizen_backend.api.router import api_v1_router, public_router
from citizen_backend.config import get_settings
from citizen_backend.core.errors import (
    QueryError,
    RecordNotFoundError,
    RecordValidationError,
)
from citizen_backend.core.security import SecurityHeadersMiddleware
from citizen_backend.database import close_db, init_db
from citizen_backend.telemetry import RequestIdMiddleware, configure_logging

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown."""
    settings = get_settings()

    # Configure structured logging first (before any log calls)
    configure_logging(
        json_logs=bool(settings.log_json),
        log_level="DEBUG" if settings.debug else "INFO",
    )

    log.info(
        "app.starting",
        environment=settings.environment,
        db_url=settings.database_url.split("@")[-1],
        messages_page_size=settings.messages_page_size,
    )

    init_db(settings)

    log.info("app.ready")
    yield

    await close_db()
    log.info("app.shutdown")


def _problem(status: int, title: str, detail: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={"title": title, "detail": detail, "status": status, **extra},
        media_type="application/problem+json",
    )


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    app = FastAPI(
        title="Citizen Backend",
        description=(
            "Citizen-facing backend: GDPR user data processing requests "
            "and message listing."
        ),
        version="0.1.0",
        docs_url="/docs" if settings.is_dev else None,
        redoc_url="/redoc" if settings.is_dev else None,
        openapi_url="/openapi.json" if settings.is_dev else None,
        lifespan=lifespan,
    )

    # ------------------------------------------------------------------ #
    # Middleware (added in reverse order - last added = first executed)
    # ------------------------------------------------------------------ #

    # In dev mode, allow all origins for easier development
    cors_origins = ["*"] if settings.is_dev else settings.cors_allowed_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=settings.is_prod,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    app.add_middleware(SecurityHeadersMiddleware, is_production=settings.is_prod)

    # Unique request ID for log correlation
    app.add_middleware(RequestIdMiddleware)

    # ------------------------------------------------------------------ #
    # Routers
    # ------------------------------------------------------------------ #
    app.include_router(public_router)
    app.include_router(api_v1_router)

    # ------------------------------------------------------------------ #
    # Exception handlers (most specific class wins)
    # ------------------------------------------------------------------ #

    @app.exception_handler(RecordValidationError)
    async def record_validation_handler(
        request: Request, exc: RecordValidationError
    ) -> JSONResponse:
        return _problem(
            400,
            "Invalid record",
            str(exc),
            errors=[e.to_dict() for e in exc.errors],
        )

    @app.exception_handler(RecordNotFoundError)
    async def record_not_found_handler(
        request: Request, exc: RecordNotFoundError
    ) -> JSONResponse:
        return _problem(404, "Not found", exc.message)

    @app.exception_handler(QueryError)
    async def query_error_handler(request: Request, exc: QueryError) -> JSONResponse:
        log.error(
            "app.query_error",
            path=request.url.path,
            method=request.method,
            error=exc.message,
            cause=repr(exc.cause),
        )
        return _problem(500, "Query error", exc.message)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        log.error(
            "app.unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return _problem(500, "Internal server error", "Internal server error")

    return app


# Module-level app instance for uvicorn
app = create_app()
