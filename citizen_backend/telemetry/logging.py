"""Structured logging configuration.

Configures structlog with JSON output in production, trace correlation,
and request tracking.

Log format (production):
    {
        "timestamp": "2026-02-17T10:30:45.123456Z",
        "level": "info",
        "event": "user_data_processing.upserted",
        "logger": "citizen_backend.services.user_data_processing",
        "trace_id": "abc123...",
        "span_id": "def456...",
        "request_id": "req_789...",
        "fiscal_code": "AAAAA***",
        "status": "PENDING"
    }

Core components never fetch a global logger on their own at call time:
handlers build a logger bound to the request subject with subject_logger()
and hand it to the service they construct.
"""

from __future__ import annotations

import logging
import sys
import uuid
from typing import Any

import structlog
from opentelemetry import trace
from structlog.types import EventDict, Processor

from citizen_backend.core.fiscal_code import redact_fiscal_code


def add_trace_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add OpenTelemetry trace and span IDs to log entries."""
    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        if ctx.is_valid:
            event_dict["trace_id"] = format(ctx.trace_id, "032x")
            event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def configure_logging(
    *,
    json_logs: bool = False,
    log_level: str = "INFO",
) -> None:
    """Configure structured logging for the application.

    Args:
        json_logs: Use JSON format (True for production, False for dev)
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_trace_context,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.RichTracebackFormatter(),
            ),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ------------------------------------------------------------------ #
# Request ID Middleware
# ------------------------------------------------------------------ #


class RequestIdMiddleware:
    """Pure ASGI middleware that generates and propagates request IDs.

    Adds a unique request_id to each request's context variables, which are
    then included in all log entries for that request. The request_id is
    also added as a response header for correlation.

    Written as plain ASGI (not BaseHTTPMiddleware) so streamed response
    bodies pass through untouched.
    """

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = f"req_{uuid.uuid4().hex[:16]}"

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        async def send_with_request_id(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode()))
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_request_id)


# ------------------------------------------------------------------ #
# Logger helpers
# ------------------------------------------------------------------ #


def subject_logger(name: str, fiscal_code: str, **context: Any) -> structlog.stdlib.BoundLogger:
    """Return a logger bound to a (redacted) citizen identifier.

    Args:
        name: Logger name, usually the caller's __name__
        fiscal_code: Citizen fiscal code; only its prefix is logged
        **context: Extra key/values to bind
    """
    return structlog.get_logger(name).bind(
        fiscal_code=redact_fiscal_code(fiscal_code), **context
    )


def clear_context() -> None:
    """Clear all context variables (useful for testing)."""
    structlog.contextvars.clear_contextvars()
