"""Telemetry package for observability.

This package contains structured logging with trace correlation and the
request id middleware.
"""

from __future__ import annotations

from citizen_backend.telemetry.logging import (
    RequestIdMiddleware,
    clear_context,
    configure_logging,
    subject_logger,
)

__all__ = [
    "RequestIdMiddleware",
    "clear_context",
    "configure_logging",
    "subject_logger",
]
