"""
Infrastructure components shared by the HTTP layer.

- Streaming JSON responses drained from paged iterators
"""

from __future__ import annotations

from citizen_backend.infra.streaming import JsonIteratorResponse, json_items_stream

__all__ = [
    "JsonIteratorResponse",
    "json_items_stream",
]
