"""
Streaming JSON responses backed by a paged iterator.

The body has the shape

    {"items":[<item>,<item>,...],"page_size":<number of items>}

and is written incrementally: the opening bracket first, then one chunk per
page as soon as the page arrives from the store, then the closing part with
the item count. Memory use is bounded by one page, and the client starts
receiving data before the full result set is known.

A page fetch failure after the status line has been sent cannot be turned
into an error response any more: the failure is logged and re-raised, which
aborts the response and leaves the client with a truncated (invalid) JSON
body.

Example:
    pages = MessageService(store).open(fiscal_code)
    return JsonIteratorResponse(pages, serialize=lambda m: m.to_public())
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator, Callable
from typing import Any, Protocol, TypeVar

import structlog
from fastapi.responses import StreamingResponse

log = structlog.get_logger(__name__)

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class PageIterator(Protocol[T_co]):
    """Minimal contract drained by the streaming body."""

    async def next_page(self) -> list[T_co] | None: ...

    async def close(self) -> None: ...


def _dumps(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


async def json_items_stream(
    pages: PageIterator[T],
    serialize: Callable[[T], Any],
) -> AsyncGenerator[bytes, None]:
    """Drain ``pages`` into the chunks of a JSON items document.

    Stops at the first None (exhaustion) or at the first error; the iterator
    is closed in both cases, and when the consumer stops early.
    """
    count = 0
    try:
        yield b'{"items":['
        while True:
            try:
                page = await pages.next_page()
            except Exception as exc:
                log.error(
                    "streaming.page_failed",
                    items_streamed=count,
                    error=str(exc),
                    exc_info=True,
                )
                raise
            if page is None:
                break
            if not page:
                continue
            chunk = b",".join(_dumps(serialize(item)) for item in page)
            yield (b"," + chunk) if count else chunk
            count += len(page)
        yield b'],"page_size":' + str(count).encode() + b"}"
    finally:
        await pages.close()
    log.debug("streaming.completed", items_streamed=count)


class JsonIteratorResponse(StreamingResponse):
    """StreamingResponse that writes a paged iterator as a JSON items list."""

    media_type = "application/json"

    def __init__(
        self,
        pages: PageIterator[Any],
        *,
        serialize: Callable[[Any], Any],
        status_code: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(
            json_items_stream(pages, serialize),
            status_code=status_code,
            headers=headers,
            media_type=self.media_type,
        )
