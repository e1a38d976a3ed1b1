"""Lazy, page-at-a-time retrieval of a citizen's messages.

MessagePageIterator wraps one store-level paged query and exposes it as a
forward-only sequence of pages. Each call to next_page() fetches at most one
page; nothing is buffered beyond the page being returned, and a page is
never re-fetched.

State machine:

    OPEN --(page with continuation)--> OPEN
    OPEN --(no continuation / empty page)--> EXHAUSTED
    OPEN --(fetch failure)--> FAILED

Once EXHAUSTED or FAILED, the underlying query is closed and any further
next_page() call raises IteratorStateError.

Usage:
    async with service.open(fiscal_code) as pages:
        async for page in pages:
            flush(page)
"""

from __future__ import annotations

from enum import StrEnum
from types import TracebackType

import structlog

from citizen_backend.core.errors import IteratorStateError, QueryError
from citizen_backend.models.message import MessageSummary
from citizen_backend.repositories.messages import MessageStore, PagedQuery

_module_log = structlog.get_logger(__name__)


class IteratorState(StrEnum):
    OPEN = "open"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


class MessagePageIterator:
    """Single-use handle over a paged message query.

    The caller owns the handle; the store owns the cursor behind it. Use it
    as an async context manager so the cursor is released when the consumer
    stops early, including on error.
    """

    def __init__(
        self,
        query: PagedQuery,
        *,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._query = query
        self._log = log if log is not None else _module_log
        self._state = IteratorState.OPEN
        self._has_more = True
        self._pages_fetched = 0
        self._released = False

    @property
    def state(self) -> IteratorState:
        return self._state

    @property
    def pages_fetched(self) -> int:
        return self._pages_fetched

    async def next_page(self) -> list[MessageSummary] | None:
        """Fetch the next page.

        Returns:
            The page (possibly empty when the store reports continuation),
            or None once the query is exhausted.

        Raises:
            QueryError: The page fetch failed; the iterator is now FAILED.
                Any other exception raised by the store also leaves it FAILED.
            IteratorStateError: The iterator had already terminated
        """
        if self._state is not IteratorState.OPEN:
            raise IteratorStateError(f"Message iterator is {self._state}; no further pages")

        if not self._has_more:
            await self._finish(IteratorState.EXHAUSTED)
            return None

        try:
            page = await self._query.fetch_next_page()
        except Exception as exc:
            # Whatever the store raised, the handle is finished.
            self._log.error(
                "messages.page_fetch_failed",
                pages_fetched=self._pages_fetched,
                error_type=type(exc).__name__,
                error=exc.message if isinstance(exc, QueryError) else str(exc),
            )
            await self._finish(IteratorState.FAILED)
            raise

        if not page.items and not page.has_more_results:
            await self._finish(IteratorState.EXHAUSTED)
            return None

        self._has_more = page.has_more_results
        self._pages_fetched += 1
        self._log.debug(
            "messages.page_fetched",
            page=self._pages_fetched,
            items=len(page.items),
            has_more=page.has_more_results,
        )
        return page.items

    async def close(self) -> None:
        """Release the underlying query. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        await self._query.close()

    async def _finish(self, state: IteratorState) -> None:
        self._state = state
        self._log.debug(
            "messages.iterator_finished",
            state=str(state),
            pages_fetched=self._pages_fetched,
        )
        await self.close()

    def __aiter__(self) -> MessagePageIterator:
        return self

    async def __anext__(self) -> list[MessageSummary]:
        page = await self.next_page()
        if page is None:
            raise StopAsyncIteration
        return page

    async def __aenter__(self) -> MessagePageIterator:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()


class MessageService:
    """Entry point for listing a citizen's messages."""

    def __init__(
        self,
        store: MessageStore,
        *,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._store = store
        self._log = log if log is not None else _module_log

    def open(self, fiscal_code: str) -> MessagePageIterator:
        """Bind a new iterator to the recipient's messages, newest first.

        No store call happens until the first next_page().
        """
        query = self._store.find_messages(fiscal_code)
        self._log.debug("messages.iterator_opened")
        return MessagePageIterator(query, log=self._log)
