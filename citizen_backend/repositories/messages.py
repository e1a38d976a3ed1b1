"""Store adapter for the paged message listing.

Contract required by the message iterator:
- find_messages(fiscal_code) -> PagedQuery
- PagedQuery.fetch_next_page() -> Page   (one bounded batch per call)
- PagedQuery.close()                     (release the underlying cursor)

The SQL implementation keeps one server-side cursor per query: the query
owns a dedicated session for its whole lifetime, because a streamed listing
outlives the request handler that opened it.
"""

from __future__ import annotations

from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from typing import Protocol

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncScalarResult, AsyncSession, async_sessionmaker

from citizen_backend.core.errors import QueryError
from citizen_backend.models.message import MessageRecord, MessageSummary
from citizen_backend.repositories.base import translate_store_errors

log = structlog.get_logger(__name__)


@dataclass
class Page:
    """One batch of query results.

    has_more_results is the store's continuation flag: when False, no
    further page will be produced.
    """

    items: list[MessageSummary] = field(default_factory=list)
    has_more_results: bool = False


class PagedQuery(Protocol):
    async def fetch_next_page(self) -> Page: ...

    async def close(self) -> None: ...


class MessageStore(Protocol):
    def find_messages(self, fiscal_code: str) -> PagedQuery: ...


class SqlMessagePagedQuery:
    """Server-side cursor over one recipient's messages, newest first.

    Nothing touches the database until the first fetch. A page shorter than
    page_size means the cursor is drained.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        fiscal_code: str,
        page_size: int,
    ) -> None:
        self._session_factory = session_factory
        self._fiscal_code = fiscal_code
        self._page_size = page_size
        self._stack = AsyncExitStack()
        self._result: AsyncScalarResult[MessageRecord] | None = None
        self._closed = False

    async def _open(self) -> AsyncScalarResult[MessageRecord]:
        # Read-only: closing the session releases the cursor and rolls back.
        session = await self._stack.enter_async_context(self._session_factory())
        stmt = (
            select(MessageRecord)
            .where(MessageRecord.fiscal_code == self._fiscal_code)
            .order_by(MessageRecord.created_at.desc(), MessageRecord.id.desc())
            .execution_options(yield_per=self._page_size)
        )
        return await session.stream_scalars(stmt)

    async def fetch_next_page(self) -> Page:
        if self._closed:
            raise QueryError("Paged query already closed", record_id=self._fiscal_code)
        with translate_store_errors("Error while fetching messages page", self._fiscal_code):
            if self._result is None:
                self._result = await self._open()
            rows = await self._result.fetchmany(self._page_size)
            items = [MessageSummary.model_validate(row) for row in rows]
        return Page(items=items, has_more_results=len(items) == self._page_size)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            if self._result is not None:
                await self._result.close()
        finally:
            await self._stack.aclose()


class SqlMessageRepository:
    """PostgreSQL-backed MessageStore."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        page_size: int,
    ) -> None:
        self._session_factory = session_factory
        self._page_size = page_size

    def find_messages(self, fiscal_code: str) -> SqlMessagePagedQuery:
        log.debug("messages.store.query_opened", page_size=self._page_size)
        return SqlMessagePagedQuery(self._session_factory, fiscal_code, self._page_size)
