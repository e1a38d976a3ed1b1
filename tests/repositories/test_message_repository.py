"""Tests for the SQL paged message query (mocked session)."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from citizen_backend.core.errors import QueryError
from citizen_backend.models.message import MessageRecord, MessageSummary
from citizen_backend.repositories.messages import SqlMessageRepository


def _record(n, fiscal_code):
    return MessageRecord(
        id=f"msg-{n:03d}",
        fiscal_code=fiscal_code,
        indexed_id=f"msg-{n:03d}",
        sender_service_id="tax-office",
        sender_user_id="operator-1",
        is_pending=False,
        time_to_live_seconds=3600,
        created_at=datetime(2026, 10, 1, tzinfo=UTC) - timedelta(minutes=n),
    )


@pytest.fixture
def streamed_result():
    result = MagicMock()
    result.fetchmany = AsyncMock()
    result.close = AsyncMock()
    return result


@pytest.fixture
def session(streamed_result):
    mock = AsyncMock(spec=AsyncSession)
    mock.stream_scalars = AsyncMock(return_value=streamed_result)
    return mock


@pytest.fixture
def session_factory(session):
    """async_sessionmaker stand-in whose sessions are async context managers."""
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = session
    factory.return_value.__aexit__.return_value = False
    return factory


class TestSqlMessagePagedQuery:
    """Test the server-side cursor wrapper."""

    @pytest.mark.asyncio
    async def test_find_messages_is_lazy(self, session_factory, fiscal_code):
        """Test that no session is opened before the first fetch."""
        repo = SqlMessageRepository(session_factory, page_size=2)

        query = repo.find_messages(fiscal_code)
        await query.close()

        session_factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_full_page_reports_continuation(
        self, session_factory, session, streamed_result, fiscal_code
    ):
        """Test that a full page has more results and a short page ends."""
        streamed_result.fetchmany.side_effect = [
            [_record(1, fiscal_code), _record(2, fiscal_code)],
            [_record(3, fiscal_code)],
        ]
        query = SqlMessageRepository(session_factory, page_size=2).find_messages(fiscal_code)

        first = await query.fetch_next_page()
        second = await query.fetch_next_page()

        assert [m.id for m in first.items] == ["msg-001", "msg-002"]
        assert first.has_more_results is True
        assert [m.id for m in second.items] == ["msg-003"]
        assert second.has_more_results is False
        assert all(isinstance(m, MessageSummary) for m in first.items)
        session.stream_scalars.assert_awaited_once()
        streamed_result.fetchmany.assert_awaited_with(2)

    @pytest.mark.asyncio
    async def test_query_is_scoped_and_newest_first(
        self, session_factory, session, streamed_result, fiscal_code
    ):
        """Test the filter and ordering of the streamed select."""
        streamed_result.fetchmany.return_value = []
        query = SqlMessageRepository(session_factory, page_size=5).find_messages(fiscal_code)

        await query.fetch_next_page()

        stmt = session.stream_scalars.await_args.args[0]
        sql = str(stmt.compile(dialect=postgresql.dialect()))
        assert "WHERE messages.fiscal_code =" in sql
        assert "ORDER BY messages.created_at DESC, messages.id DESC" in sql

    @pytest.mark.asyncio
    async def test_close_releases_cursor_and_session(
        self, session_factory, streamed_result, fiscal_code
    ):
        """Test that close() closes the result and the dedicated session once."""
        streamed_result.fetchmany.return_value = []
        query = SqlMessageRepository(session_factory, page_size=2).find_messages(fiscal_code)
        await query.fetch_next_page()

        await query.close()
        await query.close()

        streamed_result.close.assert_awaited_once()
        session_factory.return_value.__aexit__.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fetch_after_close_fails(self, session_factory, fiscal_code):
        """Test that a closed query cannot be fetched from."""
        query = SqlMessageRepository(session_factory, page_size=2).find_messages(fiscal_code)
        await query.close()

        with pytest.raises(QueryError, match="already closed"):
            await query.fetch_next_page()

    @pytest.mark.asyncio
    async def test_database_error_becomes_query_error(
        self, session_factory, session, fiscal_code
    ):
        """Test that a failed page fetch is wrapped and the session still released."""
        session.stream_scalars.side_effect = OperationalError(
            "SELECT", {}, ConnectionError("down")
        )
        query = SqlMessageRepository(session_factory, page_size=2).find_messages(fiscal_code)

        with pytest.raises(QueryError, match="fetching messages page"):
            await query.fetch_next_page()

        await query.close()
        session_factory.return_value.__aexit__.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refused_connection_becomes_query_error(
        self, session_factory, session, fiscal_code
    ):
        """Test that a raw driver OSError is wrapped like any store failure."""
        refused = ConnectionRefusedError("db down")
        session.stream_scalars.side_effect = refused
        query = SqlMessageRepository(session_factory, page_size=2).find_messages(fiscal_code)

        with pytest.raises(QueryError) as exc_info:
            await query.fetch_next_page()

        assert exc_info.value.cause is refused
