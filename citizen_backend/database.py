"""
Database engine and session management (SQLAlchemy 2.0 async).

Request handlers get their session from get_db_session(). Code whose lifetime
outlives the request handler opens its own session: the streamed message
listing takes one from get_session_factory(), scripts use session_scope().

Design decisions:
- Pool size tuned for a containerized API (not a massive machine)
- All models import Base from here to keep metadata centralized
- Session is committed/rolled back by the FastAPI dependency, not by
  individual repositories - this makes transaction boundaries explicit
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from citizen_backend.config import Settings, get_settings

log = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models.

    Centralizing the metadata here ensures Alembic can discover all tables
    by importing this module.
    """

    type_annotation_map: dict[Any, Any] = {}


def _build_engine(settings: Settings, *, for_test: bool = False) -> AsyncEngine:
    """Create an async SQLAlchemy engine from settings.

    Uses NullPool in test mode to avoid connection leaks between test cases.
    """
    kwargs: dict[str, Any] = {
        "echo": settings.db_echo_sql,
    }
    if for_test:
        kwargs["poolclass"] = NullPool
    else:
        kwargs.update(
            {
                "pool_size": 5,
                "max_overflow": 10,
                "pool_pre_ping": True,
                "pool_recycle": 300,  # Recycle connections every 5 minutes
            }
        )
    return create_async_engine(settings.database_url, **kwargs)


# Module-level singletons, initialized in lifespan
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_db(settings: Settings | None = None, *, for_test: bool = False) -> None:
    """Initialize the database engine and session factory.

    Called once during application startup (or test setup).
    """
    global _engine, _session_factory
    cfg = settings or get_settings()
    _engine = _build_engine(cfg, for_test=for_test)
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Avoid lazy-load issues after commit
        autoflush=True,
    )
    log.info("database.initialized", url=cfg.database_url.split("@")[-1])


async def close_db() -> None:
    """Dispose the engine and release all connections."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        log.info("database.closed")
        _engine = None
        _session_factory = None


def get_engine() -> AsyncEngine:
    """Return the initialized engine (raises if not initialized)."""
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the initialized session factory (raises if not initialized)."""
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """Open a session outside of the request dependency graph.

    Commits on success, rolls back on any exception, always closes.
    """
    session_factory = factory or get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields a database session.

    Commits on success, rolls back on any exception.

    Usage:
        @router.get("/foo")
        async def endpoint(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with session_scope() as session:
        yield session
