"""Shared helpers for store adapters."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from pydantic import ValidationError
from sqlalchemy.exc import NoResultFound, SQLAlchemyError

from citizen_backend.core.errors import QueryError, RecordNotFoundError


@contextmanager
def translate_store_errors(message: str, record_id: str | None = None) -> Iterator[None]:
    """Wrap SQLAlchemy and decoding failures into the QueryError taxonomy.

    A stored row that no longer decodes into its domain model counts as a
    query failure, not a validation error: the client did nothing wrong.
    """
    try:
        yield
    except NoResultFound as exc:
        raise RecordNotFoundError(message, record_id=record_id, cause=exc) from exc
    except SQLAlchemyError as exc:
        raise QueryError(message, record_id=record_id, cause=exc) from exc
    except ValidationError as exc:
        raise QueryError(
            f"{message}: stored record is malformed", record_id=record_id, cause=exc
        ) from exc
    except OSError as exc:
        # Connection-level failures raised by the driver before SQLAlchemy wraps them
        raise QueryError(message, record_id=record_id, cause=exc) from exc
