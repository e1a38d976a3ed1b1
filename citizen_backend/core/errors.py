"""Error taxonomy shared by repositories, services and handlers.

- RecordValidationError: a record failed shape validation before being
  persisted. Client-input problem, never retried.
- QueryError: a store read/write/page fetch failed. Treated as transient
  infrastructure failure and surfaced to the caller as-is.
- RecordNotFoundError: the store reported the requested record as missing.
- IteratorStateError: a paged iterator was stepped after it terminated.

Absence of a record on a plain lookup is not an error: repositories return
None and the handler decides how to render it.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import ValidationError


@dataclass(frozen=True)
class FieldError:
    """A single invalid field of a candidate record."""

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class RecordValidationError(ValueError):
    """Candidate record does not satisfy its declared shape."""

    def __init__(self, record_type: str, errors: list[FieldError]) -> None:
        self.record_type = record_type
        self.errors = errors
        fields = ", ".join(e.field for e in errors) or "<unknown>"
        super().__init__(f"Invalid {record_type}: {fields}")

    @classmethod
    def from_pydantic(cls, record_type: str, exc: ValidationError) -> RecordValidationError:
        errors = [
            FieldError(
                field=".".join(str(part) for part in err["loc"]) or "__root__",
                message=err["msg"],
            )
            for err in exc.errors()
        ]
        return cls(record_type, errors)


class QueryError(Exception):
    """A store operation failed.

    Attributes:
        message: Human-readable description of the failed operation
        record_id: Identifier of the record involved, when known
        cause: Underlying exception raised by the store client
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        record_id: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.message = message
        self.record_id = record_id
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.record_id is not None:
            parts.append(f"record_id={self.record_id}")
        if self.cause is not None:
            parts.append(f"cause={self.cause!r}")
        return " | ".join(parts)


class RecordNotFoundError(QueryError):
    """The store signalled that the record does not exist."""

    status_code = 404


class IteratorStateError(RuntimeError):
    """A terminated iterator was asked for another page."""
