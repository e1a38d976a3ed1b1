"""User data processing request lifecycle.

A citizen submits a choice (DOWNLOAD, DELETE). The service derives the
record id from (fiscal_code, choice), reads whatever is stored, computes the
next status from the stored one and writes the result back.

Status transitions on citizen submission:

    | current            | next     |
    |--------------------|----------|
    | (absent)           | PENDING  |
    | PENDING            | PENDING  |
    | WIP                | WIP      |
    | CLOSED             | PENDING  |

The caller never supplies a status. The read and the write are two separate
store calls, so two concurrent submissions for the same pair may both read
the same prior state; the last write wins.
"""

from __future__ import annotations

from datetime import UTC, datetime

import structlog
from pydantic import ValidationError

from citizen_backend.core.errors import (
    QueryError,
    RecordNotFoundError,
    RecordValidationError,
)
from citizen_backend.models.user_data_processing import (
    UserDataProcessing,
    UserDataProcessingChoice,
    UserDataProcessingStatus,
    make_user_data_processing_id,
)
from citizen_backend.repositories.user_data_processing import UserDataProcessingStore

_module_log = structlog.get_logger(__name__)


_TRANSITIONS: dict[UserDataProcessingStatus | None, UserDataProcessingStatus] = {
    None: UserDataProcessingStatus.PENDING,
    UserDataProcessingStatus.PENDING: UserDataProcessingStatus.PENDING,
    UserDataProcessingStatus.WIP: UserDataProcessingStatus.WIP,
    UserDataProcessingStatus.CLOSED: UserDataProcessingStatus.PENDING,
}


def next_status(current: UserDataProcessingStatus | None) -> UserDataProcessingStatus:
    """Status a citizen submission moves a request to."""
    return _TRANSITIONS[current]


class UserDataProcessingService:
    """Idempotent upsert and lookup of a citizen's processing requests.

    Usage:
        service = UserDataProcessingService(
            SqlUserDataProcessingRepository(db),
            log=subject_logger(__name__, fiscal_code),
        )
        request = await service.upsert(fiscal_code, UserDataProcessingChoice.DOWNLOAD)
    """

    def __init__(
        self,
        store: UserDataProcessingStore,
        *,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._store = store
        self._log = log if log is not None else _module_log

    async def upsert(
        self,
        fiscal_code: str,
        choice: UserDataProcessingChoice,
    ) -> UserDataProcessing:
        """Create or refresh the request for (fiscal_code, choice).

        Args:
            fiscal_code: Owner of the request
            choice: Kind of processing requested

        Returns:
            The persisted request

        Raises:
            QueryError: Reading the previous version or writing failed
            RecordValidationError: The candidate record is malformed
        """
        request_id = make_user_data_processing_id(choice, fiscal_code)

        try:
            previous = await self._store.find_one(fiscal_code, request_id)
        except RecordNotFoundError as exc:
            # Only the lookup endpoint renders not-found; here it is a failed read.
            raise QueryError(
                "Error while retrieving a previous version of user data processing",
                record_id=request_id,
                cause=exc,
            ) from exc
        current_status = previous.status if previous is not None else None
        status = next_status(current_status)

        try:
            candidate = UserDataProcessing(
                fiscal_code=fiscal_code,
                user_data_processing_id=request_id,
                choice=choice,
                status=status,
                created_at=datetime.now(UTC),
            )
        except ValidationError as exc:
            error = RecordValidationError.from_pydantic("UserDataProcessing", exc)
            self._log.warning(
                "user_data_processing.invalid",
                errors=[e.to_dict() for e in error.errors],
            )
            raise error from exc

        persisted = await self._store.create_or_replace(candidate)

        self._log.info(
            "user_data_processing.upserted",
            choice=str(choice),
            previous_status=str(current_status) if current_status else None,
            status=str(persisted.status),
        )
        return persisted

    async def find_one(
        self,
        fiscal_code: str,
        user_data_processing_id: str,
    ) -> UserDataProcessing | None:
        """Return the stored request with the given id, if any.

        Absence is a normal outcome and yields None.

        Raises:
            RecordNotFoundError: The store reported the record as missing
            QueryError: Any other store failure
        """
        found = await self._store.find_one(fiscal_code, user_data_processing_id)
        self._log.debug(
            "user_data_processing.lookup",
            found=found is not None,
        )
        return found
