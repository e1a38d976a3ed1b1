"""Store adapter for user data processing requests.

Contract required by the lifecycle service:
- find_one(fiscal_code, id) -> record | None   (read by partition + id)
- create_or_replace(record) -> record          (write keyed by id)

Every store failure, including a stored row that no longer decodes into a
valid UserDataProcessing, surfaces as QueryError.
"""

from __future__ import annotations

from typing import Protocol

import structlog
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from citizen_backend.models.user_data_processing import (
    UserDataProcessing,
    UserDataProcessingRecord,
)
from citizen_backend.repositories.base import translate_store_errors

log = structlog.get_logger(__name__)


class UserDataProcessingStore(Protocol):
    """Read-by-key and create-or-replace access to processing requests."""

    async def find_one(
        self, fiscal_code: str, user_data_processing_id: str
    ) -> UserDataProcessing | None: ...

    async def create_or_replace(self, request: UserDataProcessing) -> UserDataProcessing: ...


class SqlUserDataProcessingRepository:
    """PostgreSQL-backed UserDataProcessingStore.

    The session is owned by the caller (request dependency), which commits
    or rolls back.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_one(
        self, fiscal_code: str, user_data_processing_id: str
    ) -> UserDataProcessing | None:
        stmt = select(UserDataProcessingRecord).where(
            UserDataProcessingRecord.fiscal_code == fiscal_code,
            UserDataProcessingRecord.user_data_processing_id == user_data_processing_id,
        )
        with translate_store_errors(
            "Error while retrieving user data processing", user_data_processing_id
        ):
            result = await self._db.execute(stmt)
            record = result.scalar_one_or_none()
            if record is None:
                return None
            return UserDataProcessing.model_validate(record)

    async def create_or_replace(self, request: UserDataProcessing) -> UserDataProcessing:
        """Upsert keyed by (fiscal_code, user_data_processing_id).

        Last write wins: concurrent writers for the same key are not
        detected.
        """
        values = {
            "fiscal_code": request.fiscal_code,
            "user_data_processing_id": request.user_data_processing_id,
            "choice": str(request.choice),
            "status": str(request.status),
            "created_at": request.created_at,
        }
        stmt = (
            insert(UserDataProcessingRecord)
            .values(**values)
            .on_conflict_do_update(
                index_elements=[
                    UserDataProcessingRecord.fiscal_code,
                    UserDataProcessingRecord.user_data_processing_id,
                ],
                set_={
                    "choice": values["choice"],
                    "status": values["status"],
                    "created_at": values["created_at"],
                },
            )
            .returning(UserDataProcessingRecord)
        )
        with translate_store_errors(
            "Error while creating a new user data processing",
            request.user_data_processing_id,
        ):
            result = await self._db.execute(
                stmt, execution_options={"populate_existing": True}
            )
            record = result.scalar_one()
            log.debug(
                "user_data_processing.store.written",
                choice=record.choice,
                status=record.status,
            )
            return UserDataProcessing.model_validate(record)
