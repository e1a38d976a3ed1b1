"""User data processing requests.

A citizen may ask for a processing operation on their own data (download a
copy, delete everything). At most one live record exists per
(fiscal_code, choice): the record id is derived from that pair, so writes
for the same pair replace rather than duplicate.

Lifecycle:
    PENDING -> WIP -> CLOSED, driven by back-office operators.
    A repeated citizen submission never moves a record backwards from WIP,
    and reopens a CLOSED one (see services.user_data_processing).
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator
from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from citizen_backend.core.fiscal_code import FiscalCode
from citizen_backend.database import Base


class UserDataProcessingChoice(StrEnum):
    """Kind of processing requested by the citizen."""

    DOWNLOAD = "DOWNLOAD"
    DELETE = "DELETE"


class UserDataProcessingStatus(StrEnum):
    """Lifecycle status of a processing request."""

    PENDING = "PENDING"  # Submitted, waiting for an operator
    WIP = "WIP"  # An operator is working on it
    CLOSED = "CLOSED"  # Done


def make_user_data_processing_id(
    choice: UserDataProcessingChoice | str, fiscal_code: str
) -> str:
    """Derive the record id for a (choice, fiscal_code) pair.

    Fiscal codes are fixed-length and never contain "-", so distinct pairs
    always map to distinct ids.
    """
    return f"{fiscal_code}-{UserDataProcessingChoice(choice)}"


class UserDataProcessingRecord(Base):
    """Persistent user data processing request, partitioned by fiscal code."""

    __tablename__ = "user_data_processing"

    fiscal_code: Mapped[str] = mapped_column(
        String(16),
        primary_key=True,
        comment="Partition key: owner of the request",
    )
    user_data_processing_id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Derived from (fiscal_code, choice)",
    )
    choice: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="DOWNLOAD | DELETE",
    )
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=str(UserDataProcessingStatus.PENDING),
        comment="PENDING | WIP | CLOSED",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        comment="Set on every write",
    )

    def __repr__(self) -> str:
        return (
            f"<UserDataProcessingRecord id={self.user_data_processing_id!r} "
            f"status={self.status!r}>"
        )


class UserDataProcessing(BaseModel):
    """Validated shape of a user data processing request.

    Built by the service before every write; construction raises
    pydantic.ValidationError when a field is malformed.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    fiscal_code: FiscalCode
    user_data_processing_id: str = Field(min_length=1, max_length=64)
    choice: UserDataProcessingChoice
    status: UserDataProcessingStatus
    created_at: AwareDatetime

    @model_validator(mode="after")
    def _check_derived_id(self) -> UserDataProcessing:
        expected = make_user_data_processing_id(self.choice, self.fiscal_code)
        if self.user_data_processing_id != expected:
            raise ValueError(
                f"user_data_processing_id must be {expected!r} for this fiscal code and choice"
            )
        return self

    def to_record(self) -> UserDataProcessingRecord:
        return UserDataProcessingRecord(
            fiscal_code=self.fiscal_code,
            user_data_processing_id=self.user_data_processing_id,
            choice=str(self.choice),
            status=str(self.status),
            created_at=self.created_at,
        )
