"""Messages sent by public-administration services to citizens.

Only the metadata lives here; message content is stored and rendered
elsewhere. Messages are immutable once created and always read scoped to
their recipient's fiscal code.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from citizen_backend.core.fiscal_code import FiscalCode
from citizen_backend.database import Base

MIN_TIME_TO_LIVE_SECONDS = 3600
MAX_TIME_TO_LIVE_SECONDS = 604800  # 7 days


class MessageRecord(Base):
    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    fiscal_code: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="Partition key: recipient of the message",
    )
    indexed_id: Mapped[str] = mapped_column(String(64), nullable=False)
    sender_service_id: Mapped[str] = mapped_column(String(128), nullable=False)
    sender_user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    is_pending: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default="true",
        comment="True until the message has been processed for delivery",
    )
    time_to_live_seconds: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=MIN_TIME_TO_LIVE_SECONDS,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        Index("ix_messages_fiscal_code_created", "fiscal_code", "created_at"),
        CheckConstraint(
            f"time_to_live_seconds BETWEEN {MIN_TIME_TO_LIVE_SECONDS} "
            f"AND {MAX_TIME_TO_LIVE_SECONDS}",
            name="ck_messages_time_to_live",
        ),
    )

    def __repr__(self) -> str:
        return f"<MessageRecord id={self.id} sender={self.sender_service_id}>"


class MessageSummary(BaseModel):
    """A message as listed to its recipient (no content)."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    fiscal_code: FiscalCode
    sender_service_id: str
    sender_user_id: str
    is_pending: bool
    time_to_live_seconds: int = Field(
        ge=MIN_TIME_TO_LIVE_SECONDS, le=MAX_TIME_TO_LIVE_SECONDS
    )
    created_at: datetime

    def to_public(self) -> dict[str, Any]:
        """JSON-ready representation exposed by the listing endpoint."""
        return {
            "id": self.id,
            "fiscal_code": self.fiscal_code,
            "sender_service_id": self.sender_service_id,
            "is_pending": self.is_pending,
            "time_to_live": self.time_to_live_seconds,
            "created_at": self.created_at.isoformat(),
        }
