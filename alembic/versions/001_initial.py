"""Create user_data_processing and messages tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18

Adds:
- user_data_processing table
  - fiscal_code VARCHAR(16)              partition key, PK part 1
  - user_data_processing_id VARCHAR(64)  "{fiscal_code}-{choice}", PK part 2
  - choice VARCHAR(16)                   "DOWNLOAD" | "DELETE"
  - status VARCHAR(16)                   "PENDING" | "WIP" | "CLOSED"
  - created_at TIMESTAMP WITH TIME ZONE  refreshed on every write

- messages table (metadata only, content lives elsewhere)
  - id VARCHAR(64) PK
  - fiscal_code VARCHAR(16)              recipient
  - time_to_live_seconds INTEGER         3600..604800

Indexes:
- ix_messages_fiscal_code_created  (fiscal_code, created_at)

Notes:
- No enum types; choice and status stored as VARCHAR, validated in the app.
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create user_data_processing and messages tables."""

    # ------------------------------------------------------------------
    # user_data_processing
    # ------------------------------------------------------------------
    op.create_table(
        "user_data_processing",
        sa.Column(
            "fiscal_code",
            sa.String(16),
            primary_key=True,
            nullable=False,
            comment="Partition key: owner of the request",
        ),
        sa.Column(
            "user_data_processing_id",
            sa.String(64),
            primary_key=True,
            nullable=False,
            comment="Derived from (fiscal_code, choice)",
        ),
        sa.Column("choice", sa.String(16), nullable=False, comment="DOWNLOAD | DELETE"),
        sa.Column(
            "status",
            sa.String(16),
            nullable=False,
            server_default="PENDING",
            comment="PENDING | WIP | CLOSED",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            comment="Set on every write",
        ),
    )

    # ------------------------------------------------------------------
    # messages
    # ------------------------------------------------------------------
    op.create_table(
        "messages",
        sa.Column("id", sa.String(64), primary_key=True, nullable=False),
        sa.Column(
            "fiscal_code",
            sa.String(16),
            nullable=False,
            comment="Partition key: recipient of the message",
        ),
        sa.Column("indexed_id", sa.String(64), nullable=False),
        sa.Column("sender_service_id", sa.String(128), nullable=False),
        sa.Column("sender_user_id", sa.String(128), nullable=False),
        sa.Column(
            "is_pending",
            sa.Boolean(),
            nullable=False,
            server_default="true",
            comment="True until the message has been processed for delivery",
        ),
        sa.Column(
            "time_to_live_seconds",
            sa.Integer(),
            nullable=False,
            server_default="3600",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "time_to_live_seconds BETWEEN 3600 AND 604800",
            name="ck_messages_time_to_live",
        ),
    )

    op.create_index(
        "ix_messages_fiscal_code_created",
        "messages",
        ["fiscal_code", "created_at"],
    )


def downgrade() -> None:
    """Drop messages and user_data_processing tables."""
    op.drop_index("ix_messages_fiscal_code_created", table_name="messages")
    op.drop_table("messages")
    op.drop_table("user_data_processing")
