#!/usr/bin/env python3
"""Seed the development database with sample citizens.

Creates, for each sample fiscal code:
  - a handful of messages from a few sender services, spread over the last
    days so the newest-first listing is visible
  - one user data processing request per choice, in different statuses

Idempotent: safe to run multiple times. Messages are keyed by a stable id
and skipped when present; processing requests are written with
session.merge(), so a rerun resets them to the seeded status.

Usage:
    # From project root (database must be running and migrated)
    python scripts/seed.py
"""

from __future__ import annotations

import asyncio
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

# ---------------------------------------------------------------------------
# Ensure the project root is on sys.path so "citizen_backend.*" imports work
# whether this script is run directly or via "python scripts/seed.py".
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

SAMPLE_CITIZENS: list[dict] = [
    {
        "fiscal_code": "AAAAAA00A00A000A",
        "messages": 12,
        "requests": {"DOWNLOAD": "PENDING", "DELETE": "CLOSED"},
    },
    {
        "fiscal_code": "BBBBBB00B00B000B",
        "messages": 3,
        "requests": {"DOWNLOAD": "WIP"},
    },
    {
        "fiscal_code": "CCCCCC00C00C000C",
        "messages": 0,
        "requests": {},
    },
]

SENDER_SERVICES = ["municipality-registry", "tax-office", "health-booking"]


async def seed() -> None:
    """Main seed routine - idempotent."""
    from citizen_backend.config import get_settings
    from citizen_backend.database import close_db, init_db, session_scope
    from citizen_backend.models.message import MessageRecord
    from citizen_backend.models.user_data_processing import (
        UserDataProcessing,
        UserDataProcessingChoice,
        UserDataProcessingStatus,
        make_user_data_processing_id,
    )

    settings = get_settings()
    init_db(settings)
    now = datetime.now(UTC)

    try:
        async with session_scope() as db:
            for citizen in SAMPLE_CITIZENS:
                fiscal_code = citizen["fiscal_code"]

                created = 0
                for n in range(citizen["messages"]):
                    message_id = f"seed-{fiscal_code}-{n:03d}"
                    if await db.get(MessageRecord, message_id) is not None:
                        continue
                    db.add(
                        MessageRecord(
                            id=message_id,
                            fiscal_code=fiscal_code,
                            indexed_id=message_id,
                            sender_service_id=SENDER_SERVICES[n % len(SENDER_SERVICES)],
                            sender_user_id="seed",
                            is_pending=n % 4 == 0,
                            time_to_live_seconds=3600 * (1 + n % 24),
                            created_at=now - timedelta(hours=6 * n),
                        )
                    )
                    created += 1
                print(f"  [+] {fiscal_code}: {created} messages created")

                for choice, status in citizen["requests"].items():
                    request = UserDataProcessing(
                        fiscal_code=fiscal_code,
                        user_data_processing_id=make_user_data_processing_id(
                            choice, fiscal_code
                        ),
                        choice=UserDataProcessingChoice(choice),
                        status=UserDataProcessingStatus(status),
                        created_at=now,
                    )
                    await db.merge(request.to_record())
                    print(f"  [+] {fiscal_code}: {choice} request set to {status}")
    finally:
        await close_db()

    divider = "=" * 60
    print(f"\n{divider}")
    print("SEED COMPLETE")
    print(divider)
    for citizen in SAMPLE_CITIZENS:
        print(f"  GET /api/v1/messages/{citizen['fiscal_code']}")
    print(f"{divider}\n")


if __name__ == "__main__":
    asyncio.run(seed())
