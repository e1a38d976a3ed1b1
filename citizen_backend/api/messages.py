"""Message listing endpoint.

GET /messages/{fiscal_code} - Stream the recipient's messages, newest first

The body is produced page by page straight from the store (see
citizen_backend.infra.streaming); the full history is never held in memory.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path

from citizen_backend.config import Settings, get_settings
from citizen_backend.core.fiscal_code import FISCAL_CODE_PATTERN
from citizen_backend.database import get_session_factory
from citizen_backend.infra.streaming import JsonIteratorResponse
from citizen_backend.models.message import MessageSummary
from citizen_backend.repositories.messages import MessageStore, SqlMessageRepository
from citizen_backend.services.messages import MessageService
from citizen_backend.telemetry import subject_logger

router = APIRouter(prefix="/messages", tags=["messages"])


def get_message_store(settings: Settings = Depends(get_settings)) -> MessageStore:
    """FastAPI dependency: paged store with its own sessions.

    The streamed body outlives the request dependency graph, so each paged
    query opens (and releases) a session of its own instead of sharing the
    request session.
    """
    return SqlMessageRepository(
        get_session_factory(), page_size=settings.messages_page_size
    )


def _to_public(message: MessageSummary) -> dict:
    return message.to_public()


@router.get(
    "/{fiscal_code}",
    summary="List the messages of a citizen",
    response_class=JsonIteratorResponse,
)
async def get_messages(
    fiscal_code: str = Path(..., pattern=FISCAL_CODE_PATTERN, description="Citizen fiscal code"),
    store: MessageStore = Depends(get_message_store),
) -> JsonIteratorResponse:
    """Stream {"items": [...], "page_size": n} for the given recipient."""
    service = MessageService(store, log=subject_logger(__name__, fiscal_code, handler="list"))
    pages = service.open(fiscal_code)
    return JsonIteratorResponse(pages, serialize=_to_public)
