"""Welcome messages sent to a citizen right after their profile is created.

Runs as an orchestration activity: the orchestrator passes the freshly
created profile and retries the whole activity on failure, so this module
performs no retries of its own.

Delivery goes through the public messages API:
    POST {PUBLIC_API_URL}/api/v1/messages/{fiscal_code}
    Ocp-Apim-Subscription-Key: {PUBLIC_API_KEY}
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, Field, ValidationError

from citizen_backend.config import Settings
from citizen_backend.core.fiscal_code import FiscalCode, redact_fiscal_code
from citizen_backend.models.message import (
    MAX_TIME_TO_LIVE_SECONDS,
    MIN_TIME_TO_LIVE_SECONDS,
)

log = structlog.get_logger(__name__)

ACTIVITY_SUCCESS = "SUCCESS"
ACTIVITY_FAILURE = "FAILURE"


class RetrievedProfile(BaseModel):
    """The subset of a citizen profile this activity relies on."""

    fiscal_code: FiscalCode
    version: int = Field(ge=0)
    email: str | None = None
    is_inbox_enabled: bool | None = None


class MessageContent(BaseModel):
    subject: str = Field(min_length=10, max_length=120)
    markdown: str = Field(min_length=80, max_length=10000)


class NewMessage(BaseModel):
    content: MessageContent
    time_to_live: int | None = Field(
        default=None, ge=MIN_TIME_TO_LIVE_SECONDS, le=MAX_TIME_TO_LIVE_SECONDS
    )


WelcomeMessageFactory = Callable[[RetrievedProfile], NewMessage]


_WELCOME_MARKDOWN = """## Welcome to the public services app

This is the open beta of the app that brings the services of every public
administration, local and national, into a single place.

#### Messages

Public administrations can write to you here: deadlines, reminders,
updates on an ongoing procedure. Each new message is announced with a push
notification and, if you wish, forwarded to your email address. From the
services section you can choose how each service may contact you.

#### Payments

You can pay any public administration notice safely, keep your preferred
payment methods and look back at the history of your transactions.

#### Need help?

Use the question mark in the top right corner of every screen for guidance
on the section you are in. Messages are sent directly by the public
administrations: for questions about their content, contact the sender
through the buttons shown in the message.
"""

_SERVICES_MARKDOWN = """## Which services can you find in the app?

The app is a single, simple and secure access point to the services of the
public administration. Several national and local administrations have
already brought their services on board, and many more will follow.

In the services section you can add the areas you are interested in (where
you live, where you work) to stay informed about new services arriving in
that municipality or region.

All services are active by default: this does not mean they will contact
you. A service writes to you only when it has something relevant to say to
you. You can turn any service off from its page; the administration will
then keep contacting you through its traditional channels.
"""


def _welcome_message(_: RetrievedProfile) -> NewMessage:
    return NewMessage(
        content=MessageContent(
            subject="Welcome to the public services app",
            markdown=_WELCOME_MARKDOWN,
        )
    )


def _services_message(_: RetrievedProfile) -> NewMessage:
    return NewMessage(
        content=MessageContent(
            subject="Which services can you find in the app?",
            markdown=_SERVICES_MARKDOWN,
        )
    )


WELCOME_MESSAGES: tuple[WelcomeMessageFactory, ...] = (
    _welcome_message,
    _services_message,
)


async def send_welcome_message(
    client: httpx.AsyncClient,
    url: str,
    api_key: str,
    new_message: NewMessage,
) -> int:
    """Send a single message through the public messages API.

    Returns:
        HTTP status code of the accepted request

    Raises:
        httpx.HTTPStatusError: The API answered with a non-2xx status
        httpx.HTTPError: Transport failure or timeout
    """
    response = await client.post(
        url,
        json=new_message.model_dump(exclude_none=True),
        headers={"Ocp-Apim-Subscription-Key": api_key},
    )
    response.raise_for_status()
    return response.status_code


async def send_welcome_messages(
    client: httpx.AsyncClient,
    api_url: str,
    api_key: str,
    messages: Sequence[WelcomeMessageFactory],
    profile: RetrievedProfile,
) -> list[int]:
    """Send all messages to the profile owner concurrently.

    Returns the status codes in the order of ``messages``; the first failure
    propagates.
    """
    url = f"{api_url.rstrip('/')}/api/v1/messages/{profile.fiscal_code}"
    return list(
        await asyncio.gather(
            *(
                send_welcome_message(client, url, api_key, factory(profile))
                for factory in messages
            )
        )
    )


async def send_welcome_messages_activity(
    payload: dict[str, Any],
    *,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
    messages: Sequence[WelcomeMessageFactory] = WELCOME_MESSAGES,
) -> str:
    """Activity entry point.

    Args:
        payload: Activity input, expected as {"profile": {...}}
        settings: Provides the public API URL, key and timeout
        client: Optional shared HTTP client (one is created otherwise)
        messages: Message factories to send

    Returns:
        "SUCCESS" once every message was accepted, "FAILURE" when the input
        profile cannot be decoded.
    """
    try:
        profile = RetrievedProfile.model_validate(payload.get("profile"))
    except ValidationError as exc:
        log.error(
            "welcome_messages.invalid_profile",
            errors=exc.errors(include_url=False, include_input=False),
        )
        return ACTIVITY_FAILURE

    activity_log = log.bind(
        fiscal_code=redact_fiscal_code(profile.fiscal_code),
        profile_version=profile.version,
    )
    activity_log.info("welcome_messages.sending", count=len(messages))

    api_key = settings.public_api_key.get_secret_value()
    if client is None:
        async with httpx.AsyncClient(timeout=settings.public_api_timeout_seconds) as own_client:
            statuses = await send_welcome_messages(
                own_client, settings.public_api_url, api_key, messages, profile
            )
    else:
        statuses = await send_welcome_messages(
            client, settings.public_api_url, api_key, messages, profile
        )

    activity_log.info("welcome_messages.sent", responses=statuses)
    return ACTIVITY_SUCCESS
