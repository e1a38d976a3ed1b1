"""Fiscal code type used as the citizen identifier.

The fiscal code is the partition key of every citizen-owned record, so it
is validated at the edge (path parameters, decoded payloads) and again when
a record is built for persistence.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import StringConstraints

FISCAL_CODE_PATTERN = (
    r"^[A-Z]{6}[0-9LMNPQRSTUV]{2}[ABCDEHLMPRST][0-9LMNPQRSTUV]{2}[A-Z][0-9LMNPQRSTUV]{3}[A-Z]$"
)

FiscalCode = Annotated[str, StringConstraints(pattern=FISCAL_CODE_PATTERN)]


def redact_fiscal_code(fiscal_code: str | None) -> str | None:
    """Keep only the first 5 characters, enough to correlate log lines."""
    if fiscal_code is None:
        return None
    return f"{fiscal_code[:5]}***"
