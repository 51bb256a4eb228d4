"""Shared Pydantic types and validators for reuse across models.

Centralises id/label normalisation and the Literal enums so every model
and every surface (HTTP, MCP) speaks the same language.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BeforeValidator, Field

# ---------------------------------------------------------------------------
# String normalisation
# ---------------------------------------------------------------------------


def strip_str(v: Any) -> Any:
    """Trim surrounding whitespace from strings, pass anything else through."""
    if isinstance(v, str):
        return v.strip()
    return v


UserId = Annotated[str, BeforeValidator(strip_str), Field(min_length=1)]
"""Non-empty, trimmed user identifier."""

MAX_TYPE_LENGTH = 64

ConnectionType = Annotated[str, BeforeValidator(strip_str), Field(min_length=1, max_length=MAX_TYPE_LENGTH)]
"""Free-form connection type label, e.g. ``"Work"`` or ``"Social"``."""


# ---------------------------------------------------------------------------
# Literal enums
# ---------------------------------------------------------------------------

RequestAction = Literal["accept", "reject"]
TypeChangeAction = Literal["approve", "reject"]
RequestStatus = Literal["PENDING", "ACCEPTED", "REJECTED"]
TypeChangeStatus = Literal["pending", "approved", "rejected"]
