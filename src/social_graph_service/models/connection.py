"""Relationship data models.

Requests and type-change proposals are directed (from proposer to the
party whose decision is required). Connections are symmetric: both
stores express pair matching through :class:`UserPair`, so neither has to
hand-roll the "A-B or B-A" check.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from .validators import ConnectionType, RequestStatus, TypeChangeStatus, UserId


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Symmetric pair
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UserPair:
    """Unordered pair of user ids, normalised so ``of(a, b) == of(b, a)``."""

    first: str
    second: str

    @classmethod
    def of(cls, user_a: str, user_b: str) -> UserPair:
        low, high = sorted((user_a, user_b))
        return cls(low, high)

    @property
    def key(self) -> str:
        return f"{self.first}|{self.second}"

    def matches(self, user_a: str | None, user_b: str | None) -> bool:
        """True if ``(user_a, user_b)`` names this pair in either direction."""
        return {user_a, user_b} == {self.first, self.second}

    def other(self, user_id: str) -> str:
        if user_id == self.first:
            return self.second
        if user_id == self.second:
            return self.first
        raise ValueError(f"{user_id!r} is not part of pair {self.key}")


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------


class ConnectionRequest(BaseModel):
    """A PENDING, directed request to establish a connection."""

    model_config = ConfigDict(extra="ignore")

    request_id: str
    from_user_id: UserId
    to_user_id: UserId
    type: ConnectionType
    status: RequestStatus = "PENDING"
    timestamp: datetime = Field(default_factory=utc_now)

    @property
    def pair(self) -> UserPair:
        return UserPair.of(self.from_user_id, self.to_user_id)


class Connection(BaseModel):
    """An established, symmetric connection between two users."""

    model_config = ConfigDict(extra="ignore")

    user_a: UserId
    user_b: UserId
    type: ConnectionType
    sub_type: str | None = None
    since: datetime = Field(default_factory=utc_now)

    @property
    def pair(self) -> UserPair:
        return UserPair.of(self.user_a, self.user_b)

    def counterpart(self, user_id: str) -> str:
        return self.pair.other(user_id)


class TypeChangeRequest(BaseModel):
    """A proposal to change an existing connection's type.

    Kept forever as an audit record once resolved.
    """

    model_config = ConfigDict(extra="ignore")

    request_id: str
    from_user_id: UserId
    to_user_id: UserId
    current_type: str
    proposed_type: ConnectionType
    proposed_sub_type: str | None = None
    status: TypeChangeStatus = "pending"
    timestamp: datetime = Field(default_factory=utc_now)
    responded_at: datetime | None = None

    @property
    def pair(self) -> UserPair:
        return UserPair.of(self.from_user_id, self.to_user_id)

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"


# ---------------------------------------------------------------------------
# Directory / enrichment
# ---------------------------------------------------------------------------


class UserProfile(BaseModel):
    """Public profile record held by the user directory."""

    model_config = ConfigDict(extra="ignore")

    id: UserId
    username: str
    name: str | None = None
    avatar_url: str | None = None


class DisplayInfo(BaseModel):
    """Display metadata attached to listing results."""

    user_id: str
    username: str = "Unknown"
    display_name: str | None = None
    avatar_url: str | None = None

    @classmethod
    def placeholder(cls, user_id: str) -> DisplayInfo:
        return cls(user_id=user_id)

    @classmethod
    def from_profile(cls, profile: UserProfile) -> DisplayInfo:
        return cls(
            user_id=profile.id,
            username=profile.username or "Unknown",
            display_name=profile.name,
            avatar_url=profile.avatar_url,
        )


# ---------------------------------------------------------------------------
# Listing views (response shapes)
# ---------------------------------------------------------------------------


class PendingRequestView(BaseModel):
    """An incoming pending request as seen by its recipient."""

    request_id: str
    from_user_id: str
    type: str
    timestamp: datetime
    from_display: DisplayInfo


class ConnectionView(BaseModel):
    """A connection as seen from one endpoint."""

    user_id: str
    type: str
    sub_type: str | None = None
    since: datetime
    display: DisplayInfo
