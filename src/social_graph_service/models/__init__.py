"""Data models for the social graph service."""

from .audit_log import AuditLog
from .connection import (
    Connection,
    ConnectionRequest,
    ConnectionView,
    DisplayInfo,
    PendingRequestView,
    TypeChangeRequest,
    UserPair,
    UserProfile,
    utc_now,
)

__all__ = [
    "AuditLog",
    "Connection",
    "ConnectionRequest",
    "ConnectionView",
    "DisplayInfo",
    "PendingRequestView",
    "TypeChangeRequest",
    "UserPair",
    "UserProfile",
    "utc_now",
]
