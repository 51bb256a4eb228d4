"""Relationship services: connection lifecycle, type changes, directory and audit."""

from .audit import AuditTrail
from .connection_service import ConnectionService
from .directory import UserDirectory
from .type_change_service import TypeChangeService

__all__ = [
    "AuditTrail",
    "ConnectionService",
    "TypeChangeService",
    "UserDirectory",
]
