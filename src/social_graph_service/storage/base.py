"""
Relationship store interface.

Two interchangeable implementations serve every connection operation:

- ``GraphRelationshipStore``: primary, FalkorDB (connection = two directed edges)
- ``FlatRelationshipStore``: fallback, flat collections (connection = one record)

The services never know which one they hold; the backend selector picks
one per call. Pair matching goes through ``UserPair`` on both sides, so
the directed/undirected representation difference stays inside the
implementations.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime

from ..models.connection import Connection, ConnectionRequest, UserPair


class RelationshipStore(ABC):
    """Abstract backend for connection requests and connections."""

    #: Short backend name used in logs and audit entries.
    name: str = "abstract"
    #: Prefix for request ids minted by this backend.
    request_id_prefix: str = "req_"

    def new_request_id(self) -> str:
        return f"{self.request_id_prefix}{uuid.uuid4()}"

    # ── Requests ────────────────────────────────────────────────────────

    @abstractmethod
    async def has_pending_request(self, pair: UserPair) -> bool:
        """True if a PENDING request exists for the pair in either direction."""

    @abstractmethod
    async def create_request(self, request: ConnectionRequest) -> None:
        """Persist a new PENDING request (ensuring endpoints exist where needed)."""

    @abstractmethod
    async def get_request(self, request_id: str) -> ConnectionRequest | None:
        """Fetch a request by id, or None."""

    @abstractmethod
    async def list_pending_requests(self, user_id: str) -> list[ConnectionRequest]:
        """PENDING requests addressed to ``user_id``."""

    @abstractmethod
    async def delete_request(self, request_id: str, to_user_id: str) -> bool:
        """Delete the request addressed to ``to_user_id``. True if one was deleted."""

    @abstractmethod
    async def accept_request(self, request: ConnectionRequest, connection_type: str, since: datetime) -> bool:
        """
        Consume ``request`` and create the symmetric connection it asked for.

        Returns:
            False if the request no longer exists (nothing created).
        """

    # ── Connections ─────────────────────────────────────────────────────

    @abstractmethod
    async def find_connection(self, pair: UserPair) -> Connection | None:
        """The connection for the pair, or None."""

    @abstractmethod
    async def list_connections(self, user_id: str) -> list[Connection]:
        """Connections touching ``user_id``."""

    @abstractmethod
    async def delete_connection(self, pair: UserPair) -> int:
        """Delete the pair's connection. Returns the number of edges/records removed."""

    @abstractmethod
    async def update_connection_type(self, pair: UserPair, connection_type: str, sub_type: str | None = None) -> bool:
        """
        Change the pair's connection type in place. True if a connection was updated.

        A None ``sub_type`` keeps the current one.
        """
