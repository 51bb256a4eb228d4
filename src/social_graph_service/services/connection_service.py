"""
Connection Service - request lifecycle and connection registry.

Owns the PENDING -> {ACCEPTED, REJECTED} state machine for connection
requests and the established connections they produce. Every operation
asks the BackendSelector for a store once and runs against that store
only; the graph/fallback difference never leaks into this module.

Error policy:
    - Mutations raise typed ``SocialGraphError`` subclasses.
    - Listings degrade to ``[]`` when the backend cannot be read.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, get_args

from ..errors import (
    AlreadyConnectedError,
    InputValidationError,
    NotFoundError,
    RequestAlreadyPendingError,
    SocialGraphError,
)
from ..models.connection import (
    ConnectionRequest,
    ConnectionView,
    PendingRequestView,
    UserPair,
    UserProfile,
    utc_now,
)
from ..models.validators import MAX_TYPE_LENGTH, RequestAction
from ..storage.base import RelationshipStore
from ..storage.selector import BackendSelector
from ..utils.locks import PairLocks
from .audit import AuditTrail
from .directory import UserDirectory

logger = logging.getLogger(__name__)


def require(value: str | None, field: str) -> str:
    """Return ``value`` stripped, or raise ``InputValidationError`` if blank."""
    if value is None or not str(value).strip():
        raise InputValidationError(f"Missing required field: {field}")
    return str(value).strip()


def require_type(value: str | None, field: str) -> str:
    """``require`` plus the connection-type length limit."""
    value = require(value, field)
    if len(value) > MAX_TYPE_LENGTH:
        raise InputValidationError(f"{field} must be at most {MAX_TYPE_LENGTH} characters")
    return value


def require_pair(user_id: str | None, other_id: str | None, user_field: str, other_field: str) -> UserPair:
    user_id = require(user_id, user_field)
    other_id = require(other_id, other_field)
    if user_id == other_id:
        raise InputValidationError("A user cannot connect to themselves")
    return UserPair.of(user_id, other_id)


class ConnectionService:
    """
    Request lifecycle manager and connection registry.

    Args:
        selector: Per-call store selection (graph when healthy, else fallback)
        directory: Display metadata for listings
        audit: Shared audit trail; a private one is created if omitted
        pair_locks: Shared per-pair lock registry
        clock: Source of request timestamps and connection ``since`` values
    """

    def __init__(
        self,
        selector: BackendSelector,
        directory: UserDirectory,
        audit: AuditTrail | None = None,
        pair_locks: PairLocks | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.selector = selector
        self.directory = directory
        self.audit = audit if audit is not None else AuditTrail()
        self._pair_locks = pair_locks if pair_locks is not None else PairLocks()
        self._clock = clock

    # ── Search ──────────────────────────────────────────────────────────

    async def search_users(self, query: str, current_user_id: str) -> list[UserProfile]:
        """Directory search; never raises."""
        return await self.directory.search_users(query, current_user_id)

    # ── Requests ────────────────────────────────────────────────────────

    async def send_request(self, from_user_id: str, to_user_id: str, connection_type: str) -> str:
        """
        Send a connection request from ``from_user_id`` to ``to_user_id``.

        Returns:
            The new request id.

        Raises:
            AlreadyConnectedError: The pair is already connected.
            RequestAlreadyPendingError: A request is pending in either direction.
            InputValidationError: Missing ids/type or a self-request.
        """
        pair = require_pair(from_user_id, to_user_id, "from_user_id", "to_user_id")
        from_user_id, to_user_id = from_user_id.strip(), to_user_id.strip()
        connection_type = require_type(connection_type, "type")

        async def _send(store: RelationshipStore) -> tuple[str, str]:
            if await store.find_connection(pair) is not None:
                raise AlreadyConnectedError(from_user_id, to_user_id)
            if await store.has_pending_request(pair):
                raise RequestAlreadyPendingError(from_user_id, to_user_id)

            request = ConnectionRequest(
                request_id=store.new_request_id(),
                from_user_id=from_user_id,
                to_user_id=to_user_id,
                type=connection_type,
                timestamp=self._clock(),
            )
            await store.create_request(request)
            return request.request_id, store.name

        try:
            async with self._pair_locks(pair):
                request_id, backend = await self.selector.run(_send)
        except SocialGraphError as e:
            self.audit.record("SEND_REQUEST", from_user_id, target=to_user_id, success=False, error=e.code)
            raise

        logger.info(f"Connection request {request_id} sent: {from_user_id} -> {to_user_id} ({connection_type}) via {backend}")
        self.audit.record(
            "SEND_REQUEST",
            from_user_id,
            target=to_user_id,
            request_id=request_id,
            backend=backend,
            metadata={"type": connection_type},
        )
        return request_id

    async def list_pending_requests(self, user_id: str) -> list[PendingRequestView]:
        """Pending requests addressed to ``user_id``, with sender display metadata."""
        try:
            requests = await self.selector.run(lambda store: store.list_pending_requests(user_id))
        except Exception as e:
            logger.error(f"Failed to list pending requests for {user_id}: {e}")
            return []

        if not requests:
            return []

        displays = await self.directory.display_for([r.from_user_id for r in requests])
        return [
            PendingRequestView(
                request_id=r.request_id,
                from_user_id=r.from_user_id,
                type=r.type,
                timestamp=r.timestamp,
                from_display=displays[r.from_user_id],
            )
            for r in requests
        ]

    async def respond_to_request(
        self,
        request_id: str,
        user_id: str,
        action: RequestAction,
        override_type: str | None = None,
    ) -> None:
        """
        Accept or reject a pending request addressed to ``user_id``.

        Accepting consumes the request and creates the connection with the
        request's type (or ``override_type``) and ``since = now``.

        Raises:
            NotFoundError: No such request addressed to ``user_id``.
            InputValidationError: Missing fields or unknown action.
        """
        request_id = require(request_id, "request_id")
        user_id = require(user_id, "user_id")
        if action not in get_args(RequestAction):
            raise InputValidationError(f"Invalid action: {action!r}. Must be 'accept' or 'reject'")
        if override_type is not None:
            override_type = require_type(override_type, "type") if override_type.strip() else None

        async def _respond(store: RelationshipStore) -> tuple[ConnectionRequest, str]:
            request = await store.get_request(request_id)
            if request is None or request.to_user_id != user_id:
                raise NotFoundError(f"Connection request '{request_id}' not found")

            async with self._pair_locks(request.pair):
                if action == "reject":
                    if not await store.delete_request(request_id, user_id):
                        raise NotFoundError(f"Connection request '{request_id}' not found")
                else:
                    final_type = override_type or request.type
                    if not await store.accept_request(request, final_type, self._clock()):
                        raise NotFoundError(f"Connection request '{request_id}' not found")
            return request, store.name

        operation = "ACCEPT_REQUEST" if action == "accept" else "REJECT_REQUEST"
        try:
            request, backend = await self.selector.run(_respond)
        except SocialGraphError as e:
            self.audit.record(operation, user_id, request_id=request_id, success=False, error=e.code)
            raise

        logger.info(f"Connection request {request_id} {action}ed by {user_id} via {backend}")
        self.audit.record(
            operation,
            user_id,
            target=request.from_user_id,
            request_id=request_id,
            backend=backend,
            metadata={"type": override_type or request.type} if action == "accept" else {},
        )

    # ── Connections ─────────────────────────────────────────────────────

    async def list_connections(self, user_id: str) -> list[ConnectionView]:
        """Connections touching ``user_id``, as seen from ``user_id``."""
        try:
            connections = await self.selector.run(lambda store: store.list_connections(user_id))
        except Exception as e:
            logger.error(f"Failed to list connections for {user_id}: {e}")
            return []

        if not connections:
            return []

        counterparts = [c.counterpart(user_id) for c in connections]
        displays = await self.directory.display_for(counterparts)
        return [
            ConnectionView(
                user_id=other,
                type=c.type,
                sub_type=c.sub_type,
                since=c.since,
                display=displays[other],
            )
            for c, other in zip(connections, counterparts)
        ]

    async def remove_connection(self, user_id: str, target_user_id: str) -> None:
        """
        Remove the connection between ``user_id`` and ``target_user_id``.

        Raises:
            NotFoundError: Nothing was removed (removal is not silently idempotent).
        """
        pair = require_pair(user_id, target_user_id, "user_id", "target_user_id")
        user_id, target_user_id = user_id.strip(), target_user_id.strip()

        async def _remove(store: RelationshipStore) -> tuple[int, str]:
            removed = await store.delete_connection(pair)
            if removed == 0:
                raise NotFoundError(f"No connection between '{user_id}' and '{target_user_id}'")
            return removed, store.name

        try:
            async with self._pair_locks(pair):
                removed, backend = await self.selector.run(_remove)
        except SocialGraphError as e:
            self.audit.record("REMOVE_CONNECTION", user_id, target=target_user_id, success=False, error=e.code)
            raise

        logger.info(f"Connection removed: {user_id} <-> {target_user_id} ({removed} removed via {backend})")
        self.audit.record("REMOVE_CONNECTION", user_id, target=target_user_id, backend=backend)

    def get_audit_trail(self, limit: int = 100, operation: str | None = None, actor: str | None = None) -> dict[str, Any]:
        return self.audit.get_audit_trail(limit=limit, operation=operation, actor=actor)
