"""
Type Change Service - mutual approval of connection type changes.

Proposals are stored in the flat collection DB whatever the graph's
health, so the workflow keeps a single source of truth for its own
records. Only the final "apply the new type" step touches the
relationship stores: the fallback store always, the graph store when it
is reachable (best-effort, no rollback).
"""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any, get_args

from ..errors import (
    AlreadyProcessedError,
    BackendUnavailableError,
    InputValidationError,
    NotConnectedError,
    NotFoundError,
    SocialGraphError,
    TypeChangeAlreadyPendingError,
    UnauthorizedError,
)
from ..models.connection import TypeChangeRequest, utc_now
from ..models.validators import TypeChangeAction
from ..storage.base import RelationshipStore
from ..storage.selector import BackendSelector
from ..storage.type_change_repository import TypeChangeRepository
from ..utils.locks import PairLocks
from .audit import AuditTrail
from .connection_service import require, require_pair, require_type

logger = logging.getLogger(__name__)

TYPE_CHANGE_ID_PREFIX = "tc_"


class TypeChangeService:
    """
    Propose / list / approve-or-reject connection type changes.

    Args:
        selector: Used to verify the connection exists and to apply approvals
        repository: Persistence for proposals
        audit: Shared audit trail; a private one is created if omitted
        pair_locks: Shared per-pair lock registry
        clock: Source of ``timestamp`` and ``responded_at``
    """

    def __init__(
        self,
        selector: BackendSelector,
        repository: TypeChangeRepository,
        audit: AuditTrail | None = None,
        pair_locks: PairLocks | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.selector = selector
        self.repository = repository
        self.audit = audit if audit is not None else AuditTrail()
        self._pair_locks = pair_locks if pair_locks is not None else PairLocks()
        self._clock = clock

    async def propose_type_change(
        self,
        from_user_id: str,
        to_user_id: str,
        proposed_type: str,
        proposed_sub_type: str | None = None,
    ) -> str:
        """
        Propose changing the type of an existing connection.

        Returns:
            The new type change request id.

        Raises:
            NotConnectedError: The pair has no connection.
            TypeChangeAlreadyPendingError: Another proposal is pending for the pair.
            InputValidationError: Missing ids/type or a self-proposal.
        """
        pair = require_pair(from_user_id, to_user_id, "from_user_id", "to_user_id")
        from_user_id, to_user_id = from_user_id.strip(), to_user_id.strip()
        proposed_type = require_type(proposed_type, "proposed_type")
        if proposed_sub_type is not None:
            proposed_sub_type = proposed_sub_type.strip() or None

        try:
            async with self._pair_locks(pair):
                connection = await self.selector.run(lambda store: store.find_connection(pair))
                if connection is None:
                    raise NotConnectedError(from_user_id, to_user_id)

                async with self.repository.locked():
                    if await self.repository.find_pending_for_pair(pair) is not None:
                        raise TypeChangeAlreadyPendingError(from_user_id, to_user_id)

                    request = TypeChangeRequest(
                        request_id=f"{TYPE_CHANGE_ID_PREFIX}{uuid.uuid4()}",
                        from_user_id=from_user_id,
                        to_user_id=to_user_id,
                        current_type=connection.type,
                        proposed_type=proposed_type,
                        proposed_sub_type=proposed_sub_type,
                        timestamp=self._clock(),
                    )
                    await self.repository.add(request)
        except SocialGraphError as e:
            self.audit.record("PROPOSE_TYPE_CHANGE", from_user_id, target=to_user_id, success=False, error=e.code)
            raise

        logger.info(
            f"Type change {request.request_id} proposed: {from_user_id} -> {to_user_id} "
            f"({request.current_type} -> {proposed_type})"
        )
        self.audit.record(
            "PROPOSE_TYPE_CHANGE",
            from_user_id,
            target=to_user_id,
            request_id=request.request_id,
            metadata={"current_type": request.current_type, "proposed_type": proposed_type},
        )
        return request.request_id

    async def list_pending_type_changes(self, user_id: str) -> list[TypeChangeRequest]:
        """Pending proposals awaiting ``user_id``'s decision."""
        try:
            return await self.repository.list_pending_for_recipient(user_id)
        except Exception as e:
            logger.error(f"Failed to list pending type changes for {user_id}: {e}")
            return []

    async def list_all_type_change_requests(self, user_id: str) -> list[TypeChangeRequest]:
        """Every proposal ``user_id`` sent or received, any status."""
        try:
            return await self.repository.list_involving(user_id)
        except Exception as e:
            logger.error(f"Failed to list type change requests for {user_id}: {e}")
            return []

    async def respond_to_type_change(self, request_id: str, user_id: str, action: TypeChangeAction) -> TypeChangeRequest:
        """
        Approve or reject a pending proposal addressed to ``user_id``.

        Raises:
            NotFoundError: Unknown request id.
            UnauthorizedError: ``user_id`` is not the recipient.
            AlreadyProcessedError: The proposal was already resolved.
            InputValidationError: Missing fields or unknown action.
        """
        request_id = require(request_id, "request_id")
        user_id = require(user_id, "user_id")
        if action not in get_args(TypeChangeAction):
            raise InputValidationError(f"Invalid action: {action!r}. Must be 'approve' or 'reject'")

        operation = "APPROVE_TYPE_CHANGE" if action == "approve" else "REJECT_TYPE_CHANGE"
        try:
            async with self.repository.locked():
                request = await self.repository.get(request_id)
                if request is None:
                    raise NotFoundError(f"Type change request '{request_id}' not found")
                if request.to_user_id != user_id:
                    raise UnauthorizedError(f"User '{user_id}' is not the recipient of request '{request_id}'")
                if not request.is_pending:
                    raise AlreadyProcessedError(request_id, request.status)

                resolved = request.model_copy(
                    update={
                        "status": "approved" if action == "approve" else "rejected",
                        "responded_at": self._clock(),
                    }
                )
                await self.repository.replace(resolved)
        except SocialGraphError as e:
            self.audit.record(operation, user_id, request_id=request_id, success=False, error=e.code)
            raise

        metadata: dict[str, Any] = {}
        if action == "approve":
            metadata = await self._apply_type_change(resolved)

        logger.info(f"Type change {request_id} {resolved.status} by {user_id}")
        self.audit.record(
            operation,
            user_id,
            target=resolved.from_user_id,
            request_id=request_id,
            metadata=metadata,
        )
        return resolved

    async def _apply_type_change(self, request: TypeChangeRequest) -> dict[str, Any]:
        """
        Write the approved type to both stores.

        The fallback store is written unconditionally and its failure
        propagates; the graph write is skipped while the graph is
        unhealthy and only logged on failure.
        """
        pair = request.pair
        outcome: dict[str, Any] = {"proposed_type": request.proposed_type}

        async with self._pair_locks(pair):
            fallback: RelationshipStore = self.selector.fallback_store
            outcome["fallback_updated"] = await fallback.update_connection_type(
                pair, request.proposed_type, request.proposed_sub_type
            )

            graph = await self.selector.graph_if_healthy()
            if graph is None:
                outcome["graph_updated"] = False
                logger.info(f"Graph unavailable; type change {request.request_id} applied to fallback store only")
                return outcome

            try:
                outcome["graph_updated"] = await graph.update_connection_type(
                    pair, request.proposed_type, request.proposed_sub_type
                )
            except BackendUnavailableError as e:
                outcome["graph_updated"] = False
                self.selector.monitor.mark_unhealthy()
                logger.error(f"Graph unreachable while applying type change {request.request_id}: {e}")
            except Exception as e:
                outcome["graph_updated"] = False
                logger.error(f"Graph update failed for type change {request.request_id}: {e}")

        logger.info(
            f"Type change {request.request_id} applied "
            f"(fallback={outcome['fallback_updated']}, graph={outcome['graph_updated']})"
        )
        return outcome
