"""In-memory audit trail of relationship mutations (bounded circular buffer)."""

import logging
import time
from collections import deque
from typing import Any

from ..models.audit_log import AuditLog

logger = logging.getLogger(__name__)


class AuditTrail:
    """Records every mutation attempt, successful or not."""

    # Maximum audit logs to keep in memory (circular buffer)
    _MAX_AUDIT_LOGS = 10000

    def __init__(self, max_entries: int = _MAX_AUDIT_LOGS):
        self._audit_logs: deque[AuditLog] = deque(maxlen=max_entries)

    def record(
        self,
        operation: str,
        actor: str,
        target: str | None = None,
        request_id: str | None = None,
        backend: str | None = None,
        success: bool = True,
        error: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        log_entry = AuditLog(
            operation=operation,
            actor=actor,
            timestamp=time.time(),
            target=target,
            request_id=request_id,
            backend=backend,
            success=success,
            error=error,
            metadata=metadata or {},
        )
        self._audit_logs.append(log_entry)
        logger.info(
            f"AUDIT {operation} actor={actor} target={target} request={request_id} "
            f"backend={backend} success={success}" + (f" error={error}" if error else "")
        )

    def get_audit_trail(
        self,
        limit: int = 100,
        operation: str | None = None,
        actor: str | None = None,
    ) -> dict[str, Any]:
        """
        Get audit trail of relationship mutations.

        Returns recent operations with optional filtering, newest first.
        """
        filtered_logs = list(self._audit_logs)
        if operation:
            filtered_logs = [log for log in filtered_logs if log.operation == operation]
        if actor:
            filtered_logs = [log for log in filtered_logs if log.actor == actor]

        filtered_logs.sort(key=lambda x: x.timestamp, reverse=True)

        operations_by_type: dict[str, int] = {}
        for log in filtered_logs:
            operations_by_type[log.operation] = operations_by_type.get(log.operation, 0) + 1

        successes = sum(1 for log in filtered_logs if log.success)
        return {
            "total_operations": len(filtered_logs),
            "operations": [log.to_dict() for log in filtered_logs[:limit]],
            "operations_by_type": operations_by_type,
            "success_rate": successes / len(filtered_logs) if filtered_logs else 1.0,
        }

    def __len__(self) -> int:
        return len(self._audit_logs)
