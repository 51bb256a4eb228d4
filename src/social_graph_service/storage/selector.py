"""
Per-call backend selection.

Every connection operation asks the selector which store to use; the
answer is re-evaluated on each call from the health monitor's cached
verdict. A graph call that hits a transport failure mid-flight is re-run
once against the fallback store, and the monitor is told about the outage
so subsequent calls skip the graph until the next re-probe.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from ..errors import BackendUnavailableError
from ..graph.health import HealthMonitor
from .base import RelationshipStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BackendSelector:
    """Routes each call to the graph store when healthy, else the fallback store."""

    def __init__(
        self,
        monitor: HealthMonitor,
        fallback_store: RelationshipStore,
        graph_store: RelationshipStore | None = None,
    ):
        self.monitor = monitor
        self.fallback_store = fallback_store
        self.graph_store = graph_store

    async def select(self) -> RelationshipStore:
        if self.graph_store is not None and await self.monitor.is_healthy():
            return self.graph_store
        return self.fallback_store

    async def graph_if_healthy(self) -> RelationshipStore | None:
        """The graph store if it is currently reachable, for best-effort extra writes."""
        if self.graph_store is not None and await self.monitor.is_healthy():
            return self.graph_store
        return None

    async def run(self, operation: Callable[[RelationshipStore], Awaitable[T]]) -> T:
        """
        Execute ``operation`` against the selected store.

        ``BackendUnavailableError`` from the graph store is consumed here:
        the call is failed over to the fallback store.
        """
        store = await self.select()
        try:
            return await operation(store)
        except BackendUnavailableError:
            if store is self.fallback_store:
                raise
            self.monitor.mark_unhealthy()
            logger.warning("Graph backend failed mid-call; retrying on fallback store")
            return await operation(self.fallback_store)
