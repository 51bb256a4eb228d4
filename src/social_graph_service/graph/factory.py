"""
Factory for creating and initializing the graph layer.

Creates the GraphClient and its HealthMonitor from settings.
When the graph layer is disabled (SOCIAL_GRAPH_FALKORDB_ENABLED=false) the
monitor has no client and permanently reports unhealthy, so every call is
served by the fallback store.
"""

import logging

from ..config import FalkorDBSettings, HealthSettings, settings
from .client import GraphClient
from .health import HealthMonitor

logger = logging.getLogger(__name__)


async def create_graph_layer(
    graph_config: FalkorDBSettings | None = None,
    health_config: HealthSettings | None = None,
) -> tuple[GraphClient | None, HealthMonitor]:
    """
    Create and initialize the FalkorDB graph layer if enabled.

    Returns:
        Tuple of (GraphClient or None, HealthMonitor).
    """
    config = graph_config or settings.falkordb
    health = health_config or settings.health

    if not config.enabled:
        logger.info("FalkorDB graph layer disabled (SOCIAL_GRAPH_FALKORDB_ENABLED=false); fallback store only")
        return None, HealthMonitor(None)

    password = config.password.get_secret_value() if config.password else None

    client = GraphClient(
        host=config.host,
        port=config.port,
        password=password,
        graph_name=config.graph_name,
        max_connections=config.max_connections,
    )
    await client.initialize()

    monitor = HealthMonitor(
        client,
        ttl_seconds=health.ttl_seconds,
        probe_timeout=health.probe_timeout_seconds,
    )

    logger.info(f"Graph layer initialized: {config.host}:{config.port}/{config.graph_name}")
    return client, monitor
