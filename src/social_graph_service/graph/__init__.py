"""
Graph layer for the Social Graph Service.

Provides the FalkorDB-backed relationship graph:
- :User nodes merged on demand
- Directed :CONNECTION_REQUEST edges for pending requests
- Symmetric connections stored as paired :CONNECTED_WITH edges
- A TTL-cached health monitor used to route around outages
"""

from .client import GraphClient
from .health import HealthMonitor

__all__ = [
    "GraphClient",
    "HealthMonitor",
]
