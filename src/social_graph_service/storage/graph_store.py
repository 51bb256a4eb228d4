"""
Primary relationship store on the FalkorDB graph.

Thin adapter over ``GraphClient``: converts rows to models and turns
transport failures into ``BackendUnavailableError`` so the backend
selector can fail the call over to the flat store.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ..errors import BackendUnavailableError
from ..graph.client import GraphClient
from ..models.connection import Connection, ConnectionRequest, UserPair
from .base import RelationshipStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _graph_call(operation: str) -> AsyncIterator[None]:
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError, asyncio.TimeoutError, OSError) as e:
        logger.warning(f"Graph backend unavailable during {operation}: {e}")
        raise BackendUnavailableError(f"Graph backend unavailable during {operation}") from e


def _present(row: dict[str, Any]) -> dict[str, Any]:
    """Drop null properties so model defaults apply."""
    return {k: v for k, v in row.items() if v is not None}


class GraphRelationshipStore(RelationshipStore):
    """RelationshipStore backed by directed edges in FalkorDB."""

    name = "graph"
    request_id_prefix = "req_"

    def __init__(self, client: GraphClient):
        self.client = client

    async def has_pending_request(self, pair: UserPair) -> bool:
        async with _graph_call("has_pending_request"):
            return await self.client.has_pending_request(pair.first, pair.second)

    async def create_request(self, request: ConnectionRequest) -> None:
        async with _graph_call("create_request"):
            await self.client.ensure_user_nodes(request.from_user_id, request.to_user_id)
            await self.client.create_request(
                request.request_id,
                request.from_user_id,
                request.to_user_id,
                request.type,
                request.timestamp.isoformat(),
            )

    async def get_request(self, request_id: str) -> ConnectionRequest | None:
        async with _graph_call("get_request"):
            row = await self.client.get_request(request_id)
        if row is None:
            return None
        return ConnectionRequest.model_validate(_present(row))

    async def list_pending_requests(self, user_id: str) -> list[ConnectionRequest]:
        async with _graph_call("list_pending_requests"):
            rows = await self.client.get_pending_requests(user_id)
        return [ConnectionRequest.model_validate(_present(row)) for row in rows]

    async def delete_request(self, request_id: str, to_user_id: str) -> bool:
        async with _graph_call("delete_request"):
            return await self.client.delete_request(request_id, to_user_id) > 0

    async def accept_request(self, request: ConnectionRequest, connection_type: str, since: datetime) -> bool:
        async with _graph_call("accept_request"):
            return await self.client.accept_request(
                request.request_id,
                request.to_user_id,
                connection_type,
                since.isoformat(),
            )

    async def find_connection(self, pair: UserPair) -> Connection | None:
        async with _graph_call("find_connection"):
            row = await self.client.find_connection(pair.first, pair.second)
        if row is None:
            return None
        return Connection.model_validate(_present(row))

    async def list_connections(self, user_id: str) -> list[Connection]:
        async with _graph_call("list_connections"):
            rows = await self.client.get_connections(user_id)
        return [Connection.model_validate(_present(row)) for row in rows]

    async def delete_connection(self, pair: UserPair) -> int:
        async with _graph_call("delete_connection"):
            return await self.client.delete_connection(pair.first, pair.second)

    async def update_connection_type(self, pair: UserPair, connection_type: str, sub_type: str | None = None) -> bool:
        async with _graph_call("update_connection_type"):
            return await self.client.update_connection_type(pair.first, pair.second, connection_type, sub_type) > 0
