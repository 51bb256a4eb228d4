"""
Fallback relationship store on flat collections.

Used while the graph backend is unreachable. A connection is a single
undirected record ``{user_a, user_b, type, sub_type, since}``; requests
are records in their own collection. Every mutation is a locked
read-modify-write of one collection.
"""

import logging
from datetime import datetime
from typing import Any

from ..models.connection import Connection, ConnectionRequest, UserPair
from .base import RelationshipStore
from .collection_db import CollectionDB

logger = logging.getLogger(__name__)

REQUESTS_COLLECTION = "sim_connection_requests"
CONNECTIONS_COLLECTION = "sim_connections"


def _on_pair(record: dict[str, Any], pair: UserPair) -> bool:
    return pair.matches(record.get("user_a"), record.get("user_b"))


class FlatRelationshipStore(RelationshipStore):
    """RelationshipStore backed by ``CollectionDB`` records."""

    name = "fallback"
    request_id_prefix = "sim_req_"

    def __init__(self, db: CollectionDB):
        self.db = db

    # ── Requests ────────────────────────────────────────────────────────

    async def _pending(self) -> list[ConnectionRequest]:
        records = await self.db.get_collection(REQUESTS_COLLECTION)
        return [ConnectionRequest.model_validate(r) for r in records if r.get("status") == "PENDING"]

    async def has_pending_request(self, pair: UserPair) -> bool:
        return any(r.pair == pair for r in await self._pending())

    async def create_request(self, request: ConnectionRequest) -> None:
        async with self.db.locked(REQUESTS_COLLECTION):
            records = await self.db.get_collection(REQUESTS_COLLECTION)
            records.append(request.model_dump(mode="json"))
            await self.db.save_collection(REQUESTS_COLLECTION, records)
        logger.debug(f"Stored fallback request {request.request_id}")

    async def get_request(self, request_id: str) -> ConnectionRequest | None:
        for record in await self.db.get_collection(REQUESTS_COLLECTION):
            if record.get("request_id") == request_id:
                return ConnectionRequest.model_validate(record)
        return None

    async def list_pending_requests(self, user_id: str) -> list[ConnectionRequest]:
        pending = [r for r in await self._pending() if r.to_user_id == user_id]
        return sorted(pending, key=lambda r: r.timestamp)

    async def delete_request(self, request_id: str, to_user_id: str) -> bool:
        async with self.db.locked(REQUESTS_COLLECTION):
            records = await self.db.get_collection(REQUESTS_COLLECTION)
            kept = [r for r in records if not (r.get("request_id") == request_id and r.get("to_user_id") == to_user_id)]
            if len(kept) == len(records):
                return False
            await self.db.save_collection(REQUESTS_COLLECTION, kept)
        return True

    async def accept_request(self, request: ConnectionRequest, connection_type: str, since: datetime) -> bool:
        async with self.db.locked(REQUESTS_COLLECTION):
            records = await self.db.get_collection(REQUESTS_COLLECTION)
            kept = [
                r
                for r in records
                if not (r.get("request_id") == request.request_id and r.get("to_user_id") == request.to_user_id)
            ]
            if len(kept) == len(records):
                return False

            connection = Connection(
                user_a=request.from_user_id,
                user_b=request.to_user_id,
                type=connection_type,
                since=since,
            )
            # Connection first: if the second write fails the request survives and can be retried.
            async with self.db.locked(CONNECTIONS_COLLECTION):
                connections = await self.db.get_collection(CONNECTIONS_COLLECTION)
                connections.append(connection.model_dump(mode="json"))
                await self.db.save_collection(CONNECTIONS_COLLECTION, connections)
            await self.db.save_collection(REQUESTS_COLLECTION, kept)
        return True

    # ── Connections ─────────────────────────────────────────────────────

    async def find_connection(self, pair: UserPair) -> Connection | None:
        for record in await self.db.get_collection(CONNECTIONS_COLLECTION):
            if _on_pair(record, pair):
                return Connection.model_validate(record)
        return None

    async def list_connections(self, user_id: str) -> list[Connection]:
        return [
            Connection.model_validate(r)
            for r in await self.db.get_collection(CONNECTIONS_COLLECTION)
            if user_id in (r.get("user_a"), r.get("user_b"))
        ]

    async def delete_connection(self, pair: UserPair) -> int:
        async with self.db.locked(CONNECTIONS_COLLECTION):
            records = await self.db.get_collection(CONNECTIONS_COLLECTION)
            kept = [r for r in records if not _on_pair(r, pair)]
            removed = len(records) - len(kept)
            if removed:
                await self.db.save_collection(CONNECTIONS_COLLECTION, kept)
        return removed

    async def update_connection_type(self, pair: UserPair, connection_type: str, sub_type: str | None = None) -> bool:
        async with self.db.locked(CONNECTIONS_COLLECTION):
            records = await self.db.get_collection(CONNECTIONS_COLLECTION)
            for record in records:
                if _on_pair(record, pair):
                    record["type"] = connection_type
                    if sub_type is not None:
                        record["sub_type"] = sub_type
                    await self.db.save_collection(CONNECTIONS_COLLECTION, records)
                    return True
        return False
