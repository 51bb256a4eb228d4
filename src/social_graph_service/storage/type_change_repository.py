"""Persistence for connection type-change proposals.

Proposals live in the flat collection DB regardless of graph health and
are never deleted; resolved ones stay as audit records.
"""

import logging

from ..models.connection import TypeChangeRequest, UserPair
from .collection_db import CollectionDB

logger = logging.getLogger(__name__)

TYPE_CHANGES_COLLECTION = "connection_type_changes"


class TypeChangeRepository:
    """Collection-backed store of ``TypeChangeRequest`` records."""

    def __init__(self, db: CollectionDB):
        self.db = db

    def locked(self):
        """Lock guarding read-modify-write on the proposals collection."""
        return self.db.locked(TYPE_CHANGES_COLLECTION)

    async def list_all(self) -> list[TypeChangeRequest]:
        records = await self.db.get_collection(TYPE_CHANGES_COLLECTION)
        return [TypeChangeRequest.model_validate(r) for r in records]

    async def get(self, request_id: str) -> TypeChangeRequest | None:
        for request in await self.list_all():
            if request.request_id == request_id:
                return request
        return None

    async def find_pending_for_pair(self, pair: UserPair) -> TypeChangeRequest | None:
        for request in await self.list_all():
            if request.is_pending and request.pair == pair:
                return request
        return None

    async def list_pending_for_recipient(self, user_id: str) -> list[TypeChangeRequest]:
        return [r for r in await self.list_all() if r.is_pending and r.to_user_id == user_id]

    async def list_involving(self, user_id: str) -> list[TypeChangeRequest]:
        return [r for r in await self.list_all() if user_id in (r.from_user_id, r.to_user_id)]

    async def add(self, request: TypeChangeRequest) -> None:
        """Append a new proposal. Caller holds ``locked()``."""
        records = await self.db.get_collection(TYPE_CHANGES_COLLECTION)
        records.append(request.model_dump(mode="json"))
        await self.db.save_collection(TYPE_CHANGES_COLLECTION, records)

    async def replace(self, request: TypeChangeRequest) -> None:
        """Overwrite the stored proposal with the same id. Caller holds ``locked()``."""
        records = await self.db.get_collection(TYPE_CHANGES_COLLECTION)
        for index, record in enumerate(records):
            if record.get("request_id") == request.request_id:
                records[index] = request.model_dump(mode="json")
                break
        else:
            raise KeyError(request.request_id)
        await self.db.save_collection(TYPE_CHANGES_COLLECTION, records)
