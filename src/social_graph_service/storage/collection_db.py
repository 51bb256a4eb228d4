# Copyright 2024 Heinrich Krupp
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Named flat collections on SQLite.

Each collection is a JSON array of records stored under its name and
read/replaced as a whole, mirroring a JSON-file document store. Callers
doing read-modify-write hold ``locked(name)`` for the duration so two
in-process writers cannot lose each other's update.
"""

import asyncio
import copy
import json
import logging
import os
import time
from typing import Any

import aiosqlite

logger = logging.getLogger(__name__)


class CollectionDB:
    """Async SQLite store of named JSON collections."""

    def __init__(self, db_path: str, cache_enabled: bool = True):
        """
        Initialize collection database.

        Args:
            db_path: Path to SQLite database file
            cache_enabled: Keep decoded collections in process memory (refreshed on write)
        """
        self.db_path = str(db_path)
        self.cache_enabled = cache_enabled
        self._cache: dict[str, list[dict[str, Any]]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize database schema if not exists."""
        if self._initialized:
            return

        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS collections (
                    name TEXT PRIMARY KEY,
                    records TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
            """
            )
            await db.commit()

        self._initialized = True
        logger.info(f"Collection database initialized at {self.db_path}")

    def locked(self, name: str) -> asyncio.Lock:
        """Per-collection lock for read-modify-write sequences."""
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = asyncio.Lock()
        return lock

    async def get_collection(self, name: str) -> list[dict[str, Any]]:
        """
        Load a collection.

        Returns:
            A private copy of the records; an unknown or unreadable
            collection is treated as empty.
        """
        if not self._initialized:
            await self.initialize()

        if self.cache_enabled and name in self._cache:
            return copy.deepcopy(self._cache[name])

        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("SELECT records FROM collections WHERE name = ?", (name,))
            row = await cursor.fetchone()

        records: list[dict[str, Any]] = []
        if row and row[0]:
            try:
                decoded = json.loads(row[0])
                if isinstance(decoded, list):
                    records = decoded
                else:
                    logger.warning(f"Collection '{name}' is not a list, treating as empty")
            except json.JSONDecodeError as e:
                logger.error(f"Collection '{name}' holds invalid JSON, treating as empty: {e}")

        if self.cache_enabled:
            self._cache[name] = copy.deepcopy(records)
        return records

    async def save_collection(self, name: str, records: list[dict[str, Any]]) -> None:
        """Replace a collection with ``records``."""
        if not self._initialized:
            await self.initialize()

        payload = json.dumps(records)
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT INTO collections (name, records, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET records = excluded.records, updated_at = excluded.updated_at
            """,
                (name, payload, time.time()),
            )
            await db.commit()

        if self.cache_enabled:
            self._cache[name] = copy.deepcopy(records)
        logger.debug(f"Saved collection '{name}' ({len(records)} records)")

    async def list_collections(self) -> list[str]:
        """Names of all stored collections."""
        if not self._initialized:
            await self.initialize()

        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("SELECT name FROM collections ORDER BY name")
            return [row[0] for row in await cursor.fetchall()]

    def invalidate_cache(self, name: str | None = None) -> None:
        """Drop cached collections so the next read hits SQLite."""
        if name is None:
            self._cache.clear()
        else:
            self._cache.pop(name, None)

    async def close(self) -> None:
        """Close database connections."""
        # aiosqlite connections are per call; only the cache needs clearing
        self._cache.clear()
