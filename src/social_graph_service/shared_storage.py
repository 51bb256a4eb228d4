#!/usr/bin/env python3
"""
Shared storage manager for the Social Graph Service.

This module provides singleton storage and service instances that can be
shared between the HTTP and MCP servers, so the fallback database, the
graph connection pool and the health monitor are created once per
process. Sharing the health monitor matters: every caller in a process
must see the same cached verdict.
"""

import asyncio
import logging
from threading import Lock
from typing import Optional

from .graph.client import GraphClient
from .graph.factory import create_graph_layer
from .graph.health import HealthMonitor
from .services.audit import AuditTrail
from .services.connection_service import ConnectionService
from .services.directory import UserDirectory
from .services.type_change_service import TypeChangeService
from .storage.collection_db import CollectionDB
from .storage.factory import create_collection_db, create_selector
from .storage.selector import BackendSelector
from .storage.type_change_repository import TypeChangeRepository
from .utils.locks import PairLocks

logger = logging.getLogger(__name__)


class StorageManager:
    """Manages the singleton storage layer and the services built on it."""

    _instance: Optional["StorageManager"] = None
    _lock: Lock = Lock()

    def __init__(self):
        """Initialize storage manager."""
        self._db: CollectionDB | None = None
        self._graph_client: GraphClient | None = None
        self._monitor: HealthMonitor | None = None
        self._selector: BackendSelector | None = None
        self._connection_service: ConnectionService | None = None
        self._type_change_service: TypeChangeService | None = None
        self._initialization_lock: asyncio.Lock = asyncio.Lock()
        self._initialized: bool = False

    @classmethod
    def get_instance(cls) -> "StorageManager":
        """Get singleton instance of StorageManager.

        Thread-safe singleton pattern ensures only one instance exists.

        Returns:
            StorageManager: The singleton instance
        """
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
                    logger.info("Created new StorageManager singleton instance")
        return cls._instance

    async def initialize(self) -> None:
        """Create the fallback DB, the graph layer and the services.

        Idempotent; concurrent callers result in a single initialization.
        A graph layer that fails to initialize is treated as disabled.
        """
        if self._initialized:
            return

        async with self._initialization_lock:
            if self._initialized:
                return

            logger.info("Initializing shared storage...")

            self._db = await create_collection_db()

            try:
                self._graph_client, self._monitor = await create_graph_layer()
            except Exception as e:
                logger.warning(f"Graph layer initialization failed (non-fatal): {e}")
                self._graph_client, self._monitor = None, HealthMonitor(None)

            self._selector = create_selector(self._db, self._graph_client, self._monitor)

            directory = UserDirectory(self._db)
            audit = AuditTrail()
            pair_locks = PairLocks()
            self._connection_service = ConnectionService(self._selector, directory, audit=audit, pair_locks=pair_locks)
            self._type_change_service = TypeChangeService(
                self._selector,
                TypeChangeRepository(self._db),
                audit=audit,
                pair_locks=pair_locks,
            )

            self._initialized = True
            logger.info(f"Shared storage initialized (graph layer {'enabled' if self._graph_client else 'disabled'})")

    async def get_connection_service(self) -> ConnectionService:
        await self.initialize()
        return self._connection_service

    async def get_type_change_service(self) -> TypeChangeService:
        await self.initialize()
        return self._type_change_service

    @property
    def connection_service(self) -> ConnectionService | None:
        return self._connection_service

    @property
    def type_change_service(self) -> TypeChangeService | None:
        return self._type_change_service

    @property
    def monitor(self) -> HealthMonitor | None:
        """Get the graph health monitor if initialized."""
        return self._monitor

    @property
    def graph_client(self) -> GraphClient | None:
        """Get the graph client if graph layer is enabled."""
        return self._graph_client

    async def close(self) -> None:
        """Close all managed instances.

        Safe to call even if storage was never initialized.
        """
        if self._graph_client is not None:
            try:
                await self._graph_client.close()
            except Exception as e:
                logger.warning(f"Error closing graph client: {e}")
            self._graph_client = None

        if self._db is not None:
            try:
                logger.info("Closing fallback database...")
                await self._db.close()
            except Exception as e:
                logger.error(f"Error closing fallback database: {e}")
            self._db = None

        self._monitor = None
        self._selector = None
        self._connection_service = None
        self._type_change_service = None
        self._initialized = False

    def is_initialized(self) -> bool:
        """Check if storage has been initialized.

        Returns:
            bool: True if storage is initialized, False otherwise
        """
        return self._initialized


# Module-level convenience functions
_manager = StorageManager.get_instance()


async def initialize_shared_storage() -> None:
    """Initialize the shared storage layer (idempotent)."""
    await _manager.initialize()


async def close_shared_storage() -> None:
    """Close the shared storage layer."""
    await _manager.close()


def is_storage_initialized() -> bool:
    """Check if shared storage has been initialized."""
    return _manager.is_initialized()


async def get_connection_service() -> ConnectionService:
    """Get the shared connection service, initializing storage on first use."""
    return await _manager.get_connection_service()


async def get_type_change_service() -> TypeChangeService:
    """Get the shared type change service, initializing storage on first use."""
    return await _manager.get_type_change_service()


def get_health_monitor() -> HealthMonitor | None:
    """Get the shared graph health monitor if initialized."""
    return _manager.monitor
