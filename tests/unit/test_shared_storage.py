"""Tests for the process-wide StorageManager."""

from unittest.mock import AsyncMock, patch

import pytest

from social_graph_service.services.connection_service import ConnectionService
from social_graph_service.shared_storage import StorageManager


@pytest.fixture
async def manager():
    instance = StorageManager()
    yield instance
    await instance.close()


class TestStorageManager:
    def test_singleton(self):
        assert StorageManager.get_instance() is StorageManager.get_instance()

    @pytest.mark.asyncio
    async def test_initialize_builds_services_sharing_audit(self, manager):
        connections = await manager.get_connection_service()
        type_changes = await manager.get_type_change_service()

        assert manager.is_initialized()
        assert isinstance(connections, ConnectionService)
        assert type_changes.audit is connections.audit
        assert manager.graph_client is None
        assert manager.monitor.enabled is False

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, manager):
        await manager.initialize()
        first = manager.connection_service

        await manager.initialize()

        assert manager.connection_service is first

    @pytest.mark.asyncio
    async def test_graph_failure_degrades_to_fallback(self, manager):
        with patch(
            "social_graph_service.shared_storage.create_graph_layer",
            AsyncMock(side_effect=ConnectionError("refused")),
        ):
            await manager.initialize()

        assert manager.is_initialized()
        assert manager.graph_client is None
        assert await manager.monitor.is_healthy() is False

    @pytest.mark.asyncio
    async def test_close_resets_state(self, manager):
        await manager.initialize()

        await manager.close()

        assert not manager.is_initialized()
        assert manager.connection_service is None
        assert manager.monitor is None
