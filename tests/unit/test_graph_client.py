"""
Unit tests for GraphClient.

Tests the FalkorDB graph client with mocked FalkorDB/Redis connections.
Validates node merging, request edges, symmetric connection edges and
schema initialization.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest


@pytest.fixture
def mock_graph():
    """Create a mock FalkorDB graph."""
    graph = AsyncMock()
    return graph


@pytest.fixture
def client(mock_graph):
    """GraphClient wired to the mock graph without touching the network."""
    from social_graph_service.graph.client import GraphClient

    graph_client = GraphClient.__new__(GraphClient)
    graph_client._graph = mock_graph
    graph_client._pool = MagicMock()
    graph_client._initialized = True
    return graph_client


def _result(rows=None, relationships_deleted=0, properties_set=0):
    result = MagicMock()
    result.result_set = rows or []
    result.relationships_deleted = relationships_deleted
    result.properties_set = properties_set
    return result


class TestGraphClientInit:
    """Test GraphClient initialization and schema application."""

    @pytest.mark.asyncio
    @patch("social_graph_service.graph.client.BlockingConnectionPool")
    @patch("social_graph_service.graph.client.FalkorDB")
    async def test_initialize_creates_pool_and_applies_schema(self, mock_falkordb_cls, mock_pool_cls):
        from social_graph_service.graph.client import GraphClient
        from social_graph_service.graph.schema import SCHEMA_STATEMENTS

        mock_pool_instance = MagicMock()
        mock_pool_instance.aclose = AsyncMock()
        mock_pool_cls.return_value = mock_pool_instance

        mock_graph_instance = AsyncMock()
        mock_db_instance = MagicMock()
        mock_db_instance.select_graph.return_value = mock_graph_instance
        mock_falkordb_cls.return_value = mock_db_instance

        client = GraphClient(host="testhost", port=6380, graph_name="test_graph", max_connections=8)
        await client.initialize()

        mock_pool_cls.assert_called_once_with(
            host="testhost",
            port=6380,
            password=None,
            max_connections=8,
            timeout=None,
            decode_responses=True,
        )
        mock_db_instance.select_graph.assert_called_once_with("test_graph")
        assert mock_graph_instance.query.call_count == len(SCHEMA_STATEMENTS)

        # Idempotent: second call is no-op
        await client.initialize()
        assert mock_graph_instance.query.call_count == len(SCHEMA_STATEMENTS)

    @pytest.mark.asyncio
    @patch("social_graph_service.graph.client.BlockingConnectionPool")
    @patch("social_graph_service.graph.client.FalkorDB")
    async def test_initialize_tolerates_unreachable_backend(self, mock_falkordb_cls, mock_pool_cls):
        """Schema failures are logged, not raised: startup must survive a graph outage."""
        from social_graph_service.graph.client import GraphClient

        mock_pool_cls.return_value = MagicMock(aclose=AsyncMock())
        mock_graph = AsyncMock()
        mock_graph.query.side_effect = ConnectionError("Connection refused")
        mock_db = MagicMock()
        mock_db.select_graph.return_value = mock_graph
        mock_falkordb_cls.return_value = mock_db

        client = GraphClient()
        await client.initialize()

        assert client.graph is mock_graph

    @pytest.mark.asyncio
    @patch("social_graph_service.graph.client.BlockingConnectionPool")
    @patch("social_graph_service.graph.client.FalkorDB")
    async def test_close_releases_pool(self, mock_falkordb_cls, mock_pool_cls):
        from social_graph_service.graph.client import GraphClient

        pool = MagicMock(aclose=AsyncMock())
        mock_pool_cls.return_value = pool
        mock_falkordb_cls.return_value = MagicMock(select_graph=MagicMock(return_value=AsyncMock()))

        client = GraphClient()
        await client.initialize()
        await client.close()

        pool.aclose.assert_awaited_once()
        with pytest.raises(RuntimeError):
            _ = client.graph

    def test_uninitialized_pool_raises(self):
        from social_graph_service.graph.client import GraphClient

        with pytest.raises(RuntimeError):
            _ = GraphClient().pool


class TestGraphClientNodes:
    @pytest.mark.asyncio
    async def test_ensure_user_nodes_merges_each_id(self, client, mock_graph):
        await client.ensure_user_nodes("alice", "bob")

        assert mock_graph.query.call_count == 2
        for call, expected in zip(mock_graph.query.call_args_list, ["alice", "bob"]):
            assert "MERGE (u:User" in call[0][0]
            assert call[1]["params"]["uid"] == expected


class TestGraphClientRequests:
    @pytest.mark.asyncio
    async def test_has_pending_request_matches_either_direction(self, client, mock_graph):
        mock_graph.query.return_value = _result([[1]])

        assert await client.has_pending_request("alice", "bob") is True

        cypher = mock_graph.query.call_args[0][0]
        # Undirected pattern: no arrow on the request edge
        assert "-[r:CONNECTION_REQUEST]-(" in cypher
        assert "->" not in cypher
        assert mock_graph.query.call_args[1]["params"]["pending"] == "PENDING"

    @pytest.mark.asyncio
    async def test_has_pending_request_false_on_zero(self, client, mock_graph):
        mock_graph.query.return_value = _result([[0]])

        assert await client.has_pending_request("alice", "bob") is False

    @pytest.mark.asyncio
    async def test_create_request_sets_pending_properties(self, client, mock_graph):
        await client.create_request("req_1", "alice", "bob", "Work", "2024-01-01T00:00:00+00:00")

        cypher = mock_graph.query.call_args[0][0]
        params = mock_graph.query.call_args[1]["params"]
        assert "CONNECTION_REQUEST" in cypher
        assert params["src"] == "alice"
        assert params["dst"] == "bob"
        assert params["rid"] == "req_1"
        assert params["pending"] == "PENDING"
        assert params["type"] == "Work"

    @pytest.mark.asyncio
    async def test_get_request_maps_row(self, client, mock_graph):
        mock_graph.query.return_value = _result(
            [["req_1", "alice", "bob", "Work", "PENDING", "2024-01-01T00:00:00+00:00"]]
        )

        row = await client.get_request("req_1")

        assert row == {
            "request_id": "req_1",
            "from_user_id": "alice",
            "to_user_id": "bob",
            "type": "Work",
            "status": "PENDING",
            "timestamp": "2024-01-01T00:00:00+00:00",
        }

    @pytest.mark.asyncio
    async def test_get_request_missing(self, client, mock_graph):
        mock_graph.query.return_value = _result([])

        assert await client.get_request("nope") is None

    @pytest.mark.asyncio
    async def test_get_pending_requests(self, client, mock_graph):
        mock_graph.query.return_value = _result(
            [
                ["req_1", "alice", "carol", "Work", "PENDING", "2024-01-01T00:00:00+00:00"],
                ["req_2", "bob", "carol", "Social", "PENDING", "2024-01-02T00:00:00+00:00"],
            ]
        )

        rows = await client.get_pending_requests("carol")

        assert [r["request_id"] for r in rows] == ["req_1", "req_2"]
        assert mock_graph.query.call_args[1]["params"]["uid"] == "carol"

    @pytest.mark.asyncio
    async def test_delete_request_returns_deleted_count(self, client, mock_graph):
        mock_graph.query.return_value = _result(relationships_deleted=1)

        assert await client.delete_request("req_1", "bob") == 1
        assert "DELETE r" in mock_graph.query.call_args[0][0]

    @pytest.mark.asyncio
    async def test_accept_request_writes_both_directions(self, client, mock_graph):
        mock_graph.query.return_value = _result(relationships_deleted=1)

        accepted = await client.accept_request("req_1", "bob", "Work", "2024-01-01T00:00:00+00:00")

        assert accepted is True
        cypher = mock_graph.query.call_args[0][0]
        assert "DELETE r" in cypher
        assert "MERGE (a)-[x:CONNECTED_WITH]->(b)" in cypher
        assert "MERGE (b)-[y:CONNECTED_WITH]->(a)" in cypher
        params = mock_graph.query.call_args[1]["params"]
        assert params["type"] == "Work"
        assert params["sub_type"] is None

    @pytest.mark.asyncio
    async def test_accept_request_missing_request(self, client, mock_graph):
        mock_graph.query.return_value = _result(relationships_deleted=0)

        assert await client.accept_request("gone", "bob", "Work", "2024-01-01T00:00:00+00:00") is False


class TestGraphClientConnections:
    @pytest.mark.asyncio
    async def test_find_connection(self, client, mock_graph):
        mock_graph.query.return_value = _result([["Work", "Colleague", "2024-01-01T00:00:00+00:00"]])

        row = await client.find_connection("alice", "bob")

        assert row == {
            "user_a": "alice",
            "user_b": "bob",
            "type": "Work",
            "sub_type": "Colleague",
            "since": "2024-01-01T00:00:00+00:00",
        }

    @pytest.mark.asyncio
    async def test_find_connection_absent(self, client, mock_graph):
        mock_graph.query.return_value = _result([])

        assert await client.find_connection("alice", "bob") is None

    @pytest.mark.asyncio
    async def test_get_connections_reads_outgoing_half(self, client, mock_graph):
        mock_graph.query.return_value = _result([["bob", "Work", None, "2024-01-01T00:00:00+00:00"]])

        rows = await client.get_connections("alice")

        assert rows == [
            {"user_a": "alice", "user_b": "bob", "type": "Work", "sub_type": None, "since": "2024-01-01T00:00:00+00:00"}
        ]
        assert "]->(o:User)" in mock_graph.query.call_args[0][0]

    @pytest.mark.asyncio
    async def test_delete_connection_counts_both_edges(self, client, mock_graph):
        mock_graph.query.return_value = _result(relationships_deleted=2)

        assert await client.delete_connection("alice", "bob") == 2
        cypher = mock_graph.query.call_args[0][0]
        assert "-[r:CONNECTED_WITH]-(" in cypher
        assert cypher.rstrip().endswith("DELETE r")

    @pytest.mark.asyncio
    async def test_update_connection_type(self, client, mock_graph):
        mock_graph.query.return_value = _result(properties_set=4)

        updated = await client.update_connection_type("alice", "bob", "Social", None)

        assert updated == 4
        params = mock_graph.query.call_args[1]["params"]
        assert params == {"a": "alice", "b": "bob", "type": "Social", "sub_type": None}
        assert "coalesce($sub_type, r.sub_type)" in mock_graph.query.call_args[0][0]


class TestGraphClientPing:
    @pytest.mark.asyncio
    @patch("social_graph_service.graph.client.Redis")
    async def test_ping_uses_shared_pool_and_closes(self, mock_redis_cls, client):
        conn = MagicMock()
        conn.ping = AsyncMock(return_value=True)
        conn.aclose = AsyncMock()
        mock_redis_cls.return_value = conn

        assert await client.ping() is True

        mock_redis_cls.assert_called_once_with(connection_pool=client._pool)
        conn.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    @patch("social_graph_service.graph.client.Redis")
    async def test_ping_propagates_connection_errors(self, mock_redis_cls, client):
        from redis.exceptions import ConnectionError as RedisConnectionError

        conn = MagicMock()
        conn.ping = AsyncMock(side_effect=RedisConnectionError("down"))
        conn.aclose = AsyncMock()
        mock_redis_cls.return_value = conn

        with pytest.raises(RedisConnectionError):
            await client.ping()
        conn.aclose.assert_awaited_once()
