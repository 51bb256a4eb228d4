"""
FalkorDB graph client for the social relationship graph.

All relationship reads and writes against the primary backend go through
this client. Nodes are MERGEd on demand (there is no separate user
creation step); a symmetric connection is always written and mutated as a
pair of directed :CONNECTED_WITH edges through ``_symmetric_merge`` /
``_symmetric_match`` so the two halves cannot drift apart.

Timestamps are stored on edges as ISO-8601 strings.
"""

import logging
from typing import Any

from falkordb.asyncio import FalkorDB
from redis.asyncio import BlockingConnectionPool, Redis

from .schema import CONNECTION_EDGE, PENDING, REQUEST_EDGE, SCHEMA_STATEMENTS, USER_LABEL

logger = logging.getLogger(__name__)

_EDGE_PROPS = "{v}.type = $type, {v}.sub_type = $sub_type, {v}.since = $since"


def _symmetric_merge(a: str, b: str) -> str:
    """MERGE both directed halves of a connection between bound nodes ``a`` and ``b``."""
    clauses = []
    for var, src, dst in (("x", a, b), ("y", b, a)):
        clauses.append(f"MERGE ({src})-[{var}:{CONNECTION_EDGE}]->({dst}) SET " + _EDGE_PROPS.format(v=var))
    return " ".join(clauses)


def _symmetric_match(a_param: str = "a", b_param: str = "b") -> str:
    """MATCH every :CONNECTED_WITH edge between two users, in both directions."""
    return (
        f"MATCH (a:{USER_LABEL} {{user_id: ${a_param}}})"
        f"-[r:{CONNECTION_EDGE}]-"
        f"(b:{USER_LABEL} {{user_id: ${b_param}}}) "
    )


class GraphClient:
    """
    Async FalkorDB client for the social graph.

    Manages a Redis connection pool; the same pool backs the health
    probe (PING) so a reachable pool means a reachable graph.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        password: str | None = None,
        graph_name: str = "social_graph",
        max_connections: int = 16,
    ):
        self.host = host
        self.port = port
        self.password = password
        self.graph_name = graph_name
        self.max_connections = max_connections

        self._pool: BlockingConnectionPool | None = None
        self._db: FalkorDB | None = None
        self._graph = None
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize connection pool, select graph, and apply schema."""
        if self._initialized:
            return

        self._pool = BlockingConnectionPool(
            host=self.host,
            port=self.port,
            password=self.password,
            max_connections=self.max_connections,
            timeout=None,
            decode_responses=True,
        )

        self._db = FalkorDB(connection_pool=self._pool)
        self._graph = self._db.select_graph(self.graph_name)

        # Unreachable backend at startup is not fatal; the health monitor routes around it.
        for stmt in SCHEMA_STATEMENTS:
            try:
                await self._graph.query(stmt)
            except Exception as e:
                if "already indexed" not in str(e).lower():
                    logger.warning(f"Schema statement warning: {stmt} -> {e}")

        self._initialized = True
        logger.info(f"GraphClient initialized: {self.host}:{self.port}/{self.graph_name}")

    async def close(self) -> None:
        """Release the connection pool."""
        if self._pool is not None:
            await self._pool.aclose()
        self._pool = None
        self._db = None
        self._graph = None
        self._initialized = False

    @property
    def pool(self) -> BlockingConnectionPool:
        if self._pool is None:
            raise RuntimeError("GraphClient not initialized. Call initialize() first.")
        return self._pool

    @property
    def graph(self):
        """Expose graph for direct query access."""
        if self._graph is None:
            raise RuntimeError("GraphClient not initialized. Call initialize() first.")
        return self._graph

    # ── Connectivity ────────────────────────────────────────────────────

    async def ping(self) -> bool:
        """Round-trip PING on the shared pool. Raises on connection errors."""
        conn = Redis(connection_pool=self.pool)
        try:
            return bool(await conn.ping())
        finally:
            await conn.aclose()

    # ── Nodes ───────────────────────────────────────────────────────────

    async def ensure_user_nodes(self, *user_ids: str) -> None:
        """MERGE a :User node for every id (idempotent)."""
        for user_id in user_ids:
            await self._graph.query(
                f"MERGE (u:{USER_LABEL} {{user_id: $uid}})",
                params={"uid": user_id},
            )

    # ── Connection requests ─────────────────────────────────────────────

    async def has_pending_request(self, user_a: str, user_b: str) -> bool:
        """True if a PENDING request exists between the users in either direction."""
        result = await self._graph.query(
            f"MATCH (a:{USER_LABEL} {{user_id: $a}})-[r:{REQUEST_EDGE}]-(b:{USER_LABEL} {{user_id: $b}}) "
            "WHERE r.status = $pending "
            "RETURN count(r)",
            params={"a": user_a, "b": user_b, "pending": PENDING},
        )
        count = int(result.result_set[0][0]) if result.result_set else 0
        return count > 0

    async def create_request(
        self,
        request_id: str,
        from_user_id: str,
        to_user_id: str,
        connection_type: str,
        timestamp: str,
    ) -> None:
        """Create a PENDING :CONNECTION_REQUEST edge (both nodes must exist)."""
        await self._graph.query(
            f"MATCH (a:{USER_LABEL} {{user_id: $src}}), (b:{USER_LABEL} {{user_id: $dst}}) "
            f"MERGE (a)-[r:{REQUEST_EDGE} {{request_id: $rid}}]->(b) "
            "ON CREATE SET r.status = $pending, r.type = $type, r.timestamp = $ts",
            params={
                "src": from_user_id,
                "dst": to_user_id,
                "rid": request_id,
                "pending": PENDING,
                "type": connection_type,
                "ts": timestamp,
            },
        )

    async def get_request(self, request_id: str) -> dict[str, Any] | None:
        """Fetch a request edge by id, regardless of recipient."""
        result = await self._graph.query(
            f"MATCH (a:{USER_LABEL})-[r:{REQUEST_EDGE} {{request_id: $rid}}]->(b:{USER_LABEL}) "
            "RETURN r.request_id, a.user_id, b.user_id, r.type, r.status, r.timestamp "
            "LIMIT 1",
            params={"rid": request_id},
        )
        if not result.result_set:
            return None
        return self._request_row(result.result_set[0])

    async def get_pending_requests(self, user_id: str) -> list[dict[str, Any]]:
        """All PENDING requests addressed to ``user_id``, oldest first."""
        result = await self._graph.query(
            f"MATCH (a:{USER_LABEL})-[r:{REQUEST_EDGE}]->(b:{USER_LABEL} {{user_id: $uid}}) "
            "WHERE r.status = $pending "
            "RETURN r.request_id, a.user_id, b.user_id, r.type, r.status, r.timestamp "
            "ORDER BY r.timestamp",
            params={"uid": user_id, "pending": PENDING},
        )
        return [self._request_row(row) for row in result.result_set]

    async def delete_request(self, request_id: str, to_user_id: str) -> int:
        """Delete the request edge addressed to ``to_user_id``. Returns edges deleted."""
        result = await self._graph.query(
            f"MATCH (:{USER_LABEL})-[r:{REQUEST_EDGE} {{request_id: $rid}}]->(:{USER_LABEL} {{user_id: $uid}}) "
            "DELETE r",
            params={"rid": request_id, "uid": to_user_id},
        )
        return int(result.relationships_deleted)

    async def accept_request(
        self,
        request_id: str,
        to_user_id: str,
        connection_type: str,
        since: str,
    ) -> bool:
        """
        Replace a request edge with a symmetric connection in one query.

        Returns:
            True if the request existed (and was consumed), False otherwise.
        """
        result = await self._graph.query(
            f"MATCH (a:{USER_LABEL})-[r:{REQUEST_EDGE} {{request_id: $rid}}]->(b:{USER_LABEL} {{user_id: $uid}}) "
            "DELETE r "
            "WITH a, b " + _symmetric_merge("a", "b"),
            params={
                "rid": request_id,
                "uid": to_user_id,
                "type": connection_type,
                "sub_type": None,
                "since": since,
            },
        )
        return int(result.relationships_deleted) > 0

    @staticmethod
    def _request_row(row: list[Any]) -> dict[str, Any]:
        return {
            "request_id": row[0],
            "from_user_id": row[1],
            "to_user_id": row[2],
            "type": row[3],
            "status": row[4],
            "timestamp": row[5],
        }

    # ── Connections ─────────────────────────────────────────────────────

    async def find_connection(self, user_a: str, user_b: str) -> dict[str, Any] | None:
        """Return the connection between two users, or None."""
        result = await self._graph.query(
            _symmetric_match() + "RETURN r.type, r.sub_type, r.since LIMIT 1",
            params={"a": user_a, "b": user_b},
        )
        if not result.result_set:
            return None
        row = result.result_set[0]
        return {"user_a": user_a, "user_b": user_b, "type": row[0], "sub_type": row[1], "since": row[2]}

    async def get_connections(self, user_id: str) -> list[dict[str, Any]]:
        """
        Connections touching ``user_id``.

        Reads only the outgoing half; the symmetric write guarantees the
        incoming half carries identical properties.
        """
        result = await self._graph.query(
            f"MATCH (u:{USER_LABEL} {{user_id: $uid}})-[r:{CONNECTION_EDGE}]->(o:{USER_LABEL}) "
            "RETURN o.user_id, r.type, r.sub_type, r.since "
            "ORDER BY r.since",
            params={"uid": user_id},
        )
        return [
            {"user_a": user_id, "user_b": row[0], "type": row[1], "sub_type": row[2], "since": row[3]}
            for row in result.result_set
        ]

    async def delete_connection(self, user_a: str, user_b: str) -> int:
        """Delete both directed halves of a connection. Returns edges deleted."""
        result = await self._graph.query(
            _symmetric_match() + "DELETE r",
            params={"a": user_a, "b": user_b},
        )
        deleted = int(result.relationships_deleted)
        logger.debug(f"Deleted {deleted} {CONNECTION_EDGE} edge(s) between {user_a} and {user_b}")
        return deleted

    async def update_connection_type(
        self,
        user_a: str,
        user_b: str,
        connection_type: str,
        sub_type: str | None = None,
    ) -> int:
        """Set type (and sub_type, when given) on both directed halves. Returns properties set."""
        result = await self._graph.query(
            _symmetric_match() + "SET r.type = $type, r.sub_type = coalesce($sub_type, r.sub_type)",
            params={"a": user_a, "b": user_b, "type": connection_type, "sub_type": sub_type},
        )
        return int(result.properties_set)
