"""
Graph schema for the social relationship graph.

Defines the Cypher schema for FalkorDB: node labels, relationship types,
and indices. Schema is applied idempotently on startup.

Node Labels:
    :User  - A user identity reference (keyed by user_id)

Relationship Types:
    :CONNECTION_REQUEST - Directed pending request (from sender to recipient).
                          Properties: request_id, status, type, timestamp.
    :CONNECTED_WITH     - One directed half of a symmetric connection. A
                          connection is always stored as two edges, one per
                          direction, carrying identical type/sub_type/since.

Indices:
    User(user_id) - Node lookup by id
"""

USER_LABEL = "User"
REQUEST_EDGE = "CONNECTION_REQUEST"
CONNECTION_EDGE = "CONNECTED_WITH"

PENDING = "PENDING"

# Cypher statements executed idempotently on graph initialization.
SCHEMA_STATEMENTS: list[str] = [
    "CREATE INDEX IF NOT EXISTS FOR (u:User) ON (u.user_id)",
]
