"""
End-to-end relationship flow on the fallback store.

Two users connect, one proposes a new connection type and the other
approves it; both must then see the same connection with the new type.
"""

import pytest

from social_graph_service.errors import NotConnectedError
from social_graph_service.models.connection import UserProfile
from social_graph_service.services.audit import AuditTrail
from social_graph_service.services.connection_service import ConnectionService
from social_graph_service.services.type_change_service import TypeChangeService
from social_graph_service.storage.type_change_repository import TypeChangeRepository
from social_graph_service.utils.locks import PairLocks


@pytest.fixture
async def services(fallback_selector, directory, db, clock):
    await directory.add_profile(UserProfile(id="alice", username="alice_w", name="Alice"))
    await directory.add_profile(UserProfile(id="bob", username="bob_builder", name="Bob"))
    audit = AuditTrail()
    locks = PairLocks()
    connections = ConnectionService(fallback_selector, directory, audit=audit, pair_locks=locks, clock=clock)
    type_changes = TypeChangeService(
        fallback_selector, TypeChangeRepository(db), audit=audit, pair_locks=locks, clock=clock
    )
    return connections, type_changes


@pytest.mark.asyncio
async def test_connect_then_change_type(services):
    connections, type_changes = services

    request_id = await connections.send_request("alice", "bob", "Work")
    pending = await connections.list_pending_requests("bob")
    assert [(p.request_id, p.from_display.display_name) for p in pending] == [(request_id, "Alice")]

    await connections.respond_to_request(request_id, "bob", "accept")
    assert [c.type for c in await connections.list_connections("alice")] == ["Work"]

    proposal_id = await type_changes.propose_type_change("alice", "bob", "Social")
    resolved = await type_changes.respond_to_type_change(proposal_id, "bob", "approve")

    assert resolved.status == "approved"
    assert resolved.responded_at is not None
    assert resolved.current_type == "Work"
    for user, other in (("alice", "bob"), ("bob", "alice")):
        view = await connections.list_connections(user)
        assert [(c.user_id, c.type) for c in view] == [(other, "Social")]

    trail = connections.get_audit_trail()
    assert trail["operations_by_type"] == {
        "SEND_REQUEST": 1,
        "ACCEPT_REQUEST": 1,
        "PROPOSE_TYPE_CHANGE": 1,
        "APPROVE_TYPE_CHANGE": 1,
    }


@pytest.mark.asyncio
async def test_removed_connection_blocks_type_change(services):
    connections, type_changes = services
    request_id = await connections.send_request("bob", "alice", "Family")
    await connections.respond_to_request(request_id, "alice", "accept")

    await connections.remove_connection("alice", "bob")

    assert await connections.list_connections("bob") == []
    with pytest.raises(NotConnectedError) as exc_info:
        await type_changes.propose_type_change("bob", "alice", "Work")
    assert exc_info.value.code == "NotConnected"
