"""
Integration tests for the /api/connect HTTP endpoints.

The routers run against real services on a temporary fallback database;
service dependencies are overridden so no FalkorDB is needed.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from social_graph_service.graph.health import HealthMonitor
from social_graph_service.models.connection import UserProfile
from social_graph_service.services.connection_service import ConnectionService
from social_graph_service.services.directory import UserDirectory
from social_graph_service.services.type_change_service import TypeChangeService
from social_graph_service.storage.collection_db import CollectionDB
from social_graph_service.storage.flat_store import FlatRelationshipStore
from social_graph_service.storage.selector import BackendSelector
from social_graph_service.storage.type_change_repository import TypeChangeRepository
from social_graph_service.web.app import app
from social_graph_service.web.dependencies import (
    get_connection_service,
    get_health_monitor,
    get_type_change_service,
)

ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}


@pytest.fixture
def client(tmp_path):
    db = CollectionDB(str(tmp_path / "api.db"))
    directory = UserDirectory(db)
    asyncio.run(directory.add_profile(UserProfile(id="bob", username="bob_builder", name="Bob")))
    asyncio.run(directory.add_profile(UserProfile(id="alice", username="alice_w", name="Alice")))

    monitor = HealthMonitor(None)
    selector = BackendSelector(monitor, FlatRelationshipStore(db))
    connections = ConnectionService(selector, directory)
    type_changes = TypeChangeService(selector, TypeChangeRepository(db), audit=connections.audit)

    app.dependency_overrides[get_connection_service] = lambda: connections
    app.dependency_overrides[get_type_change_service] = lambda: type_changes
    app.dependency_overrides[get_health_monitor] = lambda: monitor
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _connect(client):
    request_id = client.post("/api/connect/request", json={"to_user_id": "bob", "type": "Work"}, headers=ALICE).json()[
        "request_id"
    ]
    response = client.post("/api/connect/respond", json={"request_id": request_id, "action": "accept"}, headers=BOB)
    assert response.status_code == 200


def test_connect_routes_registered():
    routes = [getattr(route, "path", None) for route in app.routes]

    for path in (
        "/api/connect/search",
        "/api/connect/list",
        "/api/connect/requests",
        "/api/connect/request",
        "/api/connect/respond",
        "/api/connect/connections/{target_id}",
        "/api/connect/type-changes",
        "/api/connect/type-changes/pending",
        "/api/connect/type-changes/{request_id}/respond",
        "/api/connect/health",
    ):
        assert path in routes, f"{path} not registered"


def test_missing_user_header_rejected(client):
    assert client.get("/api/connect/list").status_code == 401


def test_search_excludes_caller(client):
    response = client.get("/api/connect/search", params={"q": "b"}, headers=ALICE)
    assert response.json()["users"] == []

    response = client.get("/api/connect/search", params={"q": "bob"}, headers=ALICE)
    assert response.status_code == 200
    assert [u["id"] for u in response.json()["users"]] == ["bob"]


def test_request_accept_and_list(client):
    response = client.post("/api/connect/request", json={"to_user_id": "bob", "type": "Work"}, headers=ALICE)
    assert response.status_code == 200
    request_id = response.json()["request_id"]

    pending = client.get("/api/connect/requests", headers=BOB).json()
    assert pending["total"] == 1
    assert pending["requests"][0]["from_display"]["username"] == "alice_w"

    response = client.post("/api/connect/respond", json={"request_id": request_id, "action": "accept"}, headers=BOB)
    assert response.status_code == 200

    listing = client.get("/api/connect/list", headers=ALICE).json()
    assert [(c["user_id"], c["type"]) for c in listing["connections"]] == [("bob", "Work")]


def test_duplicate_request_conflicts(client):
    client.post("/api/connect/request", json={"to_user_id": "bob", "type": "Work"}, headers=ALICE)

    response = client.post("/api/connect/request", json={"to_user_id": "alice", "type": "Work"}, headers=BOB)

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "RequestAlreadyPending"


def test_self_request_is_bad_request(client):
    response = client.post("/api/connect/request", json={"to_user_id": "alice", "type": "Work"}, headers=ALICE)

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "ValidationError"


def test_missing_body_field_is_unprocessable(client):
    response = client.post("/api/connect/request", json={"to_user_id": "bob"}, headers=ALICE)

    assert response.status_code == 422


def test_respond_by_non_recipient_not_found(client):
    request_id = client.post(
        "/api/connect/request", json={"to_user_id": "bob", "type": "Work"}, headers=ALICE
    ).json()["request_id"]

    response = client.post("/api/connect/respond", json={"request_id": request_id, "action": "accept"}, headers=ALICE)

    assert response.status_code == 404


def test_remove_connection_twice(client):
    _connect(client)

    assert client.delete("/api/connect/connections/bob", headers=ALICE).status_code == 200
    response = client.delete("/api/connect/connections/bob", headers=ALICE)
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "NotFound"


def test_type_change_flow(client):
    _connect(client)

    response = client.post(
        "/api/connect/type-changes",
        json={"to_user_id": "bob", "proposed_type": "Social", "proposed_sub_type": "Friend"},
        headers=ALICE,
    )
    assert response.status_code == 200
    request_id = response.json()["request_id"]

    pending = client.get("/api/connect/type-changes/pending", headers=BOB).json()
    assert [r["request_id"] for r in pending["requests"]] == [request_id]

    response = client.post(f"/api/connect/type-changes/{request_id}/respond", json={"action": "approve"}, headers=ALICE)
    assert response.status_code == 403

    response = client.post(f"/api/connect/type-changes/{request_id}/respond", json={"action": "approve"}, headers=BOB)
    assert response.status_code == 200
    assert response.json()["request"]["status"] == "approved"

    response = client.post(f"/api/connect/type-changes/{request_id}/respond", json={"action": "reject"}, headers=BOB)
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "AlreadyProcessed"

    history = client.get("/api/connect/type-changes", headers=ALICE).json()
    assert history["total"] == 1
    listing = client.get("/api/connect/list", headers=BOB).json()
    assert listing["connections"][0]["type"] == "Social"
    assert listing["connections"][0]["sub_type"] == "Friend"


def test_type_change_without_connection_conflicts(client):
    response = client.post(
        "/api/connect/type-changes", json={"to_user_id": "bob", "proposed_type": "Social"}, headers=ALICE
    )

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "NotConnected"


def test_invalid_action_rejected(client):
    response = client.post("/api/connect/respond", json={"request_id": "x", "action": "maybe"}, headers=BOB)

    assert response.status_code == 422


def test_health_reports_fallback_when_graph_disabled(client):
    data = client.get("/api/connect/health").json()

    assert data["graph_enabled"] is False
    assert data["graph_healthy"] is False
    assert data["active_backend"] == "fallback"


def test_services_unavailable_before_initialization():
    app.dependency_overrides.clear()

    response = TestClient(app).get("/api/connect/list", headers=ALICE)

    assert response.status_code == 503


def test_over_length_types_rejected(client):
    response = client.post("/api/connect/request", json={"to_user_id": "bob", "type": "W" * 65}, headers=ALICE)
    assert response.status_code == 422

    request_id = client.post(
        "/api/connect/request", json={"to_user_id": "bob", "type": "Work"}, headers=ALICE
    ).json()["request_id"]
    response = client.post(
        "/api/connect/respond",
        json={"request_id": request_id, "action": "accept", "type": "W" * 65},
        headers=BOB,
    )
    assert response.status_code == 422

    response = client.post("/api/connect/respond", json={"request_id": request_id, "action": "accept"}, headers=BOB)
    assert response.status_code == 200

    response = client.post(
        "/api/connect/type-changes", json={"to_user_id": "bob", "proposed_type": "S" * 65}, headers=ALICE
    )
    assert response.status_code == 422
