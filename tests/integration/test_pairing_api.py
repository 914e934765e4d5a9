"""
HTTP tests for the pairing router against the in-memory store.
"""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from peerpair.db.helpers import DatabaseError
from peerpair.main import app

client = TestClient(app)

PROFILE = {
    "skills_can_teach": ["Rust"],
    "skills_want_to_learn": ["React"],
    "timezone": "America/New_York",
    "session_types": ["teach-me"],
}


def _as(member_id: str) -> dict[str, str]:
    return {"X-Member-Id": member_id}


def test_healthz_endpoint():
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_readyz_reports_database_state():
    healthy = {"healthy": True, "pool_stats": {"pool_size": 2, "pool_available": 2}}
    with patch("peerpair.routes.health.db_health_check", AsyncMock(return_value=healthy)):
        response = client.get("/readyz")
    assert response.status_code == 200
    assert response.json()["checks"]["database"]["ok"] is True

    down = {"healthy": False, "error": "Pool not initialized"}
    with patch("peerpair.routes.health.db_health_check", AsyncMock(return_value=down)):
        response = client.get("/readyz")
    assert response.status_code == 503
    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["database"]["error"] == "Pool not initialized"


def test_missing_member_header_is_401(fake_store):
    response = client.get("/pair/profile")

    assert response.status_code == 401


def test_profile_round_trip(fake_store):
    response = client.put("/pair/profile", json=PROFILE, headers=_as("alice"))
    assert response.status_code == 200
    assert response.json()["member_id"] == "alice"

    response = client.get("/pair/profile", headers=_as("alice"))
    assert response.json()["skills_can_teach"] == ["Rust"]

    response = client.get("/pair/profile", headers=_as("nobody"))
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"


def test_invalid_profile_is_400(fake_store):
    response = client.put(
        "/pair/profile", json={**PROFILE, "session_types": ["pairing-party"]}, headers=_as("alice")
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "validation_error"


def test_matches_endpoint(fake_store):
    client.put("/pair/profile", json=PROFILE, headers=_as("alice"))
    client.put(
        "/pair/profile",
        json={**PROFILE, "skills_can_teach": ["React"], "skills_want_to_learn": ["Rust"]},
        headers=_as("bob"),
    )

    response = client.get("/pair/matches", headers=_as("alice"))

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 1
    assert data["matches"][0]["candidate_id"] == "bob"
    assert data["matches"][0]["score"] == 35

    assert client.get("/pair/matches?limit=0", headers=_as("alice")).status_code == 400
    assert client.get("/pair/profiles", headers=_as("alice")).json()["count"] == 2


def test_request_to_completed_session_flow(fake_store):
    response = client.post(
        "/pair/requests",
        json={"to_user_id": "bob", "session_type": "teach-me", "message": "Teach me React?"},
        headers=_as("alice"),
    )
    assert response.status_code == 201
    request_id = response.json()["request_id"]

    received = client.get("/pair/requests?direction=received", headers=_as("bob")).json()
    assert [r["id"] for r in received["requests"]] == [request_id]

    response = client.post(
        f"/pair/requests/{request_id}/respond", json={"action": "accept"}, headers=_as("bob")
    )
    assert response.status_code == 200
    session_id = response.json()["session_id"]

    response = client.post(
        f"/pair/requests/{request_id}/respond", json={"action": "accept"}, headers=_as("bob")
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "conflict"

    assert client.post(f"/pair/sessions/{session_id}/start", headers=_as("alice")).status_code == 200

    response = client.post(f"/pair/sessions/{session_id}/complete", headers=_as("alice"))
    assert response.status_code == 400

    response = client.put(
        f"/pair/sessions/{session_id}/notes",
        json={"what_we_worked_on": "Hooks", "what_i_learned": "useEffect cleanup"},
        headers=_as("alice"),
    )
    assert response.status_code == 200
    assert response.json()["notes"]["alice"]["what_i_learned"] == "useEffect cleanup"

    response = client.post(f"/pair/sessions/{session_id}/complete", headers=_as("alice"))
    assert response.status_code == 200
    assert response.json()["status"] == "completed"

    sessions = client.get("/pair/sessions", headers=_as("bob")).json()
    assert sessions["count"] == 1
    assert client.get(f"/pair/sessions/{session_id}", headers=_as("mallory")).status_code == 404


def test_outsider_cannot_respond_or_start(fake_store):
    request_id = client.post(
        "/pair/requests",
        json={"to_user_id": "bob", "session_type": "code-review", "message": "Review my PR?"},
        headers=_as("alice"),
    ).json()["request_id"]

    response = client.post(
        f"/pair/requests/{request_id}/respond", json={"action": "accept"}, headers=_as("mallory")
    )
    assert response.status_code == 403

    response = client.post(f"/pair/requests/{request_id}/cancel", headers=_as("alice"))
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"


def test_store_outage_is_503(fake_store, monkeypatch):
    monkeypatch.setattr(
        "peerpair.features.pairing.services.request_service.RequestRepository.list_for_member",
        AsyncMock(side_effect=DatabaseError("connection refused", operation="fetch_all")),
    )

    response = client.get("/pair/requests?direction=sent", headers=_as("alice"))

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "store_unavailable"
