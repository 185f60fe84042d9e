"""Tests for the typing session REST API."""

import json
import uuid

import pytest

from app import create_app
from db.exceptions import DatabaseError


def _post(client, url, data=None):
    return client.post(url, data=json.dumps(data or {}), content_type="application/json")


def _start(client, snippet="abc", language="Python") -> str:
    response = _post(client, "/api/session/start", {"snippet": snippet, "language": language})
    assert response.status_code == 201
    return response.get_json()["session_id"]


def _type(client, clock, session_id, text, step=0.2):
    response = None
    for char in text:
        clock.advance(step)
        response = _post(client, f"/api/session/{session_id}/input", {"character": char})
        assert response.status_code == 200
    return response


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "healthy", "live_sessions": 0}


class TestSessionEndpoints:
    def test_start_session(self, client):
        response = _post(client, "/api/session/start", {"snippet": "x = 1", "language": "Python"})
        assert response.status_code == 201
        data = response.get_json()
        uuid.UUID(data["session_id"])
        assert data["snippet"] == "x = 1"
        assert data["language"] == "Python"
        assert 1.0 <= data["difficulty"] <= 2.0

    @pytest.mark.parametrize("payload", [
        {"snippet": "", "language": "Python"},
        {"language": "Python"},
        {"snippet": "abc", "language": "bad<lang>"},
    ])
    def test_start_session_invalid(self, client, payload):
        response = _post(client, "/api/session/start", payload)
        assert response.status_code == 400
        assert "error" in response.get_json()

    def test_non_object_body_rejected(self, client):
        response = client.post("/api/session/start", data=json.dumps([1, 2]), content_type="application/json")
        assert response.status_code == 400

    def test_type_and_complete(self, client, clock):
        session_id = _start(client, "abc")
        response = _type(client, clock, session_id, "ax")
        data = response.get_json()
        assert data["correct"] is False
        assert data["cursor"] == 2
        assert data["live_metrics"]["errors"] == 1

        response = _post(client, f"/api/session/{session_id}/backspace")
        assert response.status_code == 200
        assert response.get_json()["cursor"] == 1

        response = _type(client, clock, session_id, "bc")
        assert response.get_json()["completed"] is True

        response = _post(client, f"/api/session/{session_id}/complete", {"user_id": "alice"})
        assert response.status_code == 200
        data = response.get_json()
        assert data["metrics"]["accuracy"] == 75.0
        assert data["metrics"]["corrections"] == 1
        assert data["detailed_metrics"]["errors"]["top_mistakes"] == ["b→x"]

        response = _post(client, f"/api/session/{session_id}/complete", {"user_id": "alice"})
        assert response.status_code == 404

    def test_tagged_key_events(self, client, clock):
        session_id = _start(client, "ab")
        clock.advance(0.2)
        response = _post(client, f"/api/session/{session_id}/input", {"key": {"kind": "character", "value": "a"}})
        assert response.get_json()["cursor"] == 1
        response = _post(client, f"/api/session/{session_id}/input", {"key": {"kind": "backspace"}})
        assert response.get_json()["cursor"] == 0
        response = _post(client, f"/api/session/{session_id}/input", {"key": {"kind": "delete"}})
        assert response.status_code == 400

    @pytest.mark.parametrize("payload", [{}, {"character": ""}, {"character": "ab"}, {"character": 7}])
    def test_invalid_character(self, client, payload):
        session_id = _start(client)
        response = _post(client, f"/api/session/{session_id}/input", payload)
        assert response.status_code == 400

    def test_invalid_session_id(self, client):
        response = _post(client, "/api/session/not-a-uuid/input", {"character": "a"})
        assert response.status_code == 400

    def test_unknown_session(self, client):
        response = _post(client, f"/api/session/{uuid.uuid4()}/input", {"character": "a"})
        assert response.status_code == 404
        assert response.get_json()["error"] == "Session not found"

    def test_pause_and_resume(self, client, clock):
        session_id = _start(client, "abcdef")
        _type(client, clock, session_id, "a")

        response = _post(client, f"/api/session/{session_id}/pause")
        assert response.status_code == 200
        assert response.get_json()["state"] == "paused"

        response = _post(client, f"/api/session/{session_id}/input", {"character": "b"})
        assert response.status_code == 409
        assert response.get_json()["state"] == "paused"

        response = _post(client, f"/api/session/{session_id}/resume")
        assert response.get_json()["state"] == "active"

    def test_complete_before_start_conflicts(self, client):
        session_id = _start(client)
        response = _post(client, f"/api/session/{session_id}/complete")
        assert response.status_code == 409

    def test_complete_with_invalid_user(self, client, clock):
        session_id = _start(client, "abcdef")
        _type(client, clock, session_id, "a")
        response = _post(client, f"/api/session/{session_id}/complete", {"user_id": "!"})
        assert response.status_code == 400

    def test_expired_session(self, client, clock, service):
        session_id = _start(client)
        clock.advance(61)
        service.registry.sweep()
        response = _post(client, f"/api/session/{session_id}/input", {"character": "a"})
        assert response.status_code == 404


class TestStatisticsEndpoints:
    def test_statistics(self, client, clock):
        session_id = _start(client, "hello")
        _type(client, clock, session_id, "hello")
        _post(client, f"/api/session/{session_id}/complete", {"user_id": "alice"})

        response = client.get("/api/statistics/alice")
        assert response.status_code == 200
        data = response.get_json()
        assert data["user_id"] == "alice"
        assert data["session_count"] == 1
        assert data["personal_bests"]["Python"]["wpm"] == data["personal_best"]["wpm"]
        assert data["most_practiced_language"] == "Python"

    def test_statistics_unknown_user(self, client):
        response = client.get("/api/statistics/nobody")
        assert response.status_code == 200
        assert response.get_json()["session_count"] == 0

    def test_statistics_invalid_user(self, client):
        response = client.get("/api/statistics/a!")
        assert response.status_code == 400

    def test_leaderboard(self, client, clock):
        for user_id, step in (("alice", 0.2), ("bob", 0.1)):
            session_id = _start(client, "hello")
            _type(client, clock, session_id, "hello", step=step)
            _post(client, f"/api/session/{session_id}/complete", {"user_id": user_id})

        response = client.get("/api/leaderboard")
        assert response.status_code == 200
        assert [e["user_id"] for e in response.get_json()] == ["bob", "alice"]

        response = client.get("/api/leaderboard?limit=1")
        assert len(response.get_json()) == 1

    @pytest.mark.parametrize("limit", ["0", "abc", "1000", "%C2%B2", "1%C2%B2"])
    def test_leaderboard_invalid_limit(self, client, limit):
        response = client.get(f"/api/leaderboard?limit={limit}")
        assert response.status_code == 400


def test_storage_failure_maps_to_500(service, clock):
    class FailingRepository:
        def add_session_record(self, user_id, record):
            raise DatabaseError("disk full")

    service.repository = FailingRepository()
    app = create_app({"TESTING": True}, service=service)
    with app.test_client() as client:
        session_id = _start(client, "ab")
        _type(client, clock, session_id, "ab")
        response = _post(client, f"/api/session/{session_id}/complete", {"user_id": "alice"})
    assert response.status_code == 500
    assert response.get_json() == {"error": "Storage failure"}


def test_testing_app_does_not_start_sweeper(app, service):
    assert app.extensions["typing_service"] is service
    assert not service.registry.sweeper_running
