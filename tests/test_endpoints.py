import os
from pathlib import Path
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.directory.home_directory import reset_home_directory
from app.main import app
from app.notifications.dispatcher import reset_dispatcher
from app.storage.event_store import InMemoryEventStore, reset_event_store


SAMPLE_HOME = Path(__file__).resolve().parent.parent / "app" / "data" / "sample_home.json"

STANDUP = {
    "home_id": "home-1",
    "organizer_id": "u1",
    "title": "Standup",
    "room_id": "r1",
    "date": "2024-01-10",
    "start_time": "09:00",
    "end_time": "09:30",
    "attendee_ids": ["u1", "u2"],
}


@pytest.fixture(autouse=True)
def _isolated_env():
    env = {
        "DIRECTORY_PATH": str(SAMPLE_HOME),
        "EVENT_STORE_DRIVER": "memory",
        "PUSH_DRIVER": "console",
    }
    with patch.dict(os.environ, env, clear=True):
        reset_home_directory()
        reset_event_store()
        reset_dispatcher()
        yield
        reset_home_directory()
        reset_event_store()
        reset_dispatcher()


client = TestClient(app)


def test_root_health_ok():
    r = client.get("/")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


class TestScheduleEvent:
    """Test POST /events."""

    def test_valid_event_is_created(self):
        r = client.post("/events", json=STANDUP)

        assert r.status_code == 201
        data = r.json()
        assert data["ok"] is True
        assert data["navigate"] == "My Home"
        event = data["event"]
        assert event["id"]
        assert event["title"] == "Standup"
        assert event["room_id"] == "r1"
        assert event["start_date"] == "2024-01-10T09:00:00"
        assert event["end_date"] == "2024-01-10T09:30:00"
        assert event["attendee_ids"] == ["u1", "u2"]

        fetched = client.get(f"/events/{event['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["id"] == event["id"]

    def test_attendees_default_to_organizer(self):
        body = {k: v for k, v in STANDUP.items() if k != "attendee_ids"}
        r = client.post("/events", json=body)

        assert r.status_code == 201
        assert r.json()["event"]["attendee_ids"] == ["u1"]

    def test_missing_title_and_room(self):
        body = {**STANDUP, "title": "", "room_id": None}
        r = client.post("/events", json=body)

        assert r.status_code == 422
        data = r.json()
        assert data["ok"] is False
        assert data["errors"] == ["Please enter a title", "Please select a room"]
        assert data["message"] == "Please enter a title\nPlease select a room"

    def test_every_missing_field_reported(self):
        body = {"home_id": "home-1", "organizer_id": "u1", "attendee_ids": []}
        r = client.post("/events", json=body)

        assert r.status_code == 422
        assert len(r.json()["errors"]) == 6

    def test_unknown_organizer(self):
        r = client.post("/events", json={**STANDUP, "organizer_id": "nobody"})
        assert r.status_code == 404

    def test_store_failure_returns_503(self):
        failing = InMemoryEventStore(fail_with=ConnectionError("offline"))
        with patch("app.routes.events.get_event_store", return_value=failing):
            r = client.post("/events", json=STANDUP)

        assert r.status_code == 503
        assert "offline" in r.json()["detail"]
        assert len(failing) == 0

    def test_api_key_required_when_configured(self):
        with patch.dict(os.environ, {"API_KEY": "k-123"}):
            assert client.post("/events", json=STANDUP).status_code == 401
            ok = client.post("/events", json=STANDUP, headers={"x-api-key": "k-123"})
            assert ok.status_code == 201


class TestLookups:
    """Test the read-only household endpoints."""

    def test_rooms_for_home(self):
        r = client.get("/homes/home-1/rooms")
        assert r.status_code == 200
        assert [room["id"] for room in r.json()] == ["r1", "r2", "r3"]

    def test_rooms_for_other_home(self):
        r = client.get("/homes/home-2/rooms")
        assert [room["name"] for room in r.json()] == ["Balcony"]

    def test_people_hide_delivery_tokens(self):
        r = client.get("/homes/home-1/people")
        assert r.status_code == 200
        people = r.json()
        assert [p["id"] for p in people] == ["u1", "u2", "u3"]
        assert people[0] == {"id": "u1", "name": "Alex Rivera", "can_receive_alerts": True}
        assert people[2]["can_receive_alerts"] is False
        assert all("delivery_token" not in p for p in people)

    def test_unknown_event(self):
        assert client.get("/events/does-not-exist").status_code == 404
