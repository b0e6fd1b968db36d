"""API tests — race and replay endpoints against a temporary store."""

import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.api.services import ReplayService


@pytest.fixture
def client(populated_store):
    ReplayService.reset_instance(populated_store)
    with TestClient(app) as c:
        yield c
    ReplayService.reset_instance()


@pytest.fixture
def loaded(client):
    resp = client.post("/api/races/4812345/load")
    assert resp.status_code == 200
    return client


class TestRaceEndpoints:
    """Tests for /api/races."""

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok", "race_loaded": False}

    def test_list(self, client):
        races = client.get("/api/races").json()
        assert [r["event_id"] for r in races] == ["4812345"]
        assert races[0]["rider_count"] == 3

    def test_load(self, client):
        body = client.post("/api/races/4812345/load").json()
        assert body["watched_id"] == "c"
        assert body["max_time_seconds"] == 100
        assert body["total_distance_km"] == 2

    def test_load_missing(self, client):
        assert client.post("/api/races/nope/load").status_code == 404

    def test_delete(self, client):
        assert client.delete("/api/races/4812345").status_code == 200
        assert client.delete("/api/races/4812345").status_code == 404


class TestReplayEndpoints:
    """Tests for /api/replay."""

    def test_requires_loaded_race(self, client):
        assert client.get("/api/replay/state").status_code == 400

    def test_scrub_and_state(self, loaded):
        playback = loaded.post("/api/replay/scrub", json={"seconds": 60}).json()
        assert playback["cursor_seconds"] == 60

        state = loaded.get("/api/replay/state").json()
        assert state["clock"] == "1:00"
        assert state["watched"]["rider_id"] == "c"
        assert state["watched"]["rank"] == 3
        assert state["gap_to_leader"]["label"] == "+12s"
        assert [g["size"] for g in state["groups"]] == [2, 1]
        assert state["groups"][1]["expanded"] is True

    def test_scrub_negative_rejected(self, loaded):
        assert loaded.post("/api/replay/scrub", json={"seconds": -1}).status_code == 422

    def test_play_pause(self, loaded):
        assert loaded.post("/api/replay/play").json()["is_playing"] is True
        assert loaded.post("/api/replay/pause").json()["is_playing"] is False

    def test_reset(self, loaded):
        loaded.post("/api/replay/scrub", json={"seconds": 30})
        assert loaded.post("/api/replay/reset").json()["cursor_seconds"] == 0

    def test_speed(self, loaded):
        assert loaded.post("/api/replay/speed", json={"speed": 30}).json()["speed_multiplier"] == 30
        assert loaded.post("/api/replay/speed", json={"speed": 7}).status_code == 422

    def test_watch(self, loaded):
        state = loaded.post("/api/replay/watch", json={"rider_id": "a"}).json()
        assert state["watched"]["rider_id"] == "a"
        assert loaded.post("/api/replay/watch", json={"rider_id": "zz"}).status_code == 404

    def test_compare(self, loaded):
        state = loaded.post("/api/replay/compare", json={"group_index": 0}).json()
        assert state["compare"] == {"index": 0}
        assert state["compare_label"] == "vs Lead Group"
        assert state["groups"][0]["selected"] is True

        cleared = loaded.post("/api/replay/compare", json={}).json()
        assert cleared["compare"] is None

    def test_compare_both_rejected(self, loaded):
        resp = loaded.post("/api/replay/compare", json={"rider_id": "a", "group_index": 0})
        assert resp.status_code == 422

    def test_riders_search(self, loaded):
        riders = loaded.get("/api/replay/riders", params={"search": "car"}).json()
        assert [r["rider_id"] for r in riders] == ["c"]

    def test_toggle_group(self, loaded):
        assert loaded.post("/api/replay/groups/0/toggle").json() == {"index": 0, "expanded": True}

    def test_power(self, loaded):
        loaded.post("/api/replay/scrub", json={"seconds": 60})
        body = loaded.get("/api/replay/power").json()
        assert body["labels"][-1] == "1:00"
        assert body["compare_name"] == "Alice"

    def test_elevation(self, loaded):
        body = loaded.get("/api/replay/elevation").json()
        assert len(body["distance_km"]) == len(body["elevation_m"]) == 101
        bad = loaded.get("/api/replay/elevation", params={"zoom_start": 0.6, "zoom_end": 0.2})
        assert bad.status_code == 422

    def test_refresh_picks_up_new_riders(self, loaded, populated_store, rider_factory):
        populated_store.append_riders("4812345", "Crit City Race", [rider_factory("d", 4, 0.009)])
        body = loaded.post("/api/replay/refresh").json()
        assert body["updated"] is True
        assert body["rider_count"] == 4
        assert body["sync_in_progress"] is True
