"""Unit tests for importing, printing and exporting races."""

import json

import pandas as pd
import pytest

from src.race_loader import RaceLoader


@pytest.fixture
def race_file(tmp_path):
    """Race file with one pre-built rider, one raw analysis payload and one failed fetch."""
    data = {
        "eventId": 5550001,
        "eventName": "Flat Sprint",
        "sampleInterval": 1,
        "riders": [
            {
                "position": 1,
                "zwiftId": "11",
                "name": "Eve Echelon",
                "duration": 3,
                "power": [300, 310, 320],
                "distance": [0.0, 0.012, 0.024],
            },
            {
                "position": 2,
                "rider_id": "22",
                "name": "Finn Fast",
                "analysis": {"xData": [0.0, 0.011, 0.022], "x2Data": [0, 1, 2],
                             "datasets": {"1": {"data": [250, 260, 270]}}},
            },
            {"position": 3, "rider_id": "33", "name": "Gus Gone", "analysis": {}},
        ],
    }
    path = tmp_path / "race.json"
    path.write_text(json.dumps(data))
    return path


class TestRaceLoader:
    """Tests for the loader facade."""

    def test_import_file(self, race_store, race_file):
        record = RaceLoader(race_store).import_file(race_file)
        assert record.event_id == "5550001"
        assert [r.rider_id for r in record.riders] == ["11", "22"]
        assert record.errors == [3]
        assert record.total_riders == 3
        assert race_store.get("5550001").riders[1].power == [250, 260, 270]

    def test_import_filters_rows(self, race_store, tmp_path):
        """Bad positions and id-less rows are dropped; the local user survives the rider cap."""
        series = {"duration": 2, "distance": [0.0, 0.01]}
        data = {
            "eventId": "9",
            "riders": [
                {"position": 1, "href": "https://zwiftpower.com/profile.php?z=101", "name": "A", **series},
                {"position": 2, "href": "https://zwiftpower.com/profile/102", "name": "B", **series},
                {"position": 3, "href": "https://example.com", "name": "No Id", **series},
                {"position": 0, "rider_id": "104", "name": "Bad Pos", **series},
                {"position": 5, "rider_id": "105", "name": "Me", "isCurrentUser": True, **series},
            ],
        }
        path = tmp_path / "filtered.json"
        path.write_text(json.dumps(data))

        record = RaceLoader(race_store).import_file(path, max_riders=1)
        assert [r.rider_id for r in record.riders] == ["105", "101"]
        assert record.riders[0].is_current_user is True

    @pytest.mark.parametrize("position", ["DNF", "DQ", "", None])
    def test_import_skips_unranked_rows(self, race_store, tmp_path, position):
        """Non-numeric positions are skipped instead of aborting the import."""
        series = {"duration": 2, "distance": [0.0, 0.01]}
        data = {
            "eventId": "10",
            "riders": [
                {"position": "1", "rider_id": "201", "name": "Finisher", **series},
                {"position": position, "rider_id": "202", "name": "Pulled", **series},
            ],
        }
        path = tmp_path / "unranked.json"
        path.write_text(json.dumps(data))

        record = RaceLoader(race_store).import_file(path)
        assert [r.rider_id for r in record.riders] == ["201"]
        assert record.riders[0].position == 1

    def test_load_missing(self, race_store):
        with pytest.raises(KeyError):
            RaceLoader(race_store).load("nope")

    def test_load(self, populated_store):
        session = RaceLoader(populated_store).load("4812345")
        assert session.watched_id == "c"

    def test_timeline(self, populated_store):
        df = RaceLoader(populated_store).timeline("4812345", step_seconds=30)
        assert isinstance(df, pd.DataFrame)
        assert len(df) == 4 * 3
        at_minute = df[df["time_s"] == 60]
        assert list(at_minute["rider_id"]) == ["a", "b", "c"]
        assert list(at_minute["group"]) == [1, 1, 2]
        assert at_minute["gap_to_leader_s"].iloc[2] == 12

    def test_export_timeline(self, populated_store, tmp_path):
        path = RaceLoader(populated_store).export_timeline("4812345", tmp_path / "out", step_seconds=50)
        assert path.exists()
        assert len(pd.read_csv(path)) == 3 * 3

    def test_print_summary(self, populated_store, capsys):
        RaceLoader(populated_store).print_summary("4812345", at_seconds=60)
        out = capsys.readouterr().out
        assert "Lead Group (2)" in out
        assert "Group 2 (1) ★" in out
        assert "gap to leader +12s" in out

    def test_print_races(self, populated_store, capsys):
        RaceLoader(populated_store).print_races()
        assert "Crit City Race" in capsys.readouterr().out
