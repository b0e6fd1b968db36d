"""Unit tests for the standings projection."""

from src.constants import FALLBACK_TOTAL_DISTANCE_KM
from src.models import RiderSeries
from src.standings import max_time_seconds, project_rider, project_standings, rank_of, total_distance_km


class TestRaceExtent:
    """Tests for race length and duration."""

    def test_total_distance_is_ceiling_of_furthest_sample(self, sample_riders):
        """Alice finishes at 1.2 km, so the race is 2 km."""
        assert total_distance_km(sample_riders) == 2

    def test_total_distance_fallback(self, rider_factory):
        """Without distance telemetry the race length defaults."""
        assert total_distance_km([rider_factory("a", 1)]) == FALLBACK_TOTAL_DISTANCE_KM
        assert total_distance_km([]) == FALLBACK_TOTAL_DISTANCE_KM

    def test_max_time_uses_sample_interval(self, rider_factory):
        riders = [rider_factory("a", 1, duration=100), rider_factory("b", 2, duration=50, sample_interval=5)]
        assert max_time_seconds(riders) == 250
        assert max_time_seconds([]) == 0


class TestProjectRider:
    """Tests for single-rider snapshots."""

    def test_reads_series_at_cursor(self, sample_riders):
        snap = project_rider(sample_riders[0], 60, 2)
        assert snap.current_distance_km == 0.72
        assert snap.progress == 0.36
        assert snap.current_power == 300
        assert snap.current_heart_rate == 150

    def test_freezes_after_last_sample(self):
        """A rider whose data runs out stays at their last distance."""
        rider = RiderSeries(position=1, rider_id="x", duration=2, distance=[0, 0.5, 1.0], power=[100, 200, 300])
        snap = project_rider(rider, 60, 2)
        assert snap.current_distance_km == 1.0
        assert snap.current_power == 0

    def test_linear_fallback_without_distance(self, rider_factory):
        """Halfway through the effort is halfway round the course."""
        rider = rider_factory("a", 1, duration=100)
        snap = project_rider(rider, 50, 42)
        assert snap.current_distance_km == 21
        assert snap.progress == 0.5

    def test_zero_duration_without_distance(self):
        rider = RiderSeries(position=1, rider_id="x")
        assert project_rider(rider, 50, 42).current_distance_km == 0


class TestProjectStandings:
    """Tests for ordering the field."""

    def test_sorted_by_distance(self, sample_riders):
        standings = project_standings(list(reversed(sample_riders)), 60, 2)
        assert [s.rider_id for s in standings] == ["a", "b", "c"]

    def test_ties_keep_input_order(self, rider_factory):
        """Everyone at 0 km on the start line stays in input order."""
        riders = [rider_factory(rid, i, 0.01) for i, rid in enumerate("zyx", 1)]
        standings = project_standings(riders, 0, 2)
        assert [s.rider_id for s in standings] == ["z", "y", "x"]

    def test_idempotent(self, sample_riders):
        """Projecting twice at the same cursor gives the same snapshot."""
        assert project_standings(sample_riders, 42, 2) == project_standings(sample_riders, 42, 2)

    def test_rank_of(self, sample_riders):
        standings = project_standings(sample_riders, 60, 2)
        assert rank_of(standings, "c") == 3
        assert rank_of(standings, "nobody") is None
        assert rank_of(standings, None) is None
