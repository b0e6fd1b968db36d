"""Pytest configuration and shared fixtures."""

import pytest

from src.models import RaceRecord, RiderSeries, RiderSnapshot
from src.storage import RaceStore


def make_rider(rider_id, position, km_per_second=None, duration=100, power=250, heart_rate=150, **kwargs):
    """Build a rider moving at a constant pace with flat power and heart rate."""
    distance = None
    if km_per_second is not None:
        distance = [round(i * km_per_second, 4) for i in range(duration + 1)]
    return RiderSeries(
        position=position,
        rider_id=rider_id,
        name=kwargs.pop("name", f"Rider {rider_id.upper()}"),
        duration=duration,
        power=[power] * (duration + 1),
        heart_rate=[heart_rate] * (duration + 1),
        distance=distance,
        **kwargs,
    )


def make_snapshot(rider_id, distance_km, power=0, distance=None):
    """Snapshot with an explicit current distance, for group detection tests."""
    rider = RiderSeries(position=1, rider_id=rider_id, name=rider_id, distance=distance)
    return RiderSnapshot(rider=rider, current_distance_km=distance_km, progress=0.0, current_power=power)


@pytest.fixture
def sample_riders():
    """Three riders: two riding together up front, the local user dropping behind.

    At t=60 Alice is at 0.72 km, Bob at 0.714 km and Carol at 0.6 km.
    """
    return [
        make_rider("a", 1, 0.012, power=300, heart_rate=150, name="Alice Ace",
                   elevation=[float(i % 20) for i in range(101)]),
        make_rider("b", 2, 0.0119, power=280, heart_rate=160, name="Bob Burner"),
        make_rider("c", 3, 0.010, power=250, heart_rate=0, name="Carol Climb", is_current_user=True),
    ]


@pytest.fixture
def sample_record(sample_riders):
    """Complete race record around the sample riders."""
    return RaceRecord(event_id="4812345", event_name="Crit City Race", riders=sample_riders)


@pytest.fixture
def race_store(tmp_path):
    """Race store backed by a temporary JSON file."""
    return RaceStore(tmp_path / "races.json")


@pytest.fixture
def populated_store(race_store, sample_record):
    """Race store with the sample race already saved."""
    race_store.save(sample_record)
    return race_store


@pytest.fixture
def rider_factory():
    return make_rider


@pytest.fixture
def snapshot_factory():
    return make_snapshot
