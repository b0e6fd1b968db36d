"""Standings projection — raw rider series + time cursor -> ordered snapshot."""

from __future__ import annotations

import math
from collections.abc import Sequence

from src.constants import FALLBACK_TOTAL_DISTANCE_KM
from src.models import RiderSeries, RiderSnapshot
from src.utils.timing import time_to_index


def total_distance_km(riders: Sequence[RiderSeries]) -> int:
    """Race length: ceiling of the furthest final distance sample, or the fallback."""
    max_distance = max(
        (r.distance[-1] for r in riders if r.distance),
        default=0,
    )
    return math.ceil(max_distance) if max_distance > 0 else FALLBACK_TOTAL_DISTANCE_KM


def max_time_seconds(riders: Sequence[RiderSeries]) -> int:
    """Longest elapsed time over all riders (0 when there are none)."""
    return max((r.elapsed_seconds for r in riders), default=0)


def _current_distance(rider: RiderSeries, cursor: float, idx: int, total_km: float) -> float:
    if rider.distance:
        # Freeze at the last sample once the rider's data runs out
        return rider.distance[min(idx, len(rider.distance) - 1)]
    if rider.elapsed_seconds <= 0:
        return 0.0
    # No distance telemetry: assume constant average pace over the whole effort
    return cursor / rider.elapsed_seconds * total_km


def project_rider(rider: RiderSeries, cursor: float, total_km: float) -> RiderSnapshot:
    """Snapshot a single rider at the cursor."""
    idx = time_to_index(cursor, rider.sample_interval)
    distance = _current_distance(rider, cursor, idx, total_km)
    return RiderSnapshot(
        rider=rider,
        current_distance_km=distance,
        progress=distance / total_km if total_km else 0.0,
        current_power=rider.power[idx] if 0 <= idx < len(rider.power) else 0,
        current_heart_rate=rider.heart_rate[idx] if 0 <= idx < len(rider.heart_rate) else 0,
    )


def project_standings(
    riders: Sequence[RiderSeries],
    cursor: float,
    total_km: float,
) -> list[RiderSnapshot]:
    """Snapshot every rider and order by distance covered, furthest first.

    Ties keep input order (``sorted`` is stable, also with ``reverse=True``).
    """
    snapshots = [project_rider(r, cursor, total_km) for r in riders]
    return sorted(snapshots, key=lambda s: s.current_distance_km, reverse=True)


def rank_of(standings: Sequence[RiderSnapshot], rider_id: str | None) -> int | None:
    """1-based live rank of a rider in the standings."""
    for i, s in enumerate(standings, 1):
        if s.rider_id == rider_id:
            return i
    return None
