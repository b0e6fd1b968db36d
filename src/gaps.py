"""Speed and time-gap estimation from distance telemetry.

A gap is "how long the trailing rider needs, at their current pace, to reach
the point the leading rider is at now", so the trailing rider's speed is
always the divisor.
"""

from __future__ import annotations

from src.constants import (
    DEFAULT_SPEED_KMH,
    MIN_SPEED_KMH,
    MIN_TIME_FOR_SPEED_SECONDS,
    SECONDS_PER_HOUR,
)
from src.models import RiderSeries, RiderSnapshot
from src.utils.timing import round_half_up, time_to_index


def _series(rider: RiderSeries | RiderSnapshot) -> RiderSeries:
    return rider.rider if isinstance(rider, RiderSnapshot) else rider


def _sample(values: list[float] | None, idx: int, default: float) -> float:
    if values is None or idx < 0 or idx >= len(values):
        return default
    return values[idx]


def distance_at(rider: RiderSeries | RiderSnapshot, time_seconds: float) -> float:
    """Distance in km at the cursor: snapshot value if available, else raw series, else 0."""
    if isinstance(rider, RiderSnapshot):
        return rider.current_distance_km
    idx = time_to_index(time_seconds, rider.sample_interval)
    return _sample(rider.distance, idx, 0.0)


def estimate_speed_kmh(rider: RiderSeries | RiderSnapshot, time_seconds: float) -> float:
    """Instantaneous speed from the one-sample-back distance delta, floored at MIN_SPEED_KMH."""
    series = _series(rider)
    if series.distance is None or time_seconds < MIN_TIME_FOR_SPEED_SECONDS:
        return DEFAULT_SPEED_KMH

    idx = time_to_index(time_seconds, series.sample_interval)
    prev_idx = max(0, idx - 1)
    d1 = _sample(series.distance, prev_idx, 0.0)
    d2 = _sample(series.distance, idx, d1)
    speed_kmh = (d2 - d1) / series.sample_interval * SECONDS_PER_HOUR

    return max(speed_kmh, MIN_SPEED_KMH)


def gap_seconds_from_distance(
    distance_gap_km: float,
    trailing_rider: RiderSeries | RiderSnapshot,
    time_seconds: float,
) -> int:
    """Convert a distance gap to seconds at the trailing rider's pace."""
    speed_kmh = estimate_speed_kmh(trailing_rider, time_seconds)
    return round_half_up(distance_gap_km / speed_kmh * SECONDS_PER_HOUR)


def gap_seconds_between(
    lead_rider: RiderSeries | RiderSnapshot,
    trail_rider: RiderSeries | RiderSnapshot,
    time_seconds: float,
) -> int:
    """Time gap between two riders; 0 at race start."""
    if time_seconds == 0:
        return 0
    distance_gap_km = distance_at(lead_rider, time_seconds) - distance_at(trail_rider, time_seconds)
    return gap_seconds_from_distance(distance_gap_km, trail_rider, time_seconds)
