"""Time and unit helpers — index mapping, clock/gap formatting, numeric helpers."""

from __future__ import annotations

import math
from datetime import datetime, timezone

from src.constants import SECONDS_PER_MINUTE


def time_to_index(time_seconds: float, sample_interval: int | None = 1) -> int:
    """Map a race time in seconds to a sample index (truncating)."""
    return math.floor(time_seconds / (sample_interval or 1))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +infinity."""
    return math.floor(value + 0.5)


def format_clock(seconds: float) -> str:
    """Format seconds as M:SS, e.g. 90 -> '1:30', 3661 -> '61:01'."""
    mins = math.floor(seconds / SECONDS_PER_MINUTE)
    secs = math.floor(seconds % SECONDS_PER_MINUTE)
    return f"{mins}:{secs:02d}"


def format_gap(seconds: float) -> str:
    """Format a time gap as '-', '+Ns' or '+M:SS'."""
    if seconds <= 0:
        return "-"
    if seconds < SECONDS_PER_MINUTE:
        return f"+{math.floor(seconds)}s"
    mins = math.floor(seconds / SECONDS_PER_MINUTE)
    secs = math.floor(seconds % SECONDS_PER_MINUTE)
    return f"+{mins}:{secs:02d}"


def format_relative_time(iso_string: str, now: datetime | None = None) -> str:
    """Format an ISO timestamp relative to now ('just now', '5m ago', '2h ago', '3d ago')."""
    then = datetime.fromisoformat(iso_string.replace("Z", "+00:00"))
    if then.tzinfo is None:
        then = then.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)

    diff_mins = math.floor((now - then).total_seconds() / SECONDS_PER_MINUTE)
    diff_hours = math.floor(diff_mins / 60)
    diff_days = math.floor(diff_hours / 24)

    if diff_mins < 1:
        return "just now"
    if diff_mins < 60:
        return f"{diff_mins}m ago"
    if diff_hours < 24:
        return f"{diff_hours}h ago"
    return f"{diff_days}d ago"


def clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def lerp(start: float, end: float, t: float) -> float:
    return start + (end - start) * t
