"""Acquisition helpers — turn raw rider analysis payloads into RiderSeries.

Fetching is done elsewhere; these functions only normalise what was fetched
and decide which riders are worth fetching.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from src.constants import MAX_POSITION
from src.models import RiderSeries
from src.utils.config import settings

_RIDER_ID_PATTERNS = (
    re.compile(r"[?&]z=(\d+)"),
    re.compile(r"/profile/(\d+)"),
    re.compile(r"zwift_id=(\d+)"),
)


def extract_rider_id(href: str | None) -> str | None:
    """Pull a rider id out of a profile URL (``?z=``, ``/profile/``, ``zwift_id=`` forms)."""
    if not href:
        return None
    for pattern in _RIDER_ID_PATTERNS:
        match = pattern.search(href)
        if match:
            return match.group(1)
    return None


def is_valid_position(position: int | None) -> bool:
    return position is not None and 0 < position <= MAX_POSITION


def parse_analysis(payload: dict[str, Any] | None) -> dict[str, Any] | None:
    """Map an analysis payload to RiderSeries fields.

    The payload carries distance in ``xData``, elapsed time in ``x2Data`` and
    elevation/power/heart rate in ``datasets["0"|"1"|"2"].data``. Returns
    None when there is no distance data.
    """
    if not payload or not payload.get("xData"):
        return None
    datasets = payload.get("datasets") or {}

    def channel(key: str) -> list[float]:
        entry = datasets.get(key) if isinstance(datasets, dict) else None
        return list((entry or {}).get("data") or [])

    distance = list(payload["xData"])
    time = list(payload.get("x2Data") or [])
    return {
        "distance": distance,
        "power": channel("1"),
        "heart_rate": channel("2"),
        "elevation": channel("0"),
        "duration": len(time),
    }


def rider_from_analysis(
    meta: dict[str, Any],
    payload: dict[str, Any] | None,
    sample_interval: int = 1,
) -> RiderSeries | None:
    """Combine results-table metadata (position, name, id, local flag) with an analysis payload."""
    series = parse_analysis(payload)
    if series is None:
        return None
    return RiderSeries(
        position=int(meta["position"]),
        rider_id=str(meta.get("rider_id") or meta.get("zwiftId")),
        name=str(meta.get("name", "")),
        is_current_user=bool(meta.get("is_current_user") or meta.get("isCurrentUser")),
        sample_interval=sample_interval,
        **series,
    )


def select_riders_to_sync(
    all_riders: Sequence[dict[str, Any]],
    max_riders: int | None = None,
) -> list[dict[str, Any]]:
    """Top ``max_riders`` plus the local user, with the local user first.

    Riders are dicts with at least ``rider_id`` and an optional ``is_current_user``.
    """
    if max_riders is None:
        max_riders = settings.get("acquisition", {}).get("max_riders", 50)

    current_user = next((r for r in all_riders if r.get("is_current_user")), None)
    top = list(all_riders[:max_riders])
    if current_user is None:
        return top

    user_id = current_user["rider_id"]
    if not any(r["rider_id"] == user_id for r in top):
        top.append(current_user)
    return [r for r in top if r["rider_id"] == user_id] + [r for r in top if r["rider_id"] != user_id]
