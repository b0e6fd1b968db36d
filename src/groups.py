"""Group (pack) detection over a distance-ordered standings snapshot.

Only adjacent riders are compared: a rider joins the open group when the
time gap to the rider directly ahead is within the threshold, so a long
chain of small gaps forms one group even if its ends are far apart.
"""

from __future__ import annotations

from collections.abc import Sequence

from src.constants import GROUP_GAP_THRESHOLD_SECONDS
from src.gaps import gap_seconds_between, gap_seconds_from_distance
from src.models import Group, RiderSeries, RiderSnapshot
from src.utils.timing import round_half_up, time_to_index


def detect_groups(
    standings: Sequence[RiderSnapshot],
    time_seconds: float,
    watched_id: str | None = None,
    threshold_seconds: float = GROUP_GAP_THRESHOLD_SECONDS,
) -> list[Group]:
    """Partition sorted standings into contiguous groups.

    Args:
        standings: Snapshot sorted by current distance, descending.
        time_seconds: Race time the snapshot was taken at.
        watched_id: Rider id used to flag the group containing the watched rider.
        threshold_seconds: Largest adjacent gap that still counts as the same group.

    Returns:
        Groups in race order, ``index`` 0 being the lead group.
    """
    if not standings:
        return []

    partitions: list[list[RiderSnapshot]] = []
    current = [standings[0]]

    for prev_rider, rider in zip(standings, standings[1:]):
        distance_gap_km = prev_rider.current_distance_km - rider.current_distance_km
        gap = gap_seconds_from_distance(distance_gap_km, rider, time_seconds)
        if gap <= threshold_seconds:
            current.append(rider)
        else:
            partitions.append(current)
            current = [rider]
    partitions.append(current)

    leader = standings[0]
    groups = []
    for idx, members in enumerate(partitions):
        groups.append(Group(
            index=idx,
            members=members,
            average_power=round_half_up(sum(m.current_power for m in members) / len(members)),
            average_heart_rate=group_average_heart_rate(members, time_seconds),
            gap_to_leader_seconds=0 if idx == 0 else gap_seconds_between(leader, members[0], time_seconds),
            contains_watched=any(m.rider_id == watched_id for m in members),
        ))
    return groups


def group_of(groups: Sequence[Group], rider_id: str | None) -> Group | None:
    for group in groups:
        if any(m.rider_id == rider_id for m in group.members):
            return group
    return None


def _series(member: RiderSeries | RiderSnapshot) -> RiderSeries:
    return member.rider if isinstance(member, RiderSnapshot) else member


def group_average_power_series(members: Sequence[RiderSeries | RiderSnapshot]) -> list[int]:
    """Per-sample mean power across members; shorter series count as 0 past their end."""
    if not members:
        return []
    powers = [_series(m).power for m in members]
    length = max(len(p) for p in powers)
    return [
        round_half_up(sum(p[i] if i < len(p) else 0 for p in powers) / len(powers))
        for i in range(length)
    ]


def group_average_heart_rate(
    members: Sequence[RiderSeries | RiderSnapshot],
    time_seconds: float,
) -> int:
    """Mean heart rate at the cursor, ignoring riders with no reading."""
    readings = []
    for m in members:
        series = _series(m)
        idx = time_to_index(time_seconds, series.sample_interval)
        hr = series.heart_rate[idx] if 0 <= idx < len(series.heart_rate) else 0
        if hr > 0:
            readings.append(hr)
    if not readings:
        return 0
    return round_half_up(sum(readings) / len(readings))
