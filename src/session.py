"""Playback session — explicit UI state plus pure per-frame derivation.

``PlaybackSession`` owns everything the viewer can change (cursor, watched
rider, compare target, expanded groups). Frames are derived from scratch on
every call by ``derive_view``, which never mutates its inputs, so new riders
can arrive between ticks without any patching of derived state.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np
from loguru import logger

from src.constants import (
    CHART_SAMPLE_STEP_SECONDS,
    CHART_WINDOW_SECONDS,
    DEFAULT_PLAYBACK_SPEED,
    ELEVATION_MAX_POINTS,
)
from src.gaps import gap_seconds_between
from src.groups import detect_groups, group_average_power_series, group_of
from src.models import (
    CompareGroup,
    CompareRider,
    CompareTarget,
    GapReadout,
    Group,
    PlaybackState,
    PowerComparison,
    RaceRecord,
    RaceView,
    RiderSeries,
    RiderSnapshot,
)
from src.playback import PlaybackClock
from src.standings import max_time_seconds, project_standings, rank_of, total_distance_km
from src.utils.timing import format_clock, format_gap, time_to_index


# ---------------------------------------------------------------------------
# Rider selection helpers
# ---------------------------------------------------------------------------

def filter_riders_by_name(riders: Sequence[RiderSeries] | None, query: str | None) -> list[RiderSeries]:
    """Case-insensitive substring match on rider name; a blank query keeps everyone."""
    if not riders:
        return []
    if not query or not query.strip():
        return list(riders)
    needle = query.strip().lower()
    return [r for r in riders if needle in r.name.lower()]


def rider_options(riders: Sequence[RiderSeries]) -> list[dict]:
    """Selector rows ordered by finishing position."""
    return [
        {
            "rider_id": r.rider_id,
            "position": r.position,
            "label": f"#{r.position} {r.name}{' (You)' if r.is_current_user else ''}",
        }
        for r in sorted(riders, key=lambda r: r.position)
    ]


# ---------------------------------------------------------------------------
# Derivation
# ---------------------------------------------------------------------------

def _gap_readout(lead: RiderSnapshot, trail: RiderSnapshot, cursor: float) -> GapReadout:
    seconds = gap_seconds_between(lead, trail, cursor)
    return GapReadout(seconds=seconds, label=format_gap(seconds))


def resolve_compare(
    target: CompareTarget,
    groups: Sequence[Group],
    standings: Sequence[RiderSnapshot],
) -> tuple[str, list[float], bool] | None:
    """Resolve a compare target to (name, power series, is_group).

    A group index that no longer exists or a rider that is not in the
    standings falls back to the race leader.
    """
    match target:
        case CompareGroup(index=index) if 0 <= index < len(groups):
            group = groups[index]
            return group.name, group_average_power_series(group.members), True
        case CompareRider(rider_id=rider_id):
            snap = next((s for s in standings if s.rider_id == rider_id), None)
            if snap is not None:
                return snap.rider.first_name, list(snap.rider.power), False
        case CompareGroup() | None:
            pass

    if not standings:
        return None
    leader = standings[0].rider
    return leader.first_name, list(leader.power), False


def derive_view(
    riders: Sequence[RiderSeries],
    cursor: float,
    watched_id: str | None = None,
    *,
    total_km: float | None = None,
    compare: CompareTarget = None,
    record: RaceRecord | None = None,
    playback: PlaybackState | None = None,
) -> RaceView:
    """Build one frame: standings, groups and gaps for the watched rider."""
    if total_km is None:
        total_km = total_distance_km(riders)
    if playback is None:
        playback = PlaybackState(cursor_seconds=cursor, max_time_seconds=max_time_seconds(riders))

    standings = project_standings(riders, cursor, total_km)
    groups = detect_groups(standings, cursor, watched_id)

    leader = standings[0] if standings else None
    you = next((s for s in standings if s.rider_id == watched_id), None)

    gap_to_leader = GapReadout()
    gap_to_group_ahead = GapReadout()
    if you is not None and leader is not None and you.rider_id != leader.rider_id and cursor > 0:
        gap_to_leader = _gap_readout(leader, you, cursor)
        your_group = group_of(groups, watched_id)
        if your_group is not None and your_group.index > 0:
            gap_to_group_ahead = _gap_readout(groups[your_group.index - 1].last, you, cursor)

    resolved = resolve_compare(compare, groups, standings)

    return RaceView(
        event_id=record.event_id if record else None,
        event_name=record.event_name if record else "",
        rider_count=len(riders),
        sync_in_progress=record.sync_in_progress if record else False,
        sync_progress=record.sync_progress if record else None,
        clock_label=format_clock(cursor),
        playback=playback,
        total_distance_km=total_km,
        standings=standings,
        groups=groups,
        watched=you,
        watched_rank=rank_of(standings, watched_id),
        leader=leader,
        gap_to_leader=gap_to_leader,
        gap_to_group_ahead=gap_to_group_ahead,
        compare_label=f"vs {resolved[0]}" if resolved else "",
    )


def build_power_comparison(
    watched: RiderSnapshot | None,
    compare: tuple[str, list[float], bool] | None,
    cursor: float,
    sample_interval: int = 1,
    window_seconds: int = CHART_WINDOW_SECONDS,
    step_seconds: int = CHART_SAMPLE_STEP_SECONDS,
) -> PowerComparison | None:
    """Trailing-window power series for the watched rider vs the compare target."""
    if watched is None or compare is None:
        return None
    compare_name, compare_power, is_group = compare
    watched_power = watched.rider.power

    start = max(0.0, cursor - window_seconds)
    step = max(sample_interval, step_seconds)
    times = start + step * np.arange(math.floor((cursor - start) / step) + 1)

    labels, watched_series, compare_series = [], [], []
    for t in times:
        idx = time_to_index(float(t), sample_interval)
        labels.append(format_clock(float(t)))
        watched_series.append(watched_power[idx] if idx < len(watched_power) else 0)
        compare_series.append(compare_power[idx] if idx < len(compare_power) else 0)

    return PowerComparison(
        labels=labels,
        watched_name=watched.rider.first_name,
        watched=watched_series,
        compare_name=compare_name,
        compare=compare_series,
        is_group=is_group,
    )


def elevation_profile(
    riders: Sequence[RiderSeries],
    total_km: float,
    zoom_start: float = 0.0,
    zoom_end: float = 1.0,
    max_points: int = ELEVATION_MAX_POINTS,
) -> tuple[np.ndarray, np.ndarray]:
    """Course profile as (distance_km, elevation_m), zoomed and down-sampled.

    Taken from the first rider that has elevation data; the x axis assumes
    samples are spread evenly over the course.
    """
    source = next((r.elevation for r in riders if r.elevation), None)
    if source is None:
        return np.array([]), np.array([])

    data = np.asarray(source, dtype=float)
    n = len(data)
    start_idx = math.floor(zoom_start * n)
    end_idx = math.floor(zoom_end * n)
    zoomed = data[start_idx:end_idx]
    if zoomed.size == 0:
        return np.array([]), np.array([])

    step = max(1, zoomed.size // max_points)
    indices = np.arange(start_idx, end_idx, step)
    return indices / n * total_km, zoomed[::step]


# ---------------------------------------------------------------------------
# PlaybackSession
# ---------------------------------------------------------------------------

class PlaybackSession:
    """Mutable viewer state for one race; frames come from ``view()``."""

    def __init__(self, record: RaceRecord | None = None, speed: int = DEFAULT_PLAYBACK_SPEED) -> None:
        self.record = record
        self.riders: list[RiderSeries] = list(record.riders) if record else []
        self.total_distance_km: int = total_distance_km(self.riders)
        self.clock = PlaybackClock(max_time_seconds(self.riders), speed)
        self.watched_id: str | None = self._default_watched()
        self.compare: CompareTarget = None
        self.expanded_groups: set[int] = set()

        if record is not None:
            logger.info(
                "Loaded race {} ({}): {} riders, {} long, {} km",
                record.event_id, record.event_name, len(self.riders),
                format_clock(self.clock.max_time_seconds), self.total_distance_km,
            )

    @classmethod
    def from_record(cls, record: RaceRecord, speed: int = DEFAULT_PLAYBACK_SPEED) -> PlaybackSession:
        return cls(record, speed)

    def _default_watched(self) -> str | None:
        local = next((r for r in self.riders if r.is_current_user), None)
        if local is not None:
            return local.rider_id
        return self.riders[0].rider_id if self.riders else None

    def rider(self, rider_id: str) -> RiderSeries:
        for r in self.riders:
            if r.rider_id == rider_id:
                return r
        raise KeyError(f"Unknown rider {rider_id}")

    # ------------------------------------------------------------------
    # Incremental acquisition
    # ------------------------------------------------------------------

    def update_from_record(self, record: RaceRecord) -> bool:
        """Adopt a newer copy of the race record while playback continues.

        Applied when the rider data changed (riders added, or existing series
        extended) or the sync status moved; a re-save of identical data is ignored.
        """
        if self.record is not None and (
            record.riders == self.riders
            and record.sync_in_progress == self.record.sync_in_progress
            and record.sync_progress == self.record.sync_progress
        ):
            return False

        self.record = record
        self.riders = list(record.riders)
        self.total_distance_km = total_distance_km(self.riders)
        self.clock.set_max_time(max_time_seconds(self.riders))
        if self.watched_id is None or not any(r.rider_id == self.watched_id for r in self.riders):
            self.watched_id = self._default_watched()

        logger.info(
            "Race {} updated: {} riders{}",
            record.event_id, len(self.riders), " (sync in progress)" if record.sync_in_progress else "",
        )
        return True

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def watch(self, rider_id: str) -> None:
        self.rider(rider_id)
        self.watched_id = rider_id
        self.expanded_groups.clear()

    def compare_with(self, target: CompareTarget) -> None:
        """Set the compare target; a rider and a group are mutually exclusive."""
        if isinstance(target, CompareRider):
            self.rider(target.rider_id)
        self.compare = target

    def toggle_compare(self, target: CompareTarget) -> None:
        self.compare_with(None if target == self.compare else target)

    def toggle_group_expanded(self, index: int) -> None:
        if index in self.expanded_groups:
            self.expanded_groups.remove(index)
        else:
            self.expanded_groups.add(index)

    def is_group_expanded(self, group: Group) -> bool:
        return group.contains_watched or group.index in self.expanded_groups

    # ------------------------------------------------------------------
    # Frames
    # ------------------------------------------------------------------

    def view(self) -> RaceView:
        return derive_view(
            self.riders,
            self.clock.cursor_seconds,
            self.watched_id,
            total_km=self.total_distance_km,
            compare=self.compare,
            record=self.record,
            playback=self.clock.state,
        )

    def power_comparison(
        self,
        view: RaceView | None = None,
        window_seconds: int = CHART_WINDOW_SECONDS,
        step_seconds: int = CHART_SAMPLE_STEP_SECONDS,
    ) -> PowerComparison | None:
        view = view or self.view()
        return build_power_comparison(
            view.watched,
            resolve_compare(self.compare, view.groups, view.standings),
            self.clock.cursor_seconds,
            self.record.sample_interval if self.record else 1,
            window_seconds,
            step_seconds,
        )

    def elevation_profile(self, zoom_start: float = 0.0, zoom_end: float = 1.0) -> tuple[np.ndarray, np.ndarray]:
        return elevation_profile(self.riders, self.total_distance_km, zoom_start, zoom_end)
