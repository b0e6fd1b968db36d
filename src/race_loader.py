"""Race loader — import, inspect and export stored races.

Usage as a library:
    from src.race_loader import RaceLoader
    loader = RaceLoader()
    session = loader.load("4812345_2")
    loader.print_summary("4812345_2", at_seconds=1200)

Usage as CLI:
    race-replay --list                             List stored races
    race-replay --import data/event.json           Import a race file into the store
    race-replay --event 4812345_2 --at 1200        Standings and groups at 20:00
    race-replay --event 4812345_2 --export         Export a standings timeline CSV
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

import pandas as pd
from loguru import logger

from src.acquisition import (
    extract_rider_id,
    is_valid_position,
    rider_from_analysis,
    select_riders_to_sync,
)
from src.groups import detect_groups
from src.models import RaceRecord, RiderSeries
from src.session import PlaybackSession
from src.standings import max_time_seconds, project_standings, total_distance_km
from src.storage import RaceStore
from src.utils.timing import format_clock, format_gap, format_relative_time


def _parse_position(value: Any) -> int | None:
    """Results position as an int; DNF/DQ and blanks read as None."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _result_rows(data: dict[str, Any]) -> list[dict[str, Any]]:
    """Results-table rows with a valid position and a resolvable rider id."""
    rows = []
    for entry in data.get("riders", []):
        position = _parse_position(entry.get("position"))
        if not is_valid_position(position):
            logger.warning("Skipping row with invalid position {!r}", entry.get("position"))
            continue
        rider_id = entry.get("rider_id") or entry.get("zwiftId") or extract_rider_id(entry.get("href"))
        if rider_id is None:
            logger.warning("Skipping #{} {}: no rider id", position, entry.get("name"))
            continue
        rows.append({
            **entry,
            "position": position,
            "rider_id": str(rider_id),
            "zwiftId": str(rider_id),
            "is_current_user": bool(entry.get("is_current_user") or entry.get("isCurrentUser")),
        })
    return rows


def _riders_from_file(
    data: dict[str, Any],
    sample_interval: int,
    max_riders: int | None = None,
) -> tuple[list[RiderSeries], list[int]]:
    """Riders either already carry series or embed a raw ``analysis`` payload."""
    riders: list[RiderSeries] = []
    failed: list[int] = []
    for entry in select_riders_to_sync(_result_rows(data), max_riders):
        if "analysis" in entry:
            rider = rider_from_analysis(entry, entry["analysis"], sample_interval)
            if rider is None:
                logger.warning("No analysis data for #{} {}", entry.get("position"), entry.get("name"))
                failed.append(int(entry.get("position", 0)))
                continue
            riders.append(rider)
        else:
            riders.append(RiderSeries.model_validate(entry))
    return riders, failed


class RaceLoader:
    """Load races from the store and print or export derived standings.

    Attributes:
        store: Backing RaceStore.
    """

    def __init__(self, store: RaceStore | None = None) -> None:
        self.store = store or RaceStore()
        logger.info("Race store at {}", self.store.path)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, event_id: str) -> PlaybackSession:
        """Open a stored race as a playback session.

        Raises:
            KeyError: If the race is not in the store.
        """
        record = self.store.get(event_id)
        if record is None:
            raise KeyError(f"Race {event_id} not found in {self.store.path}")
        return PlaybackSession.from_record(record)

    def import_file(self, path: str | Path, max_riders: int | None = None) -> RaceRecord:
        """Import a race JSON file (event id, name and riders) into the store.

        Only the top ``max_riders`` (default from settings) plus the local user are kept.
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        sample_interval = int(data.get("sampleInterval", 1))
        riders, failed = _riders_from_file(data, sample_interval, max_riders)

        record = RaceRecord(
            event_id=str(data["eventId"]),
            event_name=str(data.get("eventName", "")),
            riders=riders,
            total_riders=data.get("totalRiders", len(riders) + len(failed)),
            errors=failed,
        )
        logger.info("Imported {} riders from {} ({} failed)", len(riders), path, len(failed))
        return self.store.save(record)

    # ------------------------------------------------------------------
    # Printing
    # ------------------------------------------------------------------

    def print_races(self) -> None:
        races = self.store.list_races()
        print(f"\n{'='*80}")
        print(f"  STORED RACES — {len(races)}")
        print(f"{'='*80}")
        print(f"  {'Event':<16} {'Riders':<8} {'Synced':<12} {'Name'}")
        print(f"  {'-'*16} {'-'*8} {'-'*12} {'-'*40}")
        for r in races:
            synced = format_relative_time(r.synced_at) if r.synced_at else "—"
            print(f"  {r.event_id:<16} {r.rider_count:<8} {synced:<12} {r.name}")
        print()

    def print_summary(self, event_id: str, at_seconds: float | None = None) -> None:
        """Print groups and standings at a race time (default: the finish)."""
        session = self.load(event_id)
        at = session.clock.max_time_seconds if at_seconds is None else at_seconds
        session.clock.scrub(at)
        view = session.view()

        print(f"\n{'='*80}")
        print(f"  {view.event_name} — {format_clock(view.playback.cursor_seconds)}"
              f" / {format_clock(view.playback.max_time_seconds)}  ({view.total_distance_km} km)")
        print(f"{'='*80}")
        if not view.standings:
            print("  No rider data.\n")
            return

        rank = 1
        for group in view.groups:
            star = " ★" if group.contains_watched else ""
            print(f"\n  {group.name} ({len(group.members)}){star}  "
                  f"{group.average_power}W avg  {format_gap(group.gap_to_leader_seconds)}")
            for member in group.members:
                you = " <" if member.rider_id == session.watched_id else ""
                print(f"    {rank:>3}  {member.name:<30} {member.current_distance_km:>7.2f} km"
                      f"  {member.current_power:>5.0f}W{you}")
                rank += 1

        if view.watched is not None:
            print(f"\n  Watching {view.watched.name}: P{view.watched_rank}, "
                  f"gap to leader {view.gap_to_leader.label}, "
                  f"gap to group ahead {view.gap_to_group_ahead.label}")
        print()

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def timeline(self, event_id: str, step_seconds: int = 60) -> pd.DataFrame:
        """Standings at every ``step_seconds``: one row per rider per time step."""
        record = self.store.get(event_id)
        if record is None:
            raise KeyError(f"Race {event_id} not found in {self.store.path}")

        riders = record.riders
        total_km = total_distance_km(riders)
        rows = []
        for t in range(0, max_time_seconds(riders) + 1, step_seconds):
            standings = project_standings(riders, t, total_km)
            groups = detect_groups(standings, t)
            rank = 1
            for group in groups:
                for member in group.members:
                    rows.append({
                        "time_s": t,
                        "clock": format_clock(t),
                        "rank": rank,
                        "rider_id": member.rider_id,
                        "name": member.name,
                        "distance_km": round(member.current_distance_km, 3),
                        "power_w": member.current_power,
                        "heart_rate": member.current_heart_rate,
                        "group": group.index + 1,
                        "gap_to_leader_s": group.gap_to_leader_seconds,
                    })
                    rank += 1
        return pd.DataFrame(rows)

    def export_timeline(self, event_id: str, out_dir: str | Path = "data/exports", step_seconds: int = 60) -> Path:
        df = self.timeline(event_id, step_seconds)
        out = Path(out_dir)
        out.mkdir(parents=True, exist_ok=True)
        path = out / f"{event_id}_timeline.csv"
        df.to_csv(path, index=False)
        logger.info("Exported {} rows to {}", len(df), path)
        return path


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def main() -> None:
    import src.utils.logger  # noqa: F401  (configure sinks)

    parser = argparse.ArgumentParser(
        prog="race-replay",
        description="Import, inspect and export stored race replays.",
    )
    parser.add_argument("--store", type=str, default=None, help="Path to the race store JSON file")
    parser.add_argument("--list", action="store_true", help="List stored races")
    parser.add_argument("--import", type=str, default=None, dest="import_path",
                        help="Import a race JSON file into the store")
    parser.add_argument("--max-riders", type=int, default=None,
                        help="Keep only the top N riders (plus you) on --import")
    parser.add_argument("--event", type=str, default=None, help="Event id to inspect or export")
    parser.add_argument("--at", type=float, default=None,
                        help="Race time in seconds for --event (default: finish)")
    parser.add_argument("--export", action="store_true", help="Export a standings timeline CSV for --event")
    parser.add_argument("--step", type=int, default=60, help="Timeline step in seconds for --export")
    args = parser.parse_args()

    if args.export and not args.event:
        parser.error("--export requires --event")
    if args.step <= 0:
        parser.error("--step must be positive")

    loader = RaceLoader(RaceStore(args.store) if args.store else None)

    if args.import_path:
        record = loader.import_file(args.import_path, args.max_riders)
        print(f"Imported {record.event_name or record.event_id}: {len(record.riders)} riders")
    if args.list or not (args.import_path or args.event):
        loader.print_races()
    if args.event:
        try:
            if args.export:
                path = loader.export_timeline(args.event, step_seconds=args.step)
                print(f"Timeline written to {path}")
            else:
                loader.print_summary(args.event, args.at)
        except KeyError as exc:
            parser.error(str(exc))


if __name__ == "__main__":
    main()
