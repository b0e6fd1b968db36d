"""JSON-file race store — the persistence side of race acquisition.

Races are kept in a single JSON object keyed by event id, each value being a
race record with camelCase keys. Acquisition writes the record after every
rider so a replay can start on a partial field.
"""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from src.models import RaceRecord, RaceSummary, RiderSeries, SyncProgress
from src.utils.config import settings


class StorageError(RuntimeError):
    """The race store file exists but cannot be read."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class RaceStore:
    """Read/write synced races in a JSON file.

    Attributes:
        path: Location of the JSON file. Created on first save.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path or settings.get("storage", {}).get("path", "data/races.json"))

    # ------------------------------------------------------------------
    # Raw access
    # ------------------------------------------------------------------

    def get_all(self) -> dict[str, dict[str, Any]]:
        """Return every stored race as raw dicts keyed by event id."""
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Could not read race store {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError(f"Race store {self.path} does not contain a JSON object")
        return data

    def _write_all(self, races: dict[str, dict[str, Any]]) -> None:
        """Replace the store file atomically; readers see the old or the new content, never a partial write."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(races, f)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def get(self, event_id: str) -> RaceRecord | None:
        raw = self.get_all().get(event_id)
        if raw is None:
            return None
        try:
            return RaceRecord.model_validate(raw)
        except ValidationError as exc:
            raise StorageError(f"Race {event_id} in {self.path} is malformed: {exc}") from exc

    def save(self, record: RaceRecord) -> RaceRecord:
        """Store a race, stamping ``syncedAt`` with the current time."""
        stamped = record.model_copy(update={"synced_at": _now_iso()})
        races = self.get_all()
        races[record.event_id] = stamped.model_dump(mode="json", by_alias=True)
        self._write_all(races)
        logger.info("Saved race {}: {} riders", record.event_id, len(record.riders))
        return stamped

    def delete(self, event_id: str) -> bool:
        races = self.get_all()
        if races.pop(event_id, None) is None:
            return False
        self._write_all(races)
        logger.info("Deleted race {}", event_id)
        return True

    def list_races(self) -> list[RaceSummary]:
        return [
            RaceSummary(
                event_id=event_id,
                name=data.get("eventName") or f"Race {event_id}",
                synced_at=data.get("syncedAt"),
                rider_count=len(data.get("riders") or []),
            )
            for event_id, data in self.get_all().items()
        ]

    def append_riders(
        self,
        event_id: str,
        event_name: str,
        riders: list[RiderSeries],
        progress: SyncProgress | None = None,
        in_progress: bool = True,
    ) -> RaceRecord:
        """Add newly acquired riders to a race, skipping ones already stored."""
        existing = self.get(event_id)
        stored = list(existing.riders) if existing else []
        known = {r.rider_id for r in stored}
        added = [r for r in riders if r.rider_id not in known]

        base = existing or RaceRecord(event_id=event_id, event_name=event_name)
        record = base.model_copy(update={
            "event_name": event_name or base.event_name,
            "riders": stored + added,
            "sync_in_progress": in_progress,
            "sync_progress": progress,
        })
        logger.debug("Race {}: {} new riders, {} already stored", event_id, len(added), len(stored))
        return self.save(record)
