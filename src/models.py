"""Data model for race replay.

Input records (``RiderSeries``, ``RaceRecord``) mirror what the acquisition
side persists: camelCase keys on disk, snake_case attributes in Python.
Everything else is derived per frame and never mutated after construction.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, computed_field

from src.constants import LEAD_GROUP_NAME


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


# ------------------------------------------------------------------
# Acquired data
# ------------------------------------------------------------------

class RiderSeries(_Record):
    """Per-rider telemetry, one value per sample index."""

    position: int
    rider_id: str = Field(alias="zwiftId")
    name: str = ""
    is_current_user: bool = Field(default=False, alias="isCurrentUser")
    duration: int = 0
    sample_interval: int = Field(default=1, alias="sampleInterval", gt=0)
    power: list[float] = Field(default_factory=list)
    heart_rate: list[float] = Field(default_factory=list, alias="heartRate")
    elevation: list[float] = Field(default_factory=list)
    distance: list[float] | None = None

    @property
    def elapsed_seconds(self) -> int:
        """Total real time covered by this rider's samples."""
        return self.duration * self.sample_interval

    @property
    def first_name(self) -> str:
        parts = self.name.split()
        return parts[0] if parts else "Rider"


class SyncProgress(_Record):
    current: int
    total: int


class RaceRecord(_Record):
    """A stored race: metadata plus whatever riders have been acquired so far."""

    event_id: str = Field(alias="eventId")
    event_name: str = Field(default="", alias="eventName")
    riders: list[RiderSeries] = Field(default_factory=list)
    sync_in_progress: bool = Field(default=False, alias="syncInProgress")
    sync_progress: SyncProgress | None = Field(default=None, alias="syncProgress")
    synced_at: str | None = Field(default=None, alias="syncedAt")
    total_riders: int | None = Field(default=None, alias="totalRiders")
    errors: list[int] = Field(default_factory=list)

    @property
    def sample_interval(self) -> int:
        return self.riders[0].sample_interval if self.riders else 1


class RaceSummary(_Record):
    event_id: str
    name: str
    synced_at: str | None = None
    rider_count: int = 0


# ------------------------------------------------------------------
# Derived state
# ------------------------------------------------------------------

class RiderSnapshot(_Record):
    """One rider's state at the current cursor."""

    rider: RiderSeries
    current_distance_km: float
    progress: float
    current_power: float = 0
    current_heart_rate: float = 0

    @property
    def rider_id(self) -> str:
        return self.rider.rider_id

    @property
    def name(self) -> str:
        return self.rider.name

    @property
    def position(self) -> int:
        return self.rider.position


class Group(_Record):
    """A contiguous run of riders within the gap threshold of each other."""

    index: int
    members: list[RiderSnapshot]
    average_power: int = 0
    average_heart_rate: int = 0
    gap_to_leader_seconds: int = 0
    contains_watched: bool = False

    @computed_field
    @property
    def name(self) -> str:
        return LEAD_GROUP_NAME if self.index == 0 else f"Group {self.index + 1}"

    @property
    def first(self) -> RiderSnapshot:
        return self.members[0]

    @property
    def last(self) -> RiderSnapshot:
        return self.members[-1]


class PlaybackState(_Record):
    cursor_seconds: float = 0.0
    max_time_seconds: float = 0.0
    is_playing: bool = False
    speed_multiplier: int = 10


class CompareRider(_Record):
    rider_id: str


class CompareGroup(_Record):
    index: int


CompareTarget = CompareRider | CompareGroup | None


class GapReadout(_Record):
    seconds: int | None = None
    label: str = "-"


class PowerComparison(_Record):
    labels: list[str] = Field(default_factory=list)
    watched_name: str = ""
    watched: list[float] = Field(default_factory=list)
    compare_name: str = ""
    compare: list[float] = Field(default_factory=list)
    is_group: bool = False


class RaceView(_Record):
    """Everything a renderer needs for one frame."""

    event_id: str | None = None
    event_name: str = ""
    rider_count: int = 0
    sync_in_progress: bool = False
    sync_progress: SyncProgress | None = None
    clock_label: str = "0:00"
    playback: PlaybackState = Field(default_factory=PlaybackState)
    total_distance_km: float = 0
    standings: list[RiderSnapshot] = Field(default_factory=list)
    groups: list[Group] = Field(default_factory=list)
    watched: RiderSnapshot | None = None
    watched_rank: int | None = None
    leader: RiderSnapshot | None = None
    gap_to_leader: GapReadout = Field(default_factory=GapReadout)
    gap_to_group_ahead: GapReadout = Field(default_factory=GapReadout)
    compare_label: str = ""
