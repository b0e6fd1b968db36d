"""Shared singletons — ReplayService holds the loaded playback session."""

from loguru import logger

from src.constants import DEFAULT_PLAYBACK_SPEED
from src.playback import PlaybackLoop
from src.session import PlaybackSession
from src.storage import RaceStore
from src.utils.config import settings


class ReplayService:
    """Singleton service that holds the race store and the active session.

    One race is replayed at a time; its clock is driven by a PlaybackLoop
    running on the API's event loop.
    """

    _instance: "ReplayService | None" = None

    def __init__(self, store: RaceStore | None = None) -> None:
        self.store = store or RaceStore()
        self._session: PlaybackSession | None = None
        self._loop: PlaybackLoop | None = None

    @classmethod
    def get_instance(cls) -> "ReplayService":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls, store: RaceStore | None = None) -> "ReplayService":
        """Replace the singleton (used by tests and on store changes)."""
        cls._instance = cls(store)
        return cls._instance

    async def load_race(self, event_id: str) -> PlaybackSession:
        """Load a race from the store, replacing any session in progress.

        Raises:
            KeyError: If the race is not stored.
        """
        record = self.store.get(event_id)
        if record is None:
            raise KeyError(f"Race {event_id} not found")

        await self.stop()
        speed = settings.get("playback", {}).get("default_speed", DEFAULT_PLAYBACK_SPEED)
        self._session = PlaybackSession.from_record(record, speed=speed)
        fps = settings.get("playback", {}).get("fps", 60)
        self._loop = PlaybackLoop(self._session.clock, fps=fps)
        logger.info("Replay session ready for {}", event_id)
        return self._session

    async def refresh(self) -> bool:
        """Re-read the active race from the store (acquisition may have added riders)."""
        session = self.session
        record = self.store.get(session.record.event_id)
        if record is None:
            return False
        return session.update_from_record(record)

    async def play(self) -> bool:
        started = self.session.clock.play()
        if self.session.clock.is_playing:
            self._loop.start()
        return started

    async def stop(self) -> None:
        """Pause and cancel the tick task."""
        if self._session is not None:
            self._session.clock.pause()
        if self._loop is not None:
            await self._loop.stop()

    async def reset(self) -> None:
        await self.stop()
        self.session.clock.reset()

    @property
    def session(self) -> PlaybackSession:
        """Get the active session, or raise if none loaded."""
        if self._session is None:
            raise RuntimeError("No race loaded. Call POST /api/races/{event_id}/load first.")
        return self._session

    @property
    def is_loaded(self) -> bool:
        return self._session is not None

    @property
    def is_ticking(self) -> bool:
        return self._loop is not None and self._loop.running
