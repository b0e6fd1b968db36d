"""Playback clock — maps real elapsed time to virtual race time.

The clock itself is a plain state machine driven by ``tick(now)`` calls with
a wall-clock timestamp, so any host cadence works (a display refresh, a
Streamlit rerun, or the asyncio ``PlaybackLoop`` below). Irregular tick
intervals are fine: every tick advances by the real delta since the last one.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import Enum

from loguru import logger

from src.constants import DEFAULT_PLAYBACK_SPEED, PLAYBACK_SPEEDS
from src.models import PlaybackState
from src.utils.timing import clamp


class PlaybackStatus(Enum):
    STOPPED = "stopped"
    PLAYING = "playing"


class PlaybackClock:
    """Virtual race-time cursor with play/pause/reset/scrub and speed control."""

    def __init__(self, max_time_seconds: float = 0, speed: int = DEFAULT_PLAYBACK_SPEED) -> None:
        self._validate_speed(speed)
        self.max_time_seconds: float = max(0.0, float(max_time_seconds))
        self.cursor_seconds: float = 0.0
        self.speed_multiplier: int = speed
        self.status = PlaybackStatus.STOPPED
        self._last_tick: float | None = None

    @staticmethod
    def _validate_speed(speed: int) -> None:
        if speed not in PLAYBACK_SPEEDS:
            raise ValueError(f"Unsupported playback speed {speed}; allowed: {list(PLAYBACK_SPEEDS)}")

    @property
    def is_playing(self) -> bool:
        return self.status is PlaybackStatus.PLAYING

    @property
    def at_end(self) -> bool:
        return self.cursor_seconds >= self.max_time_seconds

    @property
    def state(self) -> PlaybackState:
        return PlaybackState(
            cursor_seconds=self.cursor_seconds,
            max_time_seconds=self.max_time_seconds,
            is_playing=self.is_playing,
            speed_multiplier=self.speed_multiplier,
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def play(self) -> bool:
        """Start playback. Returns False if already playing or at the end."""
        if self.is_playing or self.at_end:
            return False
        self.status = PlaybackStatus.PLAYING
        self._last_tick = None
        logger.debug("Playback started at {:.1f}s ({}x)", self.cursor_seconds, self.speed_multiplier)
        return True

    def pause(self) -> None:
        if self.is_playing:
            logger.debug("Playback paused at {:.1f}s", self.cursor_seconds)
        self.status = PlaybackStatus.STOPPED
        self._last_tick = None

    def toggle(self) -> bool:
        """Play if stopped, pause if playing. Returns the new playing flag."""
        if self.is_playing:
            self.pause()
        else:
            self.play()
        return self.is_playing

    def reset(self) -> None:
        self.pause()
        self.cursor_seconds = 0.0

    def scrub(self, seconds: float) -> None:
        """Jump to an explicit race time; play/pause state is left alone."""
        self.cursor_seconds = clamp(float(seconds), 0.0, self.max_time_seconds)

    def set_speed(self, speed: int) -> None:
        self._validate_speed(speed)
        self.speed_multiplier = speed

    def set_max_time(self, max_time_seconds: float) -> None:
        """Adopt a new race length (more riders arrived); keeps playing."""
        self.max_time_seconds = max(0.0, float(max_time_seconds))
        self.cursor_seconds = clamp(self.cursor_seconds, 0.0, self.max_time_seconds)

    # ------------------------------------------------------------------
    # Time advance
    # ------------------------------------------------------------------

    def advance(self, elapsed_real_seconds: float) -> bool:
        """Advance by a real-time delta. Returns True if the cursor moved."""
        if not self.is_playing or elapsed_real_seconds <= 0:
            return False
        self.cursor_seconds += elapsed_real_seconds * self.speed_multiplier
        if self.cursor_seconds >= self.max_time_seconds:
            self.cursor_seconds = self.max_time_seconds
            logger.debug("Playback reached end of race ({:.0f}s)", self.max_time_seconds)
            self.pause()
        return True

    def tick(self, now_seconds: float) -> bool:
        """Advance using a wall-clock timestamp; the first tick after play() only anchors."""
        if not self.is_playing:
            return False
        if self._last_tick is None:
            self._last_tick = now_seconds
            return False
        delta = now_seconds - self._last_tick
        self._last_tick = now_seconds
        return self.advance(delta)


class PlaybackLoop:
    """Cooperative asyncio ticker for a PlaybackClock.

    Runs one task that ticks the clock on a fixed cadence until the clock
    stops; ``stop()`` cancels the task so nothing keeps firing after a pause.
    """

    def __init__(
        self,
        clock: PlaybackClock,
        on_tick: Callable[[], None] | None = None,
        fps: int = 60,
    ) -> None:
        self.clock = clock
        self.on_tick = on_tick
        self.interval = 1.0 / fps
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while self.clock.is_playing:
            self.clock.tick(loop.time())
            if self.on_tick is not None:
                self.on_tick()
            if not self.clock.is_playing:
                break
            await asyncio.sleep(self.interval)
