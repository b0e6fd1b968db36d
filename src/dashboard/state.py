"""Shared session state helpers for the Streamlit dashboard."""

from __future__ import annotations

import streamlit as st

from src.session import PlaybackSession
from src.storage import RaceStore
from src.utils.config import settings


def get_store() -> RaceStore:
    """Return a cached RaceStore for the configured path."""
    if "race_store" not in st.session_state:
        st.session_state["race_store"] = RaceStore()
    return st.session_state["race_store"]


def get_session(event_id: str) -> PlaybackSession | None:
    """Return the cached PlaybackSession for a race, loading it if needed.

    On later reruns the stored record is re-read so riders that arrived
    since the first load show up without restarting playback.
    """
    key = f"session_{event_id}"
    store = get_store()
    record = store.get(event_id)
    if record is None:
        return None
    if key not in st.session_state:
        speed = settings.get("playback", {}).get("default_speed", 10)
        st.session_state[key] = PlaybackSession.from_record(record, speed=speed)
    else:
        st.session_state[key].update_from_record(record)
    return st.session_state[key]


# Group colours, lead group first
GROUP_COLORS: list[str] = [
    "#ffd700",  # gold
    "#58a6ff",
    "#a371f7",
    "#3fb950",
    "#f0883e",
    "#ff7b72",
    "#79c0ff",
    "#d2a8ff",
    "#7ee787",
    "#ffa657",
]

WATCHED_COLOR = "#f85149"


def group_color(index: int) -> str:
    """Return the colour for a group index, cycling through the palette."""
    return GROUP_COLORS[index % len(GROUP_COLORS)]
