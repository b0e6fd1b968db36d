"""Race Replay Dashboard — Streamlit entry point.

Run with:
    streamlit run src/dashboard/app.py
    race-replay-dashboard
"""

from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st

# Ensure project root is on sys.path so `src.*` imports work
_project_root = str(Path(__file__).resolve().parents[2])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

import src.utils.logger  # noqa: E402,F401
from src.dashboard.state import get_session, get_store  # noqa: E402
from src.utils.timing import format_relative_time  # noqa: E402


def main() -> None:
    """CLI entry point — launches Streamlit."""
    import subprocess

    app_path = str(Path(__file__).resolve())
    subprocess.run(
        ["streamlit", "run", app_path, "--server.headless", "true"],
        cwd=_project_root,
    )


# ── Page config ──────────────────────────────────────────────────────
st.set_page_config(
    page_title="Race Replay",
    page_icon="🚴",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ── Sidebar: race selector ───────────────────────────────────────────
st.sidebar.title("Race Replay")

store = get_store()
races = store.list_races()

if not races:
    st.title("Race Replay")
    st.info(f"No races in {store.path}. Import one with `race-replay --import FILE`.")
    st.stop()

race_options = {
    f"{r.name} ({r.rider_count} riders"
    f"{', ' + format_relative_time(r.synced_at) if r.synced_at else ''})": r.event_id
    for r in races
}
selected_race = st.sidebar.selectbox("Race", list(race_options.keys()))
event_id = race_options[selected_race]

session = get_session(event_id)
if session is None:
    st.error("Race not found. Please sync the race first.")
    st.stop()

# ── Page ─────────────────────────────────────────────────────────────
from src.dashboard.pages.replay import render  # noqa: E402

render(session)
