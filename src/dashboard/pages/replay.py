"""Race Replay page — playback controls, grouped standings, elevation and power charts.

Playback runs server-side in the PlaybackSession; while the clock is playing
the script sleeps briefly and reruns, and every rerun ticks the clock with the
wall-clock time, so the cursor advances by real elapsed time times the speed.
"""

from __future__ import annotations

import time

import pandas as pd
import streamlit as st

from src.constants import PLAYBACK_SPEEDS
from src.dashboard.charts import build_elevation_figure, build_power_figure
from src.models import CompareGroup, CompareRider
from src.session import PlaybackSession, filter_riders_by_name, rider_options
from src.utils.config import settings
from src.utils.timing import format_clock, format_gap

# Streamlit reruns are far slower than display refresh; a few frames per second is plenty
RERUN_INTERVAL_SECONDS = 0.25


def _scrub(session: PlaybackSession) -> None:
    session.clock.scrub(st.session_state["cursor_slider"])


def _watch(session: PlaybackSession) -> None:
    rider_id = st.session_state["watched_rider"]
    if rider_id is not None:
        session.watch(rider_id)


def _compare_rider(session: PlaybackSession, key: str) -> None:
    rider_id = st.session_state[key]
    session.compare_with(CompareRider(rider_id=rider_id) if rider_id else None)


def _controls(session: PlaybackSession) -> None:
    clock = session.clock
    col_play, col_reset, col_speed, col_time = st.columns([1, 1, 3, 2])

    with col_play:
        if st.button("Pause" if clock.is_playing else "Play", type="primary", width="stretch"):
            clock.toggle()
    with col_reset:
        if st.button("Reset", width="stretch"):
            clock.reset()
    with col_speed:
        speed = st.radio(
            "Speed",
            list(PLAYBACK_SPEEDS),
            index=list(PLAYBACK_SPEEDS).index(clock.speed_multiplier),
            format_func=lambda s: f"{s}x",
            horizontal=True,
            label_visibility="collapsed",
        )
        if speed != clock.speed_multiplier:
            clock.set_speed(speed)
    with col_time:
        st.markdown(f"### {format_clock(clock.cursor_seconds)} / {format_clock(clock.max_time_seconds)}")

    st.session_state["cursor_slider"] = int(clock.cursor_seconds)
    st.slider(
        "Race time (s)",
        0,
        max(int(clock.max_time_seconds), 1),
        key="cursor_slider",
        on_change=_scrub,
        args=(session,),
        label_visibility="collapsed",
    )


def _rider_picker(session: PlaybackSession) -> None:
    search = st.sidebar.text_input("Search rider")
    options = rider_options(filter_riders_by_name(session.riders, search))
    if not options:
        st.sidebar.caption("No riders match.")
        return
    ids = [o["rider_id"] for o in options]
    labels = {o["rider_id"]: o["label"] for o in options}
    st.session_state["watched_rider"] = session.watched_id if session.watched_id in ids else None
    st.sidebar.selectbox(
        "Watching",
        ids,
        format_func=labels.get,
        placeholder="Pick a rider",
        key="watched_rider",
        on_change=_watch,
        args=(session,),
    )


def _standings(session: PlaybackSession, view) -> None:
    ranks = {s.rider_id: i for i, s in enumerate(view.standings, 1)}
    for group in view.groups:
        star = " ★" if group.contains_watched else ""
        header = (
            f":{'orange' if group.index == 0 else 'gray'}[■] **{group.name}** ({len(group.members)}){star}"
            f" — {group.average_power}W avg {format_gap(group.gap_to_leader_seconds)}"
        )
        with st.expander(header, expanded=session.is_group_expanded(group)):
            selected = session.compare == CompareGroup(index=group.index)
            if st.button(
                "Stop comparing" if selected else "Compare with group",
                key=f"cmp_group_{group.index}",
            ):
                session.toggle_compare(CompareGroup(index=group.index))
                st.rerun()
            df = pd.DataFrame([
                {
                    "Pos": ranks[m.rider_id],
                    "Name": m.name + (" (watching)" if m.rider_id == session.watched_id else ""),
                    "km": round(m.current_distance_km, 2),
                    "W": int(m.current_power),
                }
                for m in group.members
            ])
            st.dataframe(df, hide_index=True, width="stretch")
            others = [m for m in group.members if m.rider_id != session.watched_id]
            if others:
                st.selectbox(
                    "Compare with rider",
                    [None] + [m.rider_id for m in others],
                    format_func=lambda rid: "—" if rid is None else session.rider(rid).name,
                    key=f"cmp_rider_{group.index}",
                    on_change=_compare_rider,
                    args=(session, f"cmp_rider_{group.index}"),
                )


def render(session: PlaybackSession) -> None:
    clock = session.clock
    if clock.is_playing:
        clock.tick(time.monotonic())

    view = session.view()

    title = view.event_name or view.event_id
    st.title(f"{title}")
    st.caption(f"{view.rider_count} riders · {view.total_distance_km} km")
    if view.sync_in_progress:
        progress = view.sync_progress
        st.info(f"Syncing {progress.current}/{progress.total}..." if progress else "Syncing...")

    if not view.standings:
        st.warning("No rider data available yet.")
        return

    _rider_picker(session)
    _controls(session)

    name = view.watched.rider.first_name if view.watched else "Rider"
    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric(f"{name}'s Position", f"#{view.watched_rank}" if view.watched_rank else "-")
    c2.metric(f"{name}'s Power (W)", int(view.watched.current_power) if view.watched else 0)
    c3.metric("Leader Power (W)", int(view.leader.current_power) if view.leader else 0)
    c4.metric("Gap to Leader", view.gap_to_leader.label)
    c5.metric("Gap to Group Ahead", view.gap_to_group_ahead.label)

    zoom = st.sidebar.slider("Zoom (fraction of race)", 0.0, 1.0, (0.0, 1.0), step=0.01)
    if zoom[1] - zoom[0] < 0.01:
        zoom = (0.0, 1.0)
    elevation = next((r.elevation for r in session.riders if r.elevation), [])

    left, right = st.columns([1, 2])
    with left:
        st.subheader("Standings")
        _standings(session, view)
    with right:
        st.plotly_chart(
            build_elevation_figure(view, session.elevation_profile(*zoom), elevation, zoom),
            width="stretch",
        )
        chart = settings.get("chart", {})
        comparison = session.power_comparison(
            view,
            window_seconds=chart.get("window_seconds", 600),
            step_seconds=chart.get("sample_step_seconds", 10),
        )
        if comparison is not None:
            st.subheader(f"Power ({view.compare_label})")
            st.plotly_chart(build_power_figure(comparison), width="stretch")

    if clock.is_playing:
        time.sleep(RERUN_INTERVAL_SECONDS)
        st.rerun()
