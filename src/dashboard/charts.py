"""Plotly figures for the replay page — elevation profile with riders, power comparison."""

from __future__ import annotations

import math

import numpy as np
import plotly.graph_objects as go

from src.dashboard.state import WATCHED_COLOR, group_color
from src.models import PowerComparison, RaceView
from src.utils.timing import clamp, lerp

_LAYOUT = dict(
    template="plotly_dark",
    paper_bgcolor="#0d1117",
    plot_bgcolor="#0d1117",
    margin=dict(l=40, r=20, t=30, b=30),
)


def elevation_at_progress(elevation: list[float], progress: float) -> float:
    """Course elevation under a rider at a given race fraction, interpolated between samples."""
    if not elevation:
        return 0.0
    pos = clamp(progress, 0.0, 1.0) * (len(elevation) - 1)
    idx = math.floor(pos)
    nxt = min(idx + 1, len(elevation) - 1)
    return lerp(elevation[idx], elevation[nxt], pos - idx)


def build_elevation_figure(
    view: RaceView,
    profile: tuple[np.ndarray, np.ndarray],
    elevation: list[float],
    zoom: tuple[float, float] = (0.0, 1.0),
) -> go.Figure:
    """Elevation profile with one marker per rider, coloured by group."""
    distance_km, elevation_m = profile
    fig = go.Figure()

    fig.add_trace(go.Scatter(
        x=distance_km,
        y=elevation_m,
        mode="lines",
        fill="tozeroy",
        line=dict(color="#3fb950", width=2),
        fillcolor="rgba(35,134,54,0.3)",
        showlegend=False,
        hoverinfo="skip",
    ))

    zoom_start, zoom_end = zoom
    watched_id = view.watched.rider_id if view.watched else None
    for group in view.groups:
        visible = [m for m in group.members if zoom_start <= m.progress <= zoom_end]
        if not visible:
            continue
        fig.add_trace(go.Scatter(
            x=[m.progress * view.total_distance_km for m in visible],
            y=[elevation_at_progress(elevation, m.progress) for m in visible],
            mode="markers",
            marker=dict(
                size=[14 if m.rider_id == watched_id else 9 for m in visible],
                color=[WATCHED_COLOR if m.rider_id == watched_id else group_color(group.index) for m in visible],
                line=dict(color="white", width=1),
            ),
            name=f"{'★ ' if group.contains_watched else ''}G{group.index + 1} ({len(group.members)})",
            hovertext=[
                f"{m.name}<br>{group.name}<br>{m.current_distance_km:.1f} km<br>{m.current_power:.0f}W"
                for m in visible
            ],
            hoverinfo="text",
        ))

    fig.update_layout(
        height=260,
        xaxis=dict(
            title="km",
            range=[zoom_start * view.total_distance_km, zoom_end * view.total_distance_km],
        ),
        yaxis=dict(title="m"),
        legend=dict(orientation="h", y=1.15),
        **_LAYOUT,
    )
    return fig


def build_power_figure(comparison: PowerComparison) -> go.Figure:
    """Watched rider's power against the compare target over the trailing window."""
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=comparison.labels,
        y=comparison.watched,
        mode="lines",
        name=comparison.watched_name,
        line=dict(color=WATCHED_COLOR, width=2, shape="spline", smoothing=0.2),
    ))
    fig.add_trace(go.Scatter(
        x=comparison.labels,
        y=comparison.compare,
        mode="lines",
        name=comparison.compare_name,
        line=dict(color="#a371f7" if comparison.is_group else "#58a6ff", width=2, shape="spline", smoothing=0.2),
    ))
    fig.update_layout(
        height=280,
        yaxis=dict(title="W", rangemode="tozero"),
        xaxis=dict(nticks=8),
        **_LAYOUT,
    )
    return fig
