"""Replay endpoints — playback commands, rider/compare selection and derived state.

Every response is recomputed from the session on request; the frontend
polls ``/state`` on its own cadence while playback runs server-side.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from src.api.services import ReplayService
from src.constants import CHART_SAMPLE_STEP_SECONDS, CHART_WINDOW_SECONDS
from src.models import CompareGroup, CompareRider, Group, RaceView, RiderSnapshot
from src.session import filter_riders_by_name, rider_options
from src.storage import StorageError
from src.utils.config import settings

router = APIRouter()


class ScrubRequest(BaseModel):
    seconds: float = Field(ge=0)


class SpeedRequest(BaseModel):
    speed: int


class WatchRequest(BaseModel):
    rider_id: str


class CompareRequest(BaseModel):
    rider_id: str | None = None
    group_index: int | None = None


def _ensure_loaded() -> ReplayService:
    svc = ReplayService.get_instance()
    if not svc.is_loaded:
        raise HTTPException(400, "No race loaded. POST /api/races/{event_id}/load first.")
    return svc


def _rider_row(s: RiderSnapshot, rank: int, watched_id: str | None) -> dict:
    return {
        "rank": rank,
        "rider_id": s.rider_id,
        "position": s.position,
        "name": s.name,
        "distance_km": round(s.current_distance_km, 3),
        "progress": round(s.progress, 4),
        "power": s.current_power,
        "heart_rate": s.current_heart_rate,
        "is_watched": s.rider_id == watched_id,
    }


def _group_row(group: Group, ranks: dict[str, int], svc: ReplayService) -> dict:
    session = svc.session
    return {
        "index": group.index,
        "name": group.name,
        "size": len(group.members),
        "average_power": group.average_power,
        "average_heart_rate": group.average_heart_rate,
        "gap_to_leader_seconds": group.gap_to_leader_seconds,
        "contains_watched": group.contains_watched,
        "expanded": session.is_group_expanded(group),
        "selected": session.compare == CompareGroup(index=group.index),
        "members": [_rider_row(m, ranks[m.rider_id], session.watched_id) for m in group.members],
    }


def _state(svc: ReplayService, view: RaceView | None = None) -> dict:
    session = svc.session
    view = view or session.view()
    ranks = {s.rider_id: i for i, s in enumerate(view.standings, 1)}
    watched = view.watched
    return {
        "event_id": view.event_id,
        "event_name": view.event_name,
        "rider_count": view.rider_count,
        "sync_in_progress": view.sync_in_progress,
        "sync_progress": view.sync_progress.model_dump() if view.sync_progress else None,
        "clock": view.clock_label,
        "playback": view.playback.model_dump(),
        "total_distance_km": view.total_distance_km,
        "watched": _rider_row(watched, view.watched_rank, session.watched_id) if watched else None,
        "leader": _rider_row(view.leader, 1, session.watched_id) if view.leader else None,
        "gap_to_leader": view.gap_to_leader.model_dump(),
        "gap_to_group_ahead": view.gap_to_group_ahead.model_dump(),
        "compare": session.compare.model_dump() if session.compare else None,
        "compare_label": view.compare_label,
        "groups": [_group_row(g, ranks, svc) for g in view.groups],
    }


# ------------------------------------------------------------------
# State
# ------------------------------------------------------------------

@router.get("/state")
async def state() -> dict:
    """Current frame: playback, standings grouped into packs, watched-rider gaps."""
    return _state(_ensure_loaded())


@router.post("/refresh")
async def refresh() -> dict:
    """Pick up riders added to the store since the race was loaded."""
    svc = _ensure_loaded()
    try:
        updated = await svc.refresh()
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"updated": updated, **_state(svc)}


@router.get("/riders")
async def riders(search: str | None = Query(None, description="Case-insensitive name filter")) -> list[dict]:
    """Rider selector options, optionally filtered by name."""
    svc = _ensure_loaded()
    return rider_options(filter_riders_by_name(svc.session.riders, search))


# ------------------------------------------------------------------
# Playback commands
# ------------------------------------------------------------------

@router.post("/play")
async def play() -> dict:
    svc = _ensure_loaded()
    await svc.play()
    return svc.session.clock.state.model_dump()


@router.post("/pause")
async def pause() -> dict:
    svc = _ensure_loaded()
    await svc.stop()
    return svc.session.clock.state.model_dump()


@router.post("/reset")
async def reset() -> dict:
    svc = _ensure_loaded()
    await svc.reset()
    return svc.session.clock.state.model_dump()


@router.post("/scrub")
async def scrub(request: ScrubRequest) -> dict:
    svc = _ensure_loaded()
    svc.session.clock.scrub(request.seconds)
    return svc.session.clock.state.model_dump()


@router.post("/speed")
async def speed(request: SpeedRequest) -> dict:
    svc = _ensure_loaded()
    try:
        svc.session.clock.set_speed(request.speed)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return svc.session.clock.state.model_dump()


# ------------------------------------------------------------------
# Selection
# ------------------------------------------------------------------

@router.post("/watch")
async def watch(request: WatchRequest) -> dict:
    svc = _ensure_loaded()
    try:
        svc.session.watch(request.rider_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Rider {request.rider_id} not in this race")
    return _state(svc)


@router.post("/compare")
async def compare(request: CompareRequest) -> dict:
    """Compare against a rider or a whole group; sending neither clears the target."""
    svc = _ensure_loaded()
    if request.rider_id is not None and request.group_index is not None:
        raise HTTPException(status_code=422, detail="Compare with a rider or a group, not both")

    if request.rider_id is not None:
        target = CompareRider(rider_id=request.rider_id)
    elif request.group_index is not None:
        target = CompareGroup(index=request.group_index)
    else:
        target = None

    try:
        svc.session.compare_with(target)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Rider {request.rider_id} not in this race")
    return _state(svc)


@router.post("/groups/{index}/toggle")
async def toggle_group(index: int) -> dict:
    svc = _ensure_loaded()
    svc.session.toggle_group_expanded(index)
    return {"index": index, "expanded": index in svc.session.expanded_groups}


# ------------------------------------------------------------------
# Chart data
# ------------------------------------------------------------------

@router.get("/power")
async def power() -> dict:
    """Trailing-window power series for the watched rider vs the compare target."""
    svc = _ensure_loaded()
    chart = settings.get("chart", {})
    comparison = svc.session.power_comparison(
        window_seconds=chart.get("window_seconds", CHART_WINDOW_SECONDS),
        step_seconds=chart.get("sample_step_seconds", CHART_SAMPLE_STEP_SECONDS),
    )
    return comparison.model_dump() if comparison else {}


@router.get("/elevation")
async def elevation(
    zoom_start: float = Query(0.0, ge=0.0, le=1.0),
    zoom_end: float = Query(1.0, ge=0.0, le=1.0),
) -> dict:
    """Course elevation profile within the zoom window (fractions of the race)."""
    svc = _ensure_loaded()
    if zoom_end <= zoom_start:
        raise HTTPException(status_code=422, detail="zoom_end must be greater than zoom_start")
    distance_km, elevation_m = svc.session.elevation_profile(zoom_start, zoom_end)
    return {"distance_km": distance_km.tolist(), "elevation_m": elevation_m.tolist()}
