"""Race endpoints — list stored races, load one for replay, delete."""

from fastapi import APIRouter, HTTPException
from loguru import logger

from src.api.services import ReplayService
from src.storage import StorageError

router = APIRouter()


@router.get("")
async def list_races() -> list[dict]:
    """Return the stored races with rider counts and sync time."""
    service = ReplayService.get_instance()
    try:
        return [r.model_dump() for r in service.store.list_races()]
    except StorageError as e:
        logger.error("Failed to list races: {}", e)
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{event_id}/load")
async def load_race(event_id: str) -> dict:
    """Load a stored race into the replay session. Returns race metadata."""
    service = ReplayService.get_instance()
    try:
        session = await service.load_race(event_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Race {event_id} not found")
    except StorageError as e:
        logger.error("Failed to load race {}: {}", event_id, e)
        raise HTTPException(status_code=500, detail=f"Could not load race data: {e}")

    record = session.record
    return {
        "event_id": record.event_id,
        "event_name": record.event_name,
        "rider_count": len(session.riders),
        "sync_in_progress": record.sync_in_progress,
        "total_distance_km": session.total_distance_km,
        "max_time_seconds": session.clock.max_time_seconds,
        "watched_id": session.watched_id,
    }


@router.delete("/{event_id}")
async def delete_race(event_id: str) -> dict:
    service = ReplayService.get_instance()
    if not service.store.delete(event_id):
        raise HTTPException(status_code=404, detail=f"Race {event_id} not found")
    return {"deleted": event_id}
