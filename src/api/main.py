"""FastAPI application — Race Replay API."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

import src.utils.logger  # noqa: F401
from src.api.routes import races, replay
from src.api.services import ReplayService
from src.utils.config import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown events."""
    service = ReplayService.get_instance()
    logger.info("Starting Race Replay API (store: {})", service.store.path)

    yield

    # Cancel any playback task still ticking
    await service.stop()
    logger.info("Shutting down Race Replay API")


app = FastAPI(
    title="Race Replay API",
    description="Replay cycling races from rider telemetry: standings, groups and gaps",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS — allow frontend to call the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get("api", {}).get("cors_origins", []),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(races.router, prefix="/api/races", tags=["races"])
app.include_router(replay.router, prefix="/api/replay", tags=["replay"])


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "race_loaded": ReplayService.get_instance().is_loaded}


def cli() -> None:
    """CLI entry point for running the API via `race-replay-api`."""
    import uvicorn

    host = settings.get("api", {}).get("host", "0.0.0.0")
    port = settings.get("api", {}).get("port", 8000)
    uvicorn.run("src.api.main:app", host=host, port=port, reload=True)
