"""
FastAPI application entry point for the lip-track service.

Detects the active speaker across sliding windows of video frames from
pre-computed face-mesh landmarks and face detections, and emits debounced
speaker-change signals for automatic reframing.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from liptrack import __version__
from liptrack.config import get_settings
from liptrack.routers import health, lip_track
from liptrack.services.session_store import SessionStore

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for startup and shutdown events.
    Creates the session store on startup and flushes open sessions on shutdown.
    """
    settings = get_settings()
    logger.info(f"Starting {settings.app_name}...")

    app.state.session_store = SessionStore(
        max_sessions=settings.max_sessions,
        idle_timeout_seconds=settings.session_idle_timeout_seconds,
    )
    logger.info(f"Max streaming sessions: {settings.max_sessions}")
    logger.info(f"Default options: {settings.get_lip_track_options().model_dump()}")

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    app.state.session_store.close_all()
    app.state.session_store = None
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Lip Track",
    description="""
Active speaker detection from lip motion.

## Features

### Lip Track API (`/lip-track`)
- Frame-to-frame face association by bounding-box overlap
- Mouth aspect ratio from face-mesh lip landmarks
- Speaking classification from rolling lip statistics
- Dominant speaker per window and debounced speaker-change signals

## Usage

1. One-shot: `POST /lip-track/analyze` with all frames
2. Streaming: `POST /lip-track/sessions`, then
   `POST /lip-track/sessions/{id}/frames` per frame, then
   `POST /lip-track/sessions/{id}/close`
    """,
    version=__version__,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(lip_track.router, prefix="/lip-track", tags=["Lip Track"])


@app.get("/")
async def root():
    """Root endpoint with basic info."""
    settings = get_settings()
    return {
        "service": settings.app_name,
        "version": __version__,
        "status": "running",
        "docs": "/docs",
    }
