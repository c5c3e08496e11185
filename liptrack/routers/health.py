"""
Health check endpoints for the lip-track worker.
"""

from fastapi import APIRouter, Request

from liptrack import __version__
from liptrack.config import get_settings
from liptrack.schemas.responses import HealthResponse, ReadinessResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Basic health check endpoint.

    Returns 200 if the service is running.
    """
    return HealthResponse(status="healthy", version=__version__)


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request):
    """
    Readiness check endpoint.

    Ready while the session store is up and has room for another session.
    """
    store = getattr(request.app.state, "session_store", None)
    if store is not None:
        store.expire_idle()
    max_sessions = get_settings().max_sessions
    open_sessions = len(store) if store is not None else 0

    return ReadinessResponse(
        ready=store is not None and open_sessions < max_sessions,
        open_sessions=open_sessions,
        max_sessions=max_sessions,
    )
