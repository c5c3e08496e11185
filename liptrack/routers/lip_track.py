"""
Lip-track API endpoints.

Two ways to run the processor:
- one-shot: POST all frames to /lip-track/analyze
- streaming: open a session, push frames one at a time, then close it
"""

import asyncio
import logging
import time
from typing import Optional, Sequence

from fastapi import APIRouter, Depends, HTTPException, Request

from liptrack.auth import verify_api_key
from liptrack.config import LipTrackOptions, get_settings
from liptrack.schemas.requests import (
    AnalyzeRequest,
    CreateSessionRequest,
    FrameInput,
    LipTrackOptionsOverride,
)
from liptrack.schemas.responses import (
    AnalyzeResponse,
    CloseSessionResponse,
    PushFrameResponse,
    SessionResponse,
)
from liptrack.services.errors import (
    FrameDecodeError,
    MissingFrameError,
    SessionLimitError,
    SessionNotFoundError,
)
from liptrack.services.frame_decoder import decode_frame
from liptrack.services.lip_track_processor import LipTrackProcessor, WindowResult
from liptrack.services.session_store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_api_key)])


def get_session_store(request: Request) -> SessionStore:
    """Get the session store from app state."""
    store = getattr(request.app.state, "session_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Session store not initialized. Service not ready.")
    return store


def resolve_options(overrides: Optional[LipTrackOptionsOverride]) -> LipTrackOptions:
    """Merge request overrides over the configured defaults."""
    defaults = get_settings().get_lip_track_options()
    if overrides is None:
        return defaults
    return defaults.merged(overrides.model_dump(exclude_none=True))


def push_frame(processor: LipTrackProcessor, frame: FrameInput) -> Optional[WindowResult]:
    """Decode one frame and push it through the processor."""
    max_bytes = get_settings().max_image_bytes
    try:
        image = decode_frame(frame.image_base64, max_bytes) if frame.image_base64 else None
        return processor.process(
            image,
            frame.timestamp,
            landmark_lists=frame.to_landmark_lists(),
            detections=frame.to_detections(),
        )
    except (MissingFrameError, FrameDecodeError) as e:
        logger.warning(f"Rejected frame at {frame.timestamp}: {e}")
        raise HTTPException(status_code=400, detail=str(e))


def run_frames(processor: LipTrackProcessor, frames: Sequence[FrameInput]) -> list[WindowResult]:
    """Push every frame, flush the trailing window and collect the results."""
    results = [push_frame(processor, frame) for frame in frames]
    results.append(processor.close())
    return [result for result in results if result is not None]


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(request: AnalyzeRequest) -> AnalyzeResponse:
    """
    Run active speaker detection over a complete list of frames.

    The trailing partial window is flushed, so every input frame gets an output.
    """
    settings = get_settings()
    if len(request.frames) > settings.max_frames_per_request:
        raise HTTPException(
            status_code=413,
            detail=f"Too many frames: {len(request.frames)} (max {settings.max_frames_per_request})",
        )

    start_time = time.time()
    processor = LipTrackProcessor(resolve_options(request.options))
    response = AnalyzeResponse(total_frames=len(request.frames), processing_time_ms=0)

    logger.info(f"Analyze request received: {len(request.frames)} frames")
    # Decoding and window evaluation are CPU-bound, keep them off the event loop
    loop = asyncio.get_event_loop()
    results = await loop.run_in_executor(None, run_frames, processor, request.frames)
    for result in results:
        response.add_window(result)

    response.processing_time_ms = int((time.time() - start_time) * 1000)
    logger.info(
        f"Analyze complete: {len(response.windows)} windows, "
        f"{sum(1 for s in response.shot_signals if s.is_speaker_change)} speaker changes, "
        f"time={response.processing_time_ms}ms"
    )
    return response


@router.get("/sessions", response_model=list[SessionResponse])
async def list_sessions(http_request: Request) -> list[SessionResponse]:
    """List open streaming sessions."""
    store = get_session_store(http_request)
    return [
        SessionResponse(
            session_id=session.session_id,
            buffered_frames=session.processor.buffered_frames,
            frames_received=session.frames_received,
            created_at=session.created_at,
        )
        for session in store.list_sessions()
    ]


@router.post("/sessions", response_model=SessionResponse)
async def create_session(
    http_request: Request,
    request: Optional[CreateSessionRequest] = None,
) -> SessionResponse:
    """Open a streaming session with optional option overrides."""
    store = get_session_store(http_request)
    options = resolve_options(request.options if request else None)
    try:
        session = store.create(options)
    except SessionLimitError as e:
        raise HTTPException(status_code=429, detail=str(e))

    return SessionResponse(session_id=session.session_id, created_at=session.created_at)


@router.post("/sessions/{session_id}/frames", response_model=PushFrameResponse)
async def push_session_frame(
    session_id: str,
    frame: FrameInput,
    http_request: Request,
) -> PushFrameResponse:
    """
    Push one frame into a session.

    Returns the outputs released by this step: nothing until the buffered
    span reaches min_speaker_span, then one output per buffered frame.
    """
    store = get_session_store(http_request)
    try:
        session = store.get(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    # One frame at a time per session; the processor is not thread-safe
    async with session.lock:
        if session_id not in store:
            raise HTTPException(status_code=404, detail=f"Session closed: {session_id}")
        loop = asyncio.get_event_loop()
        result = await loop.run_in_executor(None, push_frame, session.processor, frame)
        session.frames_received += 1
        session.touch()

    response = PushFrameResponse(
        session_id=session_id,
        buffered_frames=session.processor.buffered_frames,
    )
    response.add_window(result)
    return response


@router.post("/sessions/{session_id}/close", response_model=CloseSessionResponse)
async def close_session(session_id: str, http_request: Request) -> CloseSessionResponse:
    """Flush a session's partial window and close it."""
    store = get_session_store(http_request)
    try:
        session = store.get(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    async with session.lock:
        try:
            # A concurrent close may have won the lock
            store.pop(session_id)
        except SessionNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        loop = asyncio.get_event_loop()
        result = await loop.run_in_executor(None, session.processor.close)

    response = CloseSessionResponse(session_id=session_id)
    response.add_window(result)
    return response
