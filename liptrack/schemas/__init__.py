"""
Pydantic schemas for request/response models.
"""

from liptrack.schemas.requests import (
    AnalyzeRequest,
    CreateSessionRequest,
    FrameInput,
    LandmarkPoint,
    LipTrackOptionsOverride,
    RelativeBoundingBox,
)
from liptrack.schemas.responses import (
    AnalyzeResponse,
    CloseSessionResponse,
    FrameSpeakerOutput,
    LipTrackOutputs,
    PushFrameResponse,
    SessionResponse,
    ShotSignalOutput,
    SpeakerBox,
)

__all__ = [
    "AnalyzeRequest",
    "CreateSessionRequest",
    "FrameInput",
    "LandmarkPoint",
    "LipTrackOptionsOverride",
    "RelativeBoundingBox",
    "AnalyzeResponse",
    "CloseSessionResponse",
    "FrameSpeakerOutput",
    "LipTrackOutputs",
    "PushFrameResponse",
    "SessionResponse",
    "ShotSignalOutput",
    "SpeakerBox",
]
