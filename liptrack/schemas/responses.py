"""
Response schemas for the lip-track API.
"""

from typing import Optional

from pydantic import BaseModel, Field

from liptrack.services.geometry import Detection
from liptrack.services.lip_track_processor import WindowResult


class SpeakerBox(BaseModel):
    """Active speaker box, normalized to the frame."""

    xmin: float
    ymin: float
    width: float
    height: float
    score: float

    @classmethod
    def from_detection(cls, detection: Detection) -> "SpeakerBox":
        return cls(
            xmin=detection.xmin,
            ymin=detection.ymin,
            width=detection.width,
            height=detection.height,
            score=detection.score,
        )


class FrameSpeakerOutput(BaseModel):
    """Speaker detections for one frame (0 or 1 entries)."""

    timestamp: int = Field(..., description="Frame timestamp in microseconds")
    speakers: list[SpeakerBox] = Field(default_factory=list)
    mouth_aspect_ratios: list[Optional[float]] = Field(
        default_factory=list, description="Per-face mouth aspect ratio, null for skipped faces"
    )


class ShotSignalOutput(BaseModel):
    """Speaker/shot change signal."""

    timestamp: int
    is_speaker_change: bool


class WindowSummary(BaseModel):
    """Summary of one evaluated window."""

    start_timestamp: int
    end_timestamp: int
    num_frames: int
    dominant_meta_face_id: Optional[int] = None
    speaking_hits: dict[int, int] = Field(default_factory=dict)


class LipTrackOutputs(BaseModel):
    """Outputs released by one or more window evaluations."""

    frames: list[FrameSpeakerOutput] = Field(default_factory=list)
    shot_signals: list[ShotSignalOutput] = Field(default_factory=list)
    windows: list[WindowSummary] = Field(default_factory=list)

    def add_window(self, result: Optional[WindowResult]) -> None:
        """Append a window's outputs (no-op for None)."""
        if result is None or not result.frames:
            return
        for frame in result.frames:
            self.frames.append(FrameSpeakerOutput(
                timestamp=frame.timestamp,
                speakers=[SpeakerBox.from_detection(d) for d in frame.speaker_detections],
                mouth_aspect_ratios=frame.statistics,
            ))
        for signal in result.shot_signals:
            self.shot_signals.append(ShotSignalOutput(
                timestamp=signal.timestamp,
                is_speaker_change=signal.is_change,
            ))
        self.windows.append(WindowSummary(
            start_timestamp=result.start_timestamp,
            end_timestamp=result.end_timestamp,
            num_frames=len(result.frames),
            dominant_meta_face_id=result.dominant_meta_face_id,
            speaking_hits=result.hit_counts,
        ))


class AnalyzeResponse(LipTrackOutputs):
    """Response for the one-shot analyze endpoint."""

    total_frames: int
    processing_time_ms: int


class SessionResponse(BaseModel):
    """An open streaming session."""

    session_id: str
    buffered_frames: int = 0
    frames_received: int = 0
    created_at: float


class PushFrameResponse(LipTrackOutputs):
    """Outputs released by pushing one frame (often empty)."""

    session_id: str
    buffered_frames: int


class CloseSessionResponse(LipTrackOutputs):
    """Outputs released by flushing a session."""

    session_id: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="Service version")


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    open_sessions: int
    max_sessions: int
