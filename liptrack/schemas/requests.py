"""
Request schemas for the lip-track API.
"""

from typing import Optional

from pydantic import BaseModel, Field

from liptrack.services.geometry import Detection, Landmark


class LandmarkPoint(BaseModel):
    """A normalized face-mesh landmark."""

    x: float
    y: float
    z: float = 0.0


class RelativeBoundingBox(BaseModel):
    """Face detection box, normalized to the frame (0.0-1.0)."""

    xmin: float = Field(..., description="Left edge")
    ymin: float = Field(..., description="Top edge")
    width: float = Field(..., ge=0.0, description="Box width")
    height: float = Field(..., ge=0.0, description="Box height")
    score: float = Field(default=1.0, ge=0.0, le=1.0, description="Detection confidence")

    def to_detection(self) -> Detection:
        return Detection(
            xmin=self.xmin, ymin=self.ymin, width=self.width, height=self.height, score=self.score
        )


class FrameInput(BaseModel):
    """One video frame with its (optional) face landmarks and detections."""

    timestamp: int = Field(..., ge=0, description="Frame timestamp in microseconds")
    image_base64: Optional[str] = Field(
        default=None,
        description="Base64-encoded JPEG/PNG frame (mandatory; may be a data URL)",
    )
    landmarks: Optional[list[list[LandmarkPoint]]] = Field(
        default=None, description="Per-face face-mesh landmarks, parallel to detections"
    )
    detections: Optional[list[RelativeBoundingBox]] = Field(
        default=None, description="Face detections for this frame"
    )

    def to_landmark_lists(self) -> Optional[list[list[Landmark]]]:
        if self.landmarks is None:
            return None
        return [[Landmark(x=p.x, y=p.y, z=p.z) for p in face] for face in self.landmarks]

    def to_detections(self) -> Optional[list[Detection]]:
        if self.detections is None:
            return None
        return [box.to_detection() for box in self.detections]


class LipTrackOptionsOverride(BaseModel):
    """Per-request overrides of the service's default lip-track options."""

    min_speaker_span: Optional[int] = Field(default=None, ge=0)
    variance_history: Optional[int] = Field(default=None, ge=1)
    mean_history: Optional[int] = Field(default=None, ge=1)
    lip_mean_threshold_big_mouth: Optional[float] = Field(default=None, ge=0.0)
    lip_variance_threshold_big_mouth: Optional[float] = Field(default=None, ge=0.0)
    lip_mean_threshold_small_mouth: Optional[float] = Field(default=None, ge=0.0)
    lip_variance_threshold_small_mouth: Optional[float] = Field(default=None, ge=0.0)
    iou_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    min_shot_span: Optional[float] = Field(default=None, ge=0.0)
    output_shot_boundary: Optional[bool] = None
    output_shot_boundary_only_on_change: Optional[bool] = None


class AnalyzeRequest(BaseModel):
    """Request body for the one-shot /lip-track/analyze endpoint."""

    frames: list[FrameInput] = Field(..., min_length=1, description="Frames in timestamp order")
    options: Optional[LipTrackOptionsOverride] = None

    class Config:
        json_schema_extra = {
            "example": {
                "frames": [
                    {
                        "timestamp": 0,
                        "image_base64": "<base64 jpeg>",
                        "landmarks": [[{"x": 0.5, "y": 0.5, "z": 0.0}]],
                        "detections": [{"xmin": 0.4, "ymin": 0.3, "width": 0.2, "height": 0.3}],
                    }
                ],
                "options": {"min_speaker_span": 1000000, "output_shot_boundary_only_on_change": False},
            }
        }


class CreateSessionRequest(BaseModel):
    """Request body for opening a streaming session."""

    options: Optional[LipTrackOptionsOverride] = None
