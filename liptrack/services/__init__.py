"""
Services for the lip-track worker.

Includes:
- Geometry, lip statistics, face association and rolling lip histories
- Active-speaker classification and meta-face window aggregation
- Shot-boundary decisions and the windowed LipTrackProcessor
- HTTP helpers (frame decoding, streaming sessions)
"""

from liptrack.services.frame_signal import FrameSignal
from liptrack.services.geometry import Detection, Landmark, distance, iou
from liptrack.services.lip_track_processor import FrameOutput, LipTrackProcessor, WindowResult
from liptrack.services.meta_face_tracker import MetaFace, MetaFaceTracker, WindowEvaluation
from liptrack.services.session_store import SessionStore
from liptrack.services.shot_boundary import ShotBoundaryDecider, ShotSignal, SpeakerDecisionState
from liptrack.services.speaker_classifier import SpeakerClassifier, SpeakerRatchet

__all__ = [
    # Core
    "Landmark",
    "Detection",
    "distance",
    "iou",
    "FrameSignal",
    "SpeakerClassifier",
    "SpeakerRatchet",
    "MetaFace",
    "MetaFaceTracker",
    "WindowEvaluation",
    "ShotBoundaryDecider",
    "ShotSignal",
    "SpeakerDecisionState",
    "LipTrackProcessor",
    "FrameOutput",
    "WindowResult",
    # Service
    "SessionStore",
]
