"""
Buffered per-frame inputs.
"""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from liptrack.services.geometry import Detection, Landmark


@dataclass
class FrameSignal:
    """One frame's inputs, held in the window buffer until the window flushes."""
    timestamp: int  # microseconds
    image: Optional[np.ndarray] = None
    landmark_lists: list[list[Landmark]] = field(default_factory=list)
    detections: list[Detection] = field(default_factory=list)

    @property
    def has_faces(self) -> bool:
        """Whether this frame takes part in association and classification."""
        return bool(self.landmark_lists) and bool(self.detections)

    @property
    def timestamp_seconds(self) -> float:
        return self.timestamp / 1_000_000
