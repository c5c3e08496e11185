"""
Geometry helpers for normalized face landmarks and detection boxes.

Landmarks and boxes arrive normalized to [0, 1] by the face-mesh and face
detection models. Distances are measured in pixels so the mouth aspect ratio
is not distorted by the frame's aspect ratio; IoU is scale invariant and is
computed on the normalized values directly.
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Landmark:
    """A single normalized face-mesh landmark."""
    x: float
    y: float
    z: float = 0.0


@dataclass(frozen=True)
class Detection:
    """A face detection with its relative bounding box (xmin, ymin, width, height)."""
    xmin: float
    ymin: float
    width: float
    height: float
    score: float = 1.0

    @property
    def area(self) -> float:
        return max(self.width, 0.0) * max(self.height, 0.0)

    def to_pixels(self, frame_width: int, frame_height: int) -> tuple[int, int, int, int]:
        """Convert to an (x, y, w, h) pixel box."""
        return (
            int(self.xmin * frame_width),
            int(self.ymin * frame_height),
            int(self.width * frame_width),
            int(self.height * frame_height),
        )


def distance(point_a: Landmark, point_b: Landmark, frame_width: int, frame_height: int) -> float:
    """Euclidean distance between two normalized landmarks, in pixels."""
    dx = (point_a.x - point_b.x) * frame_width
    dy = (point_a.y - point_b.y) * frame_height
    return math.sqrt(dx * dx + dy * dy)


def iou(box_a: Detection, box_b: Detection) -> float:
    """Calculate Intersection over Union between two detection boxes."""
    xi1 = max(box_a.xmin, box_b.xmin)
    yi1 = max(box_a.ymin, box_b.ymin)
    xi2 = min(box_a.xmin + box_a.width, box_b.xmin + box_b.width)
    yi2 = min(box_a.ymin + box_a.height, box_b.ymin + box_b.height)

    if xi2 <= xi1 or yi2 <= yi1:
        return 0.0

    intersection = (xi2 - xi1) * (yi2 - yi1)
    union = box_a.area + box_b.area - intersection

    if union <= 0:
        return 0.0

    return intersection / union
