"""
Frame-to-frame face association by bounding-box overlap.

There are no persistent face identifiers in the inputs, so every detection in
the current frame is matched against the previous frame's detections. The
previous detection with the highest IoU wins when that IoU exceeds the
threshold; on equal IoU the first one in previous-detection order is kept.
Matching is not exclusive: two current faces may claim the same previous face.
"""

import logging
from typing import Optional, Sequence

from liptrack.services.geometry import Detection, iou

logger = logging.getLogger(__name__)


def match_face(
    detection: Detection,
    previous_detections: Sequence[Detection],
    iou_threshold: float,
) -> Optional[int]:
    """
    Find the previous-frame face that matches a detection.

    Returns:
        Index into ``previous_detections``, or None if this is a new face
    """
    best_idx: Optional[int] = None
    best_iou = 0.0

    for idx, previous in enumerate(previous_detections):
        overlap = iou(previous, detection)
        if overlap <= iou_threshold:
            continue
        if overlap > best_iou:
            best_iou = overlap
            best_idx = idx

    return best_idx


def associate_faces(
    detections: Sequence[Detection],
    previous_detections: Sequence[Detection],
    iou_threshold: float,
) -> list[Optional[int]]:
    """Map each current face index to its previous face index (or None)."""
    matches = [match_face(det, previous_detections, iou_threshold) for det in detections]
    logger.debug(f"Associated {len(detections)} faces against {len(previous_detections)}: {matches}")
    return matches
