"""
Lip statistic extraction from face-mesh landmarks.

The speaking signal is the mouth aspect ratio: the average vertical opening
over three upper/lower lip pairs divided by the distance between the inner
mouth corners. Faces whose landmark list is shorter than the canonical
face-mesh set produce no statistic (``None``) so the result always stays
aligned with the frame's detection order.
"""

import logging
from typing import Optional, Sequence

from liptrack.services.geometry import Landmark, distance

logger = logging.getLogger(__name__)


# Canonical face-mesh landmark count
FACE_MESH_LANDMARKS = 468

# Lip contour landmarks
LIP_LEFT_INNER_CORNER_IDX = 78
LIP_RIGHT_INNER_CORNER_IDX = 308
LIP_UPPER_IDX = (82, 13, 312)
LIP_LOWER_IDX = (87, 14, 317)
LIP_CONTOUR_IDX = (78, 82, 13, 312, 308, 317, 14, 87)


def mouth_aspect_ratio(
    landmarks: Sequence[Landmark],
    frame_width: int,
    frame_height: int,
) -> Optional[float]:
    """
    Compute the mouth aspect ratio for one face.

    Returns None when the landmark list is incomplete or the mouth corners
    coincide (zero width).
    """
    if len(landmarks) < FACE_MESH_LANDMARKS:
        return None

    mouth_width = distance(
        landmarks[LIP_LEFT_INNER_CORNER_IDX],
        landmarks[LIP_RIGHT_INNER_CORNER_IDX],
        frame_width,
        frame_height,
    )
    if mouth_width <= 0:
        return None

    mouth_height = 0.0
    for upper_idx, lower_idx in zip(LIP_UPPER_IDX, LIP_LOWER_IDX):
        mouth_height += distance(landmarks[upper_idx], landmarks[lower_idx], frame_width, frame_height)
    mouth_height /= len(LIP_UPPER_IDX)

    return mouth_height / mouth_width


def compute_lip_statistics(
    landmark_lists: Sequence[Sequence[Landmark]],
    num_faces: int,
    frame_width: int,
    frame_height: int,
) -> list[Optional[float]]:
    """
    Compute one statistic per detected face, in detection order.

    Args:
        landmark_lists: Per-face landmark lists, parallel to the detections
        num_faces: Number of detections in the frame
        frame_width: Frame width in pixels
        frame_height: Frame height in pixels

    Returns:
        List of length ``num_faces``; entries are None for faces that were
        skipped (short landmark list, degenerate mouth, or no landmark list).
    """
    statistics: list[Optional[float]] = []
    for face_idx in range(num_faces):
        if face_idx >= len(landmark_lists):
            statistics.append(None)
            continue

        landmarks = landmark_lists[face_idx]
        value = mouth_aspect_ratio(landmarks, frame_width, frame_height)
        if value is None:
            logger.warning(
                f"Face {face_idx}: no lip statistic "
                f"({len(landmarks)}/{FACE_MESH_LANDMARKS} landmarks or zero mouth width)"
            )
        statistics.append(value)

    return statistics
