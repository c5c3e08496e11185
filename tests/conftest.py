"""
Pytest configuration and fixtures.
"""

import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from liptrack.config import LipTrackOptions  # noqa: E402
from liptrack.services.geometry import Detection, Landmark  # noqa: E402
from liptrack.services.lip_statistics import (  # noqa: E402
    FACE_MESH_LANDMARKS,
    LIP_LEFT_INNER_CORNER_IDX,
    LIP_LOWER_IDX,
    LIP_RIGHT_INNER_CORNER_IDX,
    LIP_UPPER_IDX,
)

FRAME_WIDTH = 100
FRAME_HEIGHT = 100

# 10 fps in microseconds
FRAME_STEP_US = 100_000


def build_face_landmarks(
    mouth_aspect_ratio: float,
    center: tuple[float, float] = (0.5, 0.5),
    mouth_width: float = 0.1,
    count: int = FACE_MESH_LANDMARKS,
    frame_width: int = FRAME_WIDTH,
    frame_height: int = FRAME_HEIGHT,
) -> list[Landmark]:
    """Build a face-mesh landmark list whose lips have the given aspect ratio."""
    cx, cy = center
    landmarks = [Landmark(x=cx, y=cy) for _ in range(count)]
    if count < FACE_MESH_LANDMARKS:
        return landmarks

    # Opening in normalized units so that the pixel-space ratio is exact
    opening = mouth_aspect_ratio * mouth_width * frame_width / frame_height

    landmarks[LIP_LEFT_INNER_CORNER_IDX] = Landmark(x=cx - mouth_width / 2, y=cy)
    landmarks[LIP_RIGHT_INNER_CORNER_IDX] = Landmark(x=cx + mouth_width / 2, y=cy)
    for offset, (upper, lower) in zip((-0.02, 0.0, 0.02), zip(LIP_UPPER_IDX, LIP_LOWER_IDX)):
        landmarks[upper] = Landmark(x=cx + offset, y=cy - opening / 2)
        landmarks[lower] = Landmark(x=cx + offset, y=cy + opening / 2)
    return landmarks


@pytest.fixture(scope="session")
def face_landmarks():
    """Factory for face-mesh landmark lists with a given mouth aspect ratio."""
    return build_face_landmarks


@pytest.fixture(scope="session")
def sample_image():
    """Create a small blank test frame (100x100, 3 channels)."""
    import numpy as np

    return np.zeros((FRAME_HEIGHT, FRAME_WIDTH, 3), dtype=np.uint8)


@pytest.fixture
def left_box():
    return Detection(xmin=0.3, ymin=0.3, width=0.2, height=0.2)


@pytest.fixture
def shifted_box():
    """Slightly moved left_box (IoU ~0.9)."""
    return Detection(xmin=0.31, ymin=0.3, width=0.2, height=0.2)


@pytest.fixture
def right_box():
    """Disjoint from left_box."""
    return Detection(xmin=0.7, ymin=0.3, width=0.2, height=0.2)


@pytest.fixture
def options():
    """
    Small-window options: 3 frames per window at 10 fps, and a history short
    enough for a face to be classified on the third frame.
    """
    return LipTrackOptions(
        min_speaker_span=2 * FRAME_STEP_US,
        variance_history=4,
        mean_history=2,
        lip_mean_threshold_big_mouth=0.5,
        lip_variance_threshold_big_mouth=0.01,
        lip_mean_threshold_small_mouth=0.2,
        lip_variance_threshold_small_mouth=0.001,
        iou_threshold=0.5,
        min_shot_span=0.1,
        output_shot_boundary=True,
        output_shot_boundary_only_on_change=False,
    )
