"""
Rolling mouth-aspect-ratio histories, keyed by face index within a frame.

The store is rebuilt on every processed frame: a matched face continues its
previous face's history, a new face starts a fresh one. Histories are bounded
deques so the oldest values drop first once ``variance_history`` is reached.
"""

from collections import deque
from typing import Mapping, Optional, Sequence


def extend_history(
    previous: Optional[deque[float]],
    value: Optional[float],
    max_length: int,
) -> deque[float]:
    """Copy a previous history (if any) and append a new value (if any)."""
    history: deque[float] = deque(previous or (), maxlen=max_length)
    if value is not None:
        history.append(value)
    return history


def rebuild_histories(
    matches: Sequence[Optional[int]],
    statistics: Sequence[Optional[float]],
    previous_histories: Mapping[int, deque[float]],
    max_length: int,
) -> dict[int, deque[float]]:
    """
    Build this frame's histories, keyed by current face index.

    Args:
        matches: Per current face, the matched previous face index or None
        statistics: Per current face, the mouth aspect ratio or None (gap)
        previous_histories: Histories keyed by previous face index
        max_length: Maximum history length (variance_history)
    """
    histories: dict[int, deque[float]] = {}
    for face_idx, previous_idx in enumerate(matches):
        previous = previous_histories.get(previous_idx) if previous_idx is not None else None
        histories[face_idx] = extend_history(previous, statistics[face_idx], max_length)
    return histories
