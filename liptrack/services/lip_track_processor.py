"""
Lip Track Processor - active speaker detection over sliding windows of frames.

This is the push-driven entry point used by the HTTP layer (and usable
in-process by any host that already has face-mesh landmarks and face
detections):

1. Each ``process`` call buffers one frame
2. Once the buffered span reaches ``min_speaker_span``, the window is evaluated:
   faces are chained into meta-faces, each frame's speaker is classified from
   lip motion, and the meta-face with the most speaking frames wins
3. A debounced shot-boundary signal is decided against the previous window
4. One speaker detection per buffered frame is released in timestamp order

Detections that carry no identity are tracked purely by overlap, so a face's
identity never outlives its window; only the dominant speaker's last box is
remembered between windows.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from liptrack.config import LipTrackOptions, get_settings
from liptrack.services.errors import MissingFrameError
from liptrack.services.frame_signal import FrameSignal
from liptrack.services.geometry import Detection, Landmark
from liptrack.services.meta_face_tracker import MetaFaceTracker, WindowEvaluation
from liptrack.services.shot_boundary import ShotBoundaryDecider, ShotSignal, SpeakerDecisionState

logger = logging.getLogger(__name__)


@dataclass
class FrameOutput:
    """Per-frame output released when a window flushes."""
    timestamp: int
    # The dominant speaker's box (0 or 1 entries)
    speaker_detections: list[Detection]
    # Inputs and intermediate values, for external renderers
    signal: FrameSignal
    statistics: list[Optional[float]] = field(default_factory=list)
    meta_face_ids: list[int] = field(default_factory=list)


@dataclass
class WindowResult:
    """Everything released by one window evaluation."""
    frames: list[FrameOutput] = field(default_factory=list)
    shot_signals: list[ShotSignal] = field(default_factory=list)
    dominant_meta_face_id: Optional[int] = None
    hit_counts: dict[int, int] = field(default_factory=dict)

    @property
    def start_timestamp(self) -> Optional[int]:
        return self.frames[0].timestamp if self.frames else None

    @property
    def end_timestamp(self) -> Optional[int]:
        return self.frames[-1].timestamp if self.frames else None


class LipTrackProcessor:
    """
    Windowed active-speaker detector with shot-boundary output.

    Single-threaded: all state is owned by the instance and only changes
    inside ``accumulate``/``evaluate_window``/``close``.
    """

    def __init__(self, options: Optional[LipTrackOptions] = None):
        self.options = options or get_settings().get_lip_track_options()
        self.tracker = MetaFaceTracker(self.options)
        self.decider = ShotBoundaryDecider(self.options)
        self.decision_state = SpeakerDecisionState()

        # Frame format (set on first frame)
        self.frame_width = -1
        self.frame_height = -1
        self.frame_channels = -1

        self._buffer: list[FrameSignal] = []

    @property
    def buffered_frames(self) -> int:
        return len(self._buffer)

    def process(
        self,
        image: Optional[np.ndarray],
        timestamp: int,
        landmark_lists: Optional[Sequence[Sequence[Landmark]]] = None,
        detections: Optional[Sequence[Detection]] = None,
    ) -> Optional[WindowResult]:
        """
        Push one frame.

        Args:
            image: Decoded video frame (H, W[, C]); mandatory
            timestamp: Frame timestamp in microseconds, increasing
            landmark_lists: Optional per-face landmark lists
            detections: Optional face detections, parallel to landmark_lists

        Returns:
            WindowResult if this frame closed a window, otherwise None

        Raises:
            MissingFrameError: If no image is given
        """
        if image is None:
            raise MissingFrameError(timestamp)

        signal = FrameSignal(timestamp=timestamp, image=image.copy())
        # Landmarks are only used together with their detections
        if landmark_lists and detections:
            signal.landmark_lists = [list(landmarks) for landmarks in landmark_lists]
            signal.detections = list(detections)

        return self.accumulate(signal)

    def accumulate(self, signal: FrameSignal) -> Optional[WindowResult]:
        """Buffer a frame and evaluate the window once it spans min_speaker_span."""
        if signal.image is None:
            raise MissingFrameError(signal.timestamp)

        self._latch_frame_format(signal.image)
        self._buffer.append(signal)

        span = signal.timestamp - self._buffer[0].timestamp
        if span >= self.options.min_speaker_span:
            return self.evaluate_window()
        return None

    def close(self) -> Optional[WindowResult]:
        """Flush any partially filled window and reset all state."""
        result = self.evaluate_window()
        self.decision_state = SpeakerDecisionState()
        return result

    def evaluate_window(self) -> Optional[WindowResult]:
        """Evaluate and release the buffered frames. An empty buffer is a no-op."""
        if not self._buffer:
            return None

        frames = self._buffer
        self._buffer = []

        evaluation = self.tracker.evaluate(frames, self.frame_width, self.frame_height)
        result = self._build_result(frames, evaluation)

        logger.info(
            f"Window {frames[0].timestamp_seconds:.3f}s-{frames[-1].timestamp_seconds:.3f}s: "
            f"{len(frames)} frames, {len(evaluation.meta_faces)} faces, "
            f"dominant={evaluation.dominant_meta_face_id}, "
            f"signals={[s.is_change for s in result.shot_signals]}"
        )
        return result

    def _build_result(self, frames: list[FrameSignal], evaluation: WindowEvaluation) -> WindowResult:
        """Decide the shot boundary and build one speaker output per frame."""
        result = WindowResult(
            dominant_meta_face_id=evaluation.dominant_meta_face_id,
            hit_counts=dict(evaluation.hit_counts),
        )
        first_timestamp = frames[0].timestamp
        dominant = evaluation.dominant_meta_face

        if dominant is None:
            signal = self.decider.decide_no_speaker(self.decision_state, first_timestamp)
            if signal is not None:
                result.shot_signals.append(signal)
            for position, frame in enumerate(frames):
                result.frames.append(self._frame_output(frame, position, [], evaluation))
            return result

        # Detection in the earliest frame the speaker appears in
        first_position = dominant.first_position
        carried = frames[first_position].detections[dominant.face_indices[first_position]]

        signal = self.decider.decide_speaker(self.decision_state, first_timestamp, carried)
        if signal is not None:
            result.shot_signals.append(signal)

        for position, frame in enumerate(frames):
            if dominant.appears_in(position):
                carried = frame.detections[dominant.face_indices[position]]
            result.frames.append(self._frame_output(frame, position, [carried], evaluation))

        self.decider.finish_window(self.decision_state, dominant.meta_face_id, carried)
        return result

    def _frame_output(
        self,
        frame: FrameSignal,
        position: int,
        speaker_detections: list[Detection],
        evaluation: WindowEvaluation,
    ) -> FrameOutput:
        analysis = evaluation.frame_analyses[position]
        return FrameOutput(
            timestamp=frame.timestamp,
            speaker_detections=speaker_detections,
            signal=frame,
            statistics=list(analysis.statistics) if analysis else [],
            meta_face_ids=list(analysis.meta_face_ids) if analysis else [],
        )

    def _latch_frame_format(self, image: np.ndarray) -> None:
        """Take the frame size from the first frame; it is assumed constant afterwards."""
        height, width = image.shape[:2]
        channels = image.shape[2] if image.ndim == 3 else 1

        if self.frame_width < 0:
            self.frame_width = width
            self.frame_height = height
            self.frame_channels = channels
            logger.debug(f"Frame format: {width}x{height}x{channels}")
        elif (width, height) != (self.frame_width, self.frame_height):
            logger.warning(
                f"Frame size changed to {width}x{height}, "
                f"keeping {self.frame_width}x{self.frame_height}"
            )
