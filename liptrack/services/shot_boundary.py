"""
Shot-boundary decisions between consecutive windows.

A window with a dominant speaker is compared with the previous window's
dominant speaker: if there was none, the new speaker is a change; otherwise
the previous speaker's last box is compared with the new speaker's earliest
box and a low overlap is a change. Changes closer than ``min_shot_span``
seconds to the last detected change are emitted as "no change".
"""

import logging
from dataclasses import dataclass
from typing import Optional

from liptrack.config import LipTrackOptions
from liptrack.services.geometry import Detection, iou

logger = logging.getLogger(__name__)


@dataclass
class SpeakerDecisionState:
    """Minimal speaker summary persisted across windows."""
    previous_meta_face_id: Optional[int] = None
    previous_detection: Optional[Detection] = None
    # Timestamp (microseconds) of the last detected change, emitted or suppressed
    last_shot_timestamp: Optional[int] = None

    @property
    def has_previous_speaker(self) -> bool:
        return self.previous_meta_face_id is not None

    def clear_speaker(self) -> None:
        self.previous_meta_face_id = None
        self.previous_detection = None


@dataclass(frozen=True)
class ShotSignal:
    """Speaker/shot changed signal emitted at a frame timestamp."""
    timestamp: int
    is_change: bool


class ShotBoundaryDecider:
    """Turns dominant-speaker transitions into debounced shot signals."""

    def __init__(self, options: LipTrackOptions):
        self.options = options

    def decide_no_speaker(self, state: SpeakerDecisionState, timestamp: int) -> Optional[ShotSignal]:
        """Window without a dominant speaker: "no change", previous speaker cleared."""
        signal = None
        if self.options.output_shot_boundary:
            signal = self.transmit(state, False, timestamp)
        state.clear_speaker()
        return signal

    def decide_speaker(
        self,
        state: SpeakerDecisionState,
        timestamp: int,
        earliest_detection: Detection,
    ) -> Optional[ShotSignal]:
        """
        Window with a dominant speaker.

        Every detected change moves ``last_shot_timestamp``, including one the
        debounce downgrades, so a rapid back-and-forth keeps being suppressed.

        Args:
            state: Decision state from previous windows
            timestamp: Timestamp of the window's first frame
            earliest_detection: Dominant speaker's earliest box in this window
        """
        if not self.options.output_shot_boundary:
            return None

        if not state.has_previous_speaker or state.previous_detection is None:
            is_change = True
        else:
            overlap = iou(state.previous_detection, earliest_detection)
            is_change = overlap <= self.options.iou_threshold
            logger.debug(f"Dominant speaker overlap with previous window: iou={overlap:.3f}")

        signal = self.transmit(state, is_change, timestamp)
        if is_change:
            state.last_shot_timestamp = timestamp
        return signal

    def finish_window(
        self,
        state: SpeakerDecisionState,
        meta_face_id: int,
        last_detection: Detection,
    ) -> None:
        """Remember the dominant speaker and its last known box for the next window."""
        state.previous_meta_face_id = meta_face_id
        state.previous_detection = last_detection

    def transmit(
        self,
        state: SpeakerDecisionState,
        is_change: bool,
        timestamp: int,
    ) -> Optional[ShotSignal]:
        """
        Apply the debounce and the only-on-change filter. Does not modify ``state``.

        Returns:
            The signal to emit, or None if nothing is emitted
        """
        if is_change and state.last_shot_timestamp is not None:
            elapsed = (timestamp - state.last_shot_timestamp) / 1_000_000
            if elapsed < self.options.min_shot_span:
                logger.debug(f"Speaker change suppressed: {elapsed:.3f}s since last shot")
                is_change = False

        if is_change:
            logger.info(f"Speakers change at: {timestamp / 1_000_000:.3f} seconds.")
            return ShotSignal(timestamp=timestamp, is_change=True)

        if not self.options.output_shot_boundary_only_on_change:
            return ShotSignal(timestamp=timestamp, is_change=False)

        return None
