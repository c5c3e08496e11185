"""
Window aggregation: meta-face identities and dominant-speaker selection.

A window of buffered frames is evaluated in frame order. Each frame's faces
are associated with the previous processed frame's faces; a matched face
inherits its predecessor's meta-face id, an unmatched face mints a new one.
A meta-face therefore represents one physical face across the whole window,
recorded as one face-index slot per buffered frame.

Per frame, the last face classified as speaking (in detection order) scores
one hit for its meta-face. The meta-face with the most hits is the window's
dominant speaker; ties go to the lowest meta-face id.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Optional, Sequence

from liptrack.config import LipTrackOptions
from liptrack.services.face_associator import associate_faces
from liptrack.services.frame_signal import FrameSignal
from liptrack.services.geometry import Detection
from liptrack.services.lip_history import rebuild_histories
from liptrack.services.lip_statistics import compute_lip_statistics
from liptrack.services.speaker_classifier import SpeakerClassifier, SpeakerRatchet

logger = logging.getLogger(__name__)


@dataclass
class MetaFace:
    """
    A face identity spanning one window.

    ``face_indices[i]`` is the face index this identity had in buffered frame
    ``i``, or None if it did not appear there.
    """
    meta_face_id: int
    face_indices: list[Optional[int]]

    def appears_in(self, buffer_position: int) -> bool:
        return self.face_indices[buffer_position] is not None

    @property
    def first_position(self) -> Optional[int]:
        """Buffer position of the earliest frame this identity appears in."""
        for position in range(len(self.face_indices)):
            if self.appears_in(position):
                return position
        return None


@dataclass
class FaceTrackState:
    """State carried from one processed frame to the next inside a window."""
    previous_detections: list[Detection] = field(default_factory=list)
    # Keyed by previous-frame face index
    histories: dict[int, deque[float]] = field(default_factory=dict)
    meta_face_ids: list[int] = field(default_factory=list)


@dataclass
class FrameAnalysis:
    """Association and classification results for one processed frame."""
    buffer_position: int
    meta_face_ids: list[int]
    statistics: list[Optional[float]]
    speaker_face_idx: Optional[int] = None


@dataclass
class WindowEvaluation:
    """Aggregated result of one window."""
    meta_faces: dict[int, MetaFace] = field(default_factory=dict)
    hit_counts: dict[int, int] = field(default_factory=dict)
    frame_analyses: list[Optional[FrameAnalysis]] = field(default_factory=list)
    dominant_meta_face_id: Optional[int] = None

    @property
    def dominant_meta_face(self) -> Optional[MetaFace]:
        if self.dominant_meta_face_id is None:
            return None
        return self.meta_faces[self.dominant_meta_face_id]


def select_dominant(hit_counts: dict[int, int]) -> Optional[int]:
    """Meta-face id with the most hits; the lowest id wins a tie."""
    dominant_id: Optional[int] = None
    max_hits = 0
    for meta_face_id in sorted(hit_counts):
        if hit_counts[meta_face_id] > max_hits:
            dominant_id = meta_face_id
            max_hits = hit_counts[meta_face_id]
    return dominant_id


class MetaFaceTracker:
    """
    Builds meta-faces over a window and counts speaking hits.

    Meta-face ids are scoped to this instance and restart at zero for every
    window evaluation.
    """

    def __init__(self, options: LipTrackOptions):
        self.options = options
        self.classifier = SpeakerClassifier(options)
        self._next_meta_face_id = 0

    def evaluate(
        self,
        frames: Sequence[FrameSignal],
        frame_width: int,
        frame_height: int,
    ) -> WindowEvaluation:
        """
        Evaluate a window of buffered frames.

        Args:
            frames: Buffered frames in timestamp order
            frame_width: Frame width in pixels
            frame_height: Frame height in pixels

        Returns:
            WindowEvaluation with meta-faces, hit counts and dominant speaker
        """
        self._next_meta_face_id = 0
        state = FaceTrackState()
        evaluation = WindowEvaluation(frame_analyses=[None] * len(frames))

        for position, frame in enumerate(frames):
            if not frame.has_faces:
                continue

            analysis = self._process_frame(
                frame, position, len(frames), state, evaluation, frame_width, frame_height
            )
            evaluation.frame_analyses[position] = analysis

            if analysis.speaker_face_idx is not None:
                meta_face_id = analysis.meta_face_ids[analysis.speaker_face_idx]
                evaluation.hit_counts[meta_face_id] = evaluation.hit_counts.get(meta_face_id, 0) + 1

        evaluation.dominant_meta_face_id = select_dominant(evaluation.hit_counts)

        logger.debug(
            f"Window of {len(frames)} frames: {len(evaluation.meta_faces)} meta-faces, "
            f"hits={evaluation.hit_counts}, dominant={evaluation.dominant_meta_face_id}"
        )
        return evaluation

    def _process_frame(
        self,
        frame: FrameSignal,
        position: int,
        window_size: int,
        state: FaceTrackState,
        evaluation: WindowEvaluation,
        frame_width: int,
        frame_height: int,
    ) -> FrameAnalysis:
        """Associate, update histories and classify the faces of one frame."""
        detections = frame.detections
        statistics = compute_lip_statistics(
            frame.landmark_lists, len(detections), frame_width, frame_height
        )
        matches = associate_faces(detections, state.previous_detections, self.options.iou_threshold)
        histories = rebuild_histories(
            matches, statistics, state.histories, self.options.variance_history
        )

        meta_face_ids: list[int] = []
        for face_idx, previous_idx in enumerate(matches):
            if previous_idx is not None:
                meta_face_id = state.meta_face_ids[previous_idx]
            else:
                meta_face_id = self._next_meta_face_id
                self._next_meta_face_id += 1
                evaluation.meta_faces[meta_face_id] = MetaFace(
                    meta_face_id=meta_face_id,
                    face_indices=[None] * window_size,
                )
            evaluation.meta_faces[meta_face_id].face_indices[position] = face_idx
            meta_face_ids.append(meta_face_id)

        # Ratchet starts fresh for every frame; the last speaking face wins
        ratchet = SpeakerRatchet()
        speaker_face_idx: Optional[int] = None
        for face_idx in range(len(detections)):
            is_speaking, ratchet = self.classifier.classify(histories[face_idx], ratchet)
            if is_speaking:
                speaker_face_idx = face_idx

        state.previous_detections = list(detections)
        state.histories = histories
        state.meta_face_ids = meta_face_ids

        return FrameAnalysis(
            buffer_position=position,
            meta_face_ids=meta_face_ids,
            statistics=statistics,
            speaker_face_idx=speaker_face_idx,
        )
