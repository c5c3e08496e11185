"""
Tests for shot-boundary decisions and debounce.
"""

import pytest

from liptrack.services.shot_boundary import ShotBoundaryDecider, ShotSignal, SpeakerDecisionState


@pytest.fixture
def decider(options):
    return ShotBoundaryDecider(options)


class TestShotBoundaryDecider:
    """Tests for speaker-change signals."""

    def test_first_speaker_is_a_change(self, decider, left_box):
        state = SpeakerDecisionState()
        signal = decider.decide_speaker(state, 0, left_box)
        assert signal == ShotSignal(timestamp=0, is_change=True)
        assert state.last_shot_timestamp == 0

    def test_same_place_is_not_a_change(self, decider, left_box, shifted_box):
        state = SpeakerDecisionState(previous_meta_face_id=0, previous_detection=left_box)
        signal = decider.decide_speaker(state, 500_000, shifted_box)
        assert signal == ShotSignal(timestamp=500_000, is_change=False)
        assert state.last_shot_timestamp is None

    def test_moved_speaker_is_a_change(self, decider, left_box, right_box):
        state = SpeakerDecisionState(previous_meta_face_id=0, previous_detection=left_box)
        signal = decider.decide_speaker(state, 500_000, right_box)
        assert signal.is_change is True

    def test_no_speaker_clears_previous(self, decider, left_box):
        state = SpeakerDecisionState(previous_meta_face_id=2, previous_detection=left_box)
        signal = decider.decide_no_speaker(state, 300_000)
        assert signal == ShotSignal(timestamp=300_000, is_change=False)
        assert not state.has_previous_speaker
        assert state.previous_detection is None

    def test_finish_window_remembers_speaker(self, decider, right_box):
        state = SpeakerDecisionState()
        decider.finish_window(state, 4, right_box)
        assert state.previous_meta_face_id == 4
        assert state.previous_detection == right_box


class TestDebounce:
    """Tests for min_shot_span debounce and output filters."""

    def test_changes_within_span_are_suppressed(self, options, left_box, right_box):
        decider = ShotBoundaryDecider(options.model_copy(update={"min_shot_span": 1.0}))
        state = SpeakerDecisionState()

        first = decider.decide_speaker(state, 0, left_box)
        decider.finish_window(state, 0, left_box)
        second = decider.decide_speaker(state, 1_000_000, right_box)
        decider.finish_window(state, 0, right_box)
        third = decider.decide_speaker(state, 1_900_000, left_box)

        assert first.is_change is True
        assert second.is_change is True
        assert third.is_change is False

    def test_suppressed_change_restarts_debounce(self, options, left_box, right_box):
        """A speaker moving back and forth faster than min_shot_span stays suppressed."""
        decider = ShotBoundaryDecider(options.model_copy(update={"min_shot_span": 0.5}))
        state = SpeakerDecisionState()
        signals = []
        for timestamp, box in [(0, left_box), (300_000, right_box), (600_000, left_box)]:
            signals.append(decider.decide_speaker(state, timestamp, box))
            decider.finish_window(state, 0, box)

        assert [(s.timestamp, s.is_change) for s in signals] == [
            (0, True), (300_000, False), (600_000, False),
        ]
        assert state.last_shot_timestamp == 600_000

    def test_transmit_leaves_state_untouched(self, options):
        decider = ShotBoundaryDecider(options)
        state = SpeakerDecisionState()
        assert decider.transmit(state, True, 500_000).is_change is True
        assert state.last_shot_timestamp is None

    def test_only_on_change_drops_no_change(self, options):
        decider = ShotBoundaryDecider(
            options.model_copy(update={"output_shot_boundary_only_on_change": True})
        )
        state = SpeakerDecisionState()
        assert decider.transmit(state, False, 0) is None
        assert decider.transmit(state, True, 0).is_change is True

    def test_disabled_output_emits_nothing(self, options, left_box):
        decider = ShotBoundaryDecider(options.model_copy(update={"output_shot_boundary": False}))
        state = SpeakerDecisionState(previous_meta_face_id=1, previous_detection=left_box)

        assert decider.decide_speaker(state, 0, left_box) is None
        assert decider.decide_no_speaker(state, 0) is None
        assert state.last_shot_timestamp is None
        assert not state.has_previous_speaker
