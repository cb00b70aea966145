"""
Tests for Gesture Recognition
=============================
"""

import numpy as np
import pytest

from conftest import create_mock_landmarks
from particle_hands.core.errors import InvalidLandmarkError
from particle_hands.core.types import GestureType
from particle_hands.modules.detection.landmark_extractor import LandmarkExtractor
from particle_hands.modules.recognition.gesture_classifier import (
    GestureClassifier, match_gesture,
)


class TestLandmarkExtractor:
    """Test suite for geometric features."""

    @pytest.fixture
    def extractor(self):
        return LandmarkExtractor()

    def test_all_fingers_extended(self, extractor):
        hand = create_mock_landmarks({"thumb", "index", "middle", "ring", "pinky"})
        states = extractor.get_finger_states(hand)
        assert all(states.values())

    def test_all_fingers_curled(self, extractor):
        states = extractor.get_finger_states(create_mock_landmarks())
        assert not any(states.values())

    def test_mcp_mode_agrees_on_clear_shapes(self):
        extractor = LandmarkExtractor({"finger_mode": "mcp"})
        states = extractor.get_finger_states(create_mock_landmarks({"index", "middle"}))
        assert states["index"] and states["middle"]
        assert not states["ring"] and not states["pinky"]

    def test_unknown_finger_mode_falls_back(self):
        extractor = LandmarkExtractor({"finger_mode": "elbow"})
        states = extractor.get_finger_states(create_mock_landmarks({"index"}))
        assert states["index"]

    def test_openness_orders_open_above_fist(self, extractor):
        open_hand = create_mock_landmarks({"thumb", "index", "middle", "ring", "pinky"})
        fist = create_mock_landmarks()
        assert extractor.get_openness(open_hand) > 0.5
        assert extractor.get_openness(fist) < 0.2

    def test_openness_bounded(self, extractor):
        hand = create_mock_landmarks({"index"})
        assert 0.0 <= extractor.get_openness(hand) <= 1.0

    def test_palm_anchor_is_middle_knuckle(self, extractor):
        hand = create_mock_landmarks(offset=(0.1, -0.05))
        x, y = extractor.get_palm_anchor(hand)
        assert x == pytest.approx(0.6)
        assert y == pytest.approx(0.55)

    def test_depth_mapping(self, extractor):
        assert extractor.get_depth(create_mock_landmarks(z=-0.15)) == pytest.approx(1.0)
        assert extractor.get_depth(create_mock_landmarks(z=0.05)) == pytest.approx(0.0)
        assert extractor.get_depth(create_mock_landmarks(z=-0.05)) == pytest.approx(0.5)
        assert extractor.get_depth(create_mock_landmarks(z=-1.0)) == 1.0

    def test_validate_rejects_wrong_shape(self):
        with pytest.raises(InvalidLandmarkError):
            LandmarkExtractor.validate(np.zeros((20, 3)))

    def test_validate_rejects_nan(self):
        hand = create_mock_landmarks()
        hand[3, 1] = np.nan
        with pytest.raises(InvalidLandmarkError):
            LandmarkExtractor.validate(hand)

    def test_invalid_landmark_is_value_error(self):
        with pytest.raises(ValueError):
            LandmarkExtractor.validate([[0.0, 0.0]])


class TestGestureRules:
    """Rule table priority and fallbacks."""

    @staticmethod
    def _states(*extended):
        return {f: f in extended for f in ("thumb", "index", "middle", "ring", "pinky")}

    @pytest.mark.parametrize("extended,expected", [
        (("index", "middle"), GestureType.PEACE),
        (("index",), GestureType.POINTING),
        (("thumb", "index"), GestureType.POINTING),
        (("thumb", "index", "pinky"), GestureType.I_LOVE_YOU),
        (("index", "pinky"), GestureType.ROCK),
        (("thumb", "pinky"), GestureType.CALL_ME),
        (("thumb", "index", "middle", "ring", "pinky"), GestureType.OPEN),
        (("index", "middle", "ring"), GestureType.OPEN),
        ((), GestureType.FIST),
        (("middle",), GestureType.FIST),
        (("thumb",), GestureType.NONE),
        (("ring", "pinky"), GestureType.NONE),
    ])
    def test_rule_table(self, extended, expected):
        assert match_gesture(self._states(*extended)) == expected

    def test_peace_wins_over_open_count(self):
        # Thumb up does not turn a peace sign into anything else
        assert match_gesture(self._states("thumb", "index", "middle")) == GestureType.PEACE


class TestGestureClassifier:
    """Test suite for per-frame classification."""

    @pytest.fixture
    def classifier(self):
        return GestureClassifier()

    def test_none_gives_neutral_snapshot(self, classifier):
        snapshot = classifier.classify(None)
        assert not snapshot.detected
        assert snapshot.gesture == GestureType.NONE
        assert snapshot.openness == 0.5
        assert snapshot.position is None
        assert snapshot.velocity == (0.0, 0.0)
        assert snapshot.confidence == 0.0

    def test_peace_sign(self, classifier):
        snapshot = classifier.classify(create_mock_landmarks({"index", "middle"}), timestamp=0.0)
        assert snapshot.detected
        assert snapshot.gesture == GestureType.PEACE
        assert snapshot.confidence == 1.0

    @pytest.mark.parametrize("offset", [(0.0, 0.0), (0.2, 0.1), (-0.3, -0.25), (0.35, 0.15)])
    def test_peace_translation_invariant(self, classifier, offset):
        hand = create_mock_landmarks({"index", "middle"}, offset=offset)
        assert classifier.classify(hand, timestamp=0.0).gesture == GestureType.PEACE

    def test_open_and_fist(self, classifier):
        open_hand = create_mock_landmarks({"thumb", "index", "middle", "ring", "pinky"})
        assert classifier.classify(open_hand, timestamp=0.0).gesture == GestureType.OPEN
        assert classifier.classify(create_mock_landmarks(), timestamp=0.1).gesture == GestureType.FIST

    def test_first_frame_has_zero_velocity(self, classifier):
        snapshot = classifier.classify(create_mock_landmarks(), timestamp=1.0)
        assert snapshot.velocity == (0.0, 0.0)

    def test_velocity_from_palm_motion(self, classifier):
        classifier.classify(create_mock_landmarks(), timestamp=0.0)
        snapshot = classifier.classify(create_mock_landmarks(offset=(0.05, -0.02)), timestamp=0.1)
        vx, vy = snapshot.velocity
        assert vx == pytest.approx(0.5)
        assert vy == pytest.approx(-0.2)

    def test_velocity_clamped(self, classifier):
        classifier.classify(create_mock_landmarks(), timestamp=0.0)
        snapshot = classifier.classify(create_mock_landmarks(offset=(0.4, 0.0)), timestamp=0.01)
        assert snapshot.velocity[0] == pytest.approx(3.0)

    def test_hand_loss_resets_velocity(self, classifier):
        classifier.classify(create_mock_landmarks(), timestamp=0.0)
        classifier.classify(None)
        assert not classifier.detected
        snapshot = classifier.classify(create_mock_landmarks(offset=(0.2, 0.0)), timestamp=0.1)
        assert snapshot.velocity == (0.0, 0.0)

    def test_invalid_frame_raises(self, classifier):
        with pytest.raises(InvalidLandmarkError):
            classifier.classify(np.zeros((5, 3)))

    def test_snapshot_is_frozen(self, classifier):
        snapshot = classifier.classify(create_mock_landmarks(), timestamp=0.0)
        with pytest.raises(Exception):
            snapshot.openness = 1.0
