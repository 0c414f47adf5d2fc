"""
Test cases for gesture analysis with synthetic hand sequences.
"""
import random
import unittest
import sys
from pathlib import Path

# Add project root and test helpers to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from asl_biometrics.config import Cfg, ChallengeConfig
from asl_biometrics.gestures import (
    VERIFICATION_GESTURES,
    GestureAnalyzer,
    GestureRule,
    analyze_finger_positions,
    calculate_complexity,
    calculate_gesture_path,
    calculate_movement_direction,
    detect_known_gesture,
    estimate_hand_orientation,
)
from asl_biometrics.landmarks import HandLandmark, is_finger_extended
from asl_biometrics.types import HandFrame, Landmark
from synthetic import (
    FIST,
    START_MS,
    FakeClock,
    back_and_forth,
    linear_path,
    make_landmarks,
    make_sequence,
)


def frame(offset=(0.0, 0.0, 0.0), extended=(True,) * 5, depth=None, landmarks=None):
    return HandFrame(
        timestamp=START_MS,
        handedness="right",
        landmarks=landmarks or make_landmarks(offset, extended, depth),
        confidence=0.9,
    )


class TestHandShape(unittest.TestCase):
    """Test finger extension and palm orientation."""

    def test_finger_extension_rule(self):
        base = Landmark(0.5, 0.5, 0.0)
        middle = Landmark(0.5, 0.45, 0.0)
        self.assertTrue(is_finger_extended(base, middle, Landmark(0.5, 0.35, 0.0)))
        self.assertFalse(is_finger_extended(base, middle, Landmark(0.5, 0.48, 0.0)))

    def test_open_hand(self):
        fingers = analyze_finger_positions(frame())
        self.assertEqual(fingers.as_tuple(), (True, True, True, True, True))

    def test_fist(self):
        fingers = analyze_finger_positions(frame(extended=FIST))
        self.assertEqual(fingers.as_tuple(), (False, False, False, False, False))

    def test_pointing(self):
        fingers = analyze_finger_positions(frame(extended=(False, True, False, False, False)))
        self.assertTrue(fingers.index_extended)
        self.assertFalse(fingers.thumb_extended)
        self.assertFalse(fingers.middle_extended)

    def test_upright_hand_is_palm_up(self):
        self.assertEqual(estimate_hand_orientation(frame()), "palm_up")

    def test_depth_dominates_orientation(self):
        """Knuckle much further from the camera than the wrist."""
        away = frame(depth={HandLandmark.MIDDLE_FINGER_MCP: 0.2})
        toward = frame(depth={HandLandmark.MIDDLE_FINGER_MCP: -0.2})
        self.assertEqual(estimate_hand_orientation(away), "palm_forward")
        self.assertEqual(estimate_hand_orientation(toward), "palm_back")

    def test_hanging_hand_is_palm_down(self):
        landmarks = list(make_landmarks())
        landmarks[HandLandmark.WRIST] = Landmark(0.5, 0.5, 0.0)
        self.assertEqual(estimate_hand_orientation(frame(landmarks=tuple(landmarks))), "palm_down")


class TestMovementDirection(unittest.TestCase):
    """Test wrist movement classification between frames."""

    def direction(self, offset):
        return calculate_movement_direction(frame(), frame(offset))

    def test_deadzone(self):
        self.assertEqual(self.direction((0.0, 0.0, 0.0)), "stationary")
        self.assertEqual(self.direction((0.019, -0.019, 0.019)), "stationary")

    def test_horizontal(self):
        self.assertEqual(self.direction((0.03, 0.0, 0.0)), "right")
        self.assertEqual(self.direction((-0.03, 0.0, 0.0)), "left")

    def test_vertical(self):
        """Image y grows downwards."""
        self.assertEqual(self.direction((0.0, 0.03, 0.0)), "down")
        self.assertEqual(self.direction((0.0, -0.03, 0.0)), "up")

    def test_depth(self):
        self.assertEqual(self.direction((0.0, 0.0, 0.05)), "forward")
        self.assertEqual(self.direction((0.0, 0.0, -0.05)), "back")

    def test_largest_axis_wins(self):
        self.assertEqual(self.direction((0.03, 0.05, 0.0)), "down")
        self.assertEqual(self.direction((0.03, 0.03, 0.0)), "right")


class TestGesturePath(unittest.TestCase):
    """Test wrist trajectory summaries."""

    def path_of(self, path):
        return calculate_gesture_path(make_sequence(path=path).frames)

    def test_stationary(self):
        result = self.path_of(None)
        self.assertEqual(result.path_shape, "stationary")
        self.assertEqual(result.total_distance, 0.0)

    def test_horizontal(self):
        result = self.path_of(linear_path(dx=0.01))
        self.assertEqual(result.path_shape, "horizontal")
        self.assertAlmostEqual(result.total_distance, 0.29)
        self.assertAlmostEqual(result.bounding_box.max_x - result.bounding_box.min_x, 0.29)

    def test_vertical(self):
        self.assertEqual(self.path_of(linear_path(dy=0.01)).path_shape, "vertical")

    def test_diagonal_is_circular(self):
        self.assertEqual(self.path_of(linear_path(dx=0.01, dy=0.01)).path_shape, "circular")


class TestGestureAnalyzer(unittest.TestCase):
    """Test keyframe analysis and gesture suggestion."""

    def setUp(self):
        """Set up analyzer with a fixed clock and seeded randomness."""
        self.clock = FakeClock()
        self.analyzer = GestureAnalyzer(Cfg(), clock=self.clock, rng=random.Random(7))

    def test_keyframe_sampling(self):
        keyframes = self.analyzer.extract_keyframes(make_sequence(frame_count=30).frames)

        self.assertEqual(len(keyframes), 10)
        self.assertEqual([k.frame_index for k in keyframes], list(range(0, 30, 3)))
        self.assertIsNone(keyframes[0].movement_direction)
        self.assertEqual(keyframes[1].movement_direction, "stationary")

    def test_short_sequence_uses_every_frame(self):
        keyframes = self.analyzer.extract_keyframes(make_sequence(frame_count=5, duration_ms=500).frames)
        self.assertEqual([k.frame_index for k in keyframes], [0, 1, 2, 3, 4])

    def test_analysis_fields(self):
        result = self.analyzer.analyze(make_sequence(handedness="left", confidence=0.8))

        self.assertEqual(result.handedness, "left")
        self.assertAlmostEqual(result.confidence, 0.8)
        self.assertAlmostEqual(result.sign_duration, 1.5)
        self.assertEqual(len(result.keyframes), 10)
        self.assertTrue(0.0 <= result.complexity <= 1.0)

    def test_static_hand_complexity(self):
        """Only the first movement label appears, once."""
        result = self.analyzer.analyze(make_sequence())
        self.assertAlmostEqual(result.complexity, 1 / 70)
        self.assertEqual(calculate_complexity([]), 0.0)

    def test_suggests_hello(self):
        result = self.analyzer.analyze(make_sequence(path=back_and_forth(axis=0)))
        self.assertEqual(result.suggested_gesture, "hello")

    def test_suggests_yes(self):
        result = self.analyzer.analyze(make_sequence(path=back_and_forth(axis=1), extended=FIST))
        self.assertEqual(result.suggested_gesture, "yes")

    def test_suggests_thank_you(self):
        result = self.analyzer.analyze(make_sequence(path=linear_path(dz=0.01)))
        self.assertEqual(result.suggested_gesture, "thank_you")

    def test_no_suggestion_for_still_hand(self):
        self.assertIsNone(self.analyzer.analyze(make_sequence()).suggested_gesture)

    def test_single_keyframe_has_no_suggestion(self):
        keyframes = self.analyzer.extract_keyframes(make_sequence(frame_count=1, duration_ms=50).frames)
        self.assertIsNone(detect_known_gesture(keyframes))

    def test_custom_rules(self):
        analyzer = GestureAnalyzer(Cfg(), rules=(GestureRule("anything", lambda kf: True),))
        self.assertEqual(analyzer.analyze(make_sequence()).suggested_gesture, "anything")


class TestChallenges(unittest.TestCase):
    """Test verification challenge generation."""

    def setUp(self):
        """Set up analyzer with a fixed clock."""
        self.clock = FakeClock()

    def test_challenge_fields(self):
        analyzer = GestureAnalyzer(Cfg(), clock=self.clock, rng=random.Random(1))
        challenge = analyzer.generate_challenge()

        self.assertIn(challenge.gesture_type, VERIFICATION_GESTURES)
        self.assertEqual(challenge.instructions, VERIFICATION_GESTURES[challenge.gesture_type])
        self.assertEqual(challenge.expires_at, START_MS + 60000)

    def test_challenge_ttl_from_config(self):
        cfg = Cfg(challenge=ChallengeConfig(ttl_ms=5000))
        challenge = GestureAnalyzer(cfg, clock=self.clock).generate_challenge()
        self.assertEqual(challenge.expires_at, START_MS + 5000)

    def test_expiry_boundary(self):
        challenge = GestureAnalyzer(Cfg(), clock=self.clock).generate_challenge()
        self.assertFalse(challenge.is_expired(challenge.expires_at))
        self.assertTrue(challenge.is_expired(challenge.expires_at + 1))

    def test_seeded_choice_is_reproducible(self):
        first = GestureAnalyzer(Cfg(), clock=self.clock, rng=random.Random(42))
        second = GestureAnalyzer(Cfg(), clock=self.clock, rng=random.Random(42))

        self.assertEqual(
            [first.generate_challenge().gesture_type for _ in range(10)],
            [second.generate_challenge().gesture_type for _ in range(10)],
        )

    def test_challenge_ids_unique(self):
        analyzer = GestureAnalyzer(Cfg(), clock=self.clock)
        ids = {analyzer.generate_challenge().challenge_id for _ in range(50)}
        self.assertEqual(len(ids), 50)


if __name__ == '__main__':
    unittest.main()
