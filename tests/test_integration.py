"""
Integration test: a patient enrolls and verifies across two consultations
using only the package-level API.
"""
import sys
import unittest
from pathlib import Path

# Add project root and test helpers to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

import asl_biometrics
from asl_biometrics import (
    BiometricError,
    ChallengeExpired,
    TelehealthVerifier,
    extract_motion_features,
    load_config,
    parse_motion_sequence,
    validate_motion_quality,
)
from synthetic import FakeClock, back_and_forth, linear_path, make_sequence, to_wire


class TestTelehealthFlow(unittest.TestCase):
    """End-to-end enrollment and verification."""

    def setUp(self):
        """Set up a verifier from the default configuration."""
        self.clock = FakeClock()
        self.verifier = TelehealthVerifier(load_config(env={}), clock=self.clock)

    def test_full_flow(self):
        signing = to_wire(make_sequence(path=back_and_forth(axis=0, step=0.01, turn=15)))

        # capture is good enough on its own
        quality = validate_motion_quality(extract_motion_features(parse_motion_sequence(signing)))
        self.assertTrue(quality.is_valid)

        # first consultation: enroll, then verify
        first = self.verifier.initialize_session("patient-42", "dr-who")
        self.assertTrue(first.requires_enrollment)

        enrollment = self.verifier.enroll_in_session(first.session_id, signing)
        self.assertEqual(enrollment.gesture_analysis.suggested_gesture, "hello")

        result = self.verifier.verify_in_session(first.session_id, signing)
        self.assertTrue(result.verification.verified)
        self.assertEqual(result.verification.matched_pattern_id, enrollment.enrollment.pattern_id)
        self.assertTrue(self.verifier.end_session(first.session_id))

        # follow-up a day later: already enrolled, slow to respond once
        self.clock.advance(24 * 60 * 60 * 1000)
        second = self.verifier.initialize_session("patient-42", "dr-who", "followup")
        self.assertFalse(second.requires_enrollment)

        self.clock.advance(90 * 1000)
        with self.assertRaises(ChallengeExpired) as ctx:
            self.verifier.verify_in_session(second.session_id, signing)
        self.assertIsInstance(ctx.exception, BiometricError)
        self.assertEqual(ctx.exception.to_dict()["error"], "challenge_expired")

        self.verifier.refresh_challenge(second.session_id)
        impostor = make_sequence(path=linear_path(dx=0.005))
        failed = self.verifier.verify_in_session(second.session_id, impostor)
        self.assertEqual(failed.verification_status, "failed")

        verified = self.verifier.verify_in_session(second.session_id, signing)
        self.assertEqual(verified.verification_status, "verified")

        stats = self.verifier.get_stats()
        self.assertEqual(stats.total_active_sessions, 1)
        self.assertEqual(stats.verified_sessions, 1)

        # erasure request
        erased = self.verifier.delete_patient_data("patient-42")
        self.assertTrue(erased.biometrics_deleted)
        self.assertEqual(erased.sessions_removed, 1)
        self.assertEqual(self.verifier.get_stats().total_active_sessions, 0)

    def test_package_metadata(self):
        self.assertTrue(asl_biometrics.__version__)
        self.assertIn("TelehealthVerifier", asl_biometrics.__all__)


if __name__ == '__main__':
    unittest.main()
