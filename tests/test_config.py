"""
Test cases for configuration loading.
"""
import os
import sys
import tempfile
import unittest
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from asl_biometrics.config import Cfg, load_config


class TestLoadConfig(unittest.TestCase):
    """Test YAML loading and environment overrides."""

    def write_config(self, text: str) -> str:
        handle = tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False)
        with handle:
            handle.write(text)
        self.addCleanup(os.unlink, handle.name)
        return handle.name

    def test_default_file(self):
        cfg = load_config(env={})

        self.assertEqual(cfg, Cfg())
        self.assertEqual(cfg.matching.verification_threshold, 0.75)
        self.assertEqual(cfg.challenge.ttl_ms, 60000)
        self.assertEqual(cfg.server.port, 3007)

    def test_env_overrides(self):
        cfg = load_config(env={
            "VERIFICATION_THRESHOLD": "0.8",
            "MIN_ENROLLMENT_QUALITY": "0.6",
            "ASL_BIOMETRICS_PORT": "8080",
        })

        self.assertEqual(cfg.matching.verification_threshold, 0.8)
        self.assertEqual(cfg.matching.min_enrollment_quality, 0.6)
        self.assertEqual(cfg.server.port, 8080)

    def test_prefixed_env_names(self):
        cfg = load_config(env={
            "BIOMETRIC_VERIFICATION_THRESHOLD": "0.85",
            "BIOMETRIC_MIN_QUALITY": "0.4",
        })

        self.assertEqual(cfg.matching.verification_threshold, 0.85)
        self.assertEqual(cfg.matching.min_enrollment_quality, 0.4)

    def test_unprefixed_name_wins(self):
        cfg = load_config(env={
            "VERIFICATION_THRESHOLD": "0.7",
            "BIOMETRIC_VERIFICATION_THRESHOLD": "0.9",
        })
        self.assertEqual(cfg.matching.verification_threshold, 0.7)

    def test_empty_env_value_ignored(self):
        cfg = load_config(env={"VERIFICATION_THRESHOLD": ""})
        self.assertEqual(cfg.matching.verification_threshold, 0.75)

    def test_partial_file_uses_defaults(self):
        path = self.write_config("challenge:\n  ttl_ms: 30000\n")
        cfg = load_config(path, env={})

        self.assertEqual(cfg.challenge.ttl_ms, 30000)
        self.assertEqual(cfg.matching, Cfg().matching)
        self.assertEqual(cfg.session, Cfg().session)

    def test_empty_file(self):
        self.assertEqual(load_config(self.write_config(""), env={}), Cfg())

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_config("/nonexistent/asl-biometrics.yaml", env={})

    def test_threshold_out_of_range(self):
        with self.assertRaises(ValueError):
            load_config(env={"VERIFICATION_THRESHOLD": "1.5"})
        path = self.write_config("matching:\n  min_enrollment_quality: -0.1\n")
        with self.assertRaises(ValueError):
            load_config(path, env={})

    def test_bad_pattern_cap(self):
        path = self.write_config("matching:\n  max_patterns_per_profile: 0\n")
        with self.assertRaises(ValueError):
            load_config(path, env={})


if __name__ == '__main__':
    unittest.main()
