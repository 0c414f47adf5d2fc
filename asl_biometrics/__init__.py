"""
ASL Biometrics

Identity verification for telehealth sessions from sign-language hand motion.
Works on hand landmarks already extracted by a browser-side tracker: derives
kinematic features, checks capture quality, matches against enrolled
patterns, and gates the decision with a challenge-response session.
"""

__version__ = "1.0.0"
__author__ = "Healthcare Intake Assistant Team"

from .types import (
    Landmark,
    HandFrame,
    MotionSequence,
    MotionFeatures,
    QualityResult,
    VerificationChallenge,
    TelehealthSession,
)
from .config import load_config, Cfg
from .errors import (
    BiometricError,
    InvalidInput,
    InsufficientFrames,
    QualityInsufficient,
    NotEnrolled,
    SessionNotFound,
    NoPendingChallenge,
    ChallengeExpired,
)
from .landmarks import HandLandmark, landmark_distance
from .features import extract_motion_features, validate_motion_quality
from .schemas import parse_motion_sequence
from .gestures import GestureAnalyzer
from .stores import ProfileStore, SessionStore
from .matching import IdentityMatcher, calculate_match_score, calculate_similarity
from .sessions import TelehealthVerifier

__all__ = [
    "Landmark",
    "HandFrame",
    "MotionSequence",
    "MotionFeatures",
    "QualityResult",
    "VerificationChallenge",
    "TelehealthSession",
    "load_config",
    "Cfg",
    "BiometricError",
    "InvalidInput",
    "InsufficientFrames",
    "QualityInsufficient",
    "NotEnrolled",
    "SessionNotFound",
    "NoPendingChallenge",
    "ChallengeExpired",
    "HandLandmark",
    "landmark_distance",
    "extract_motion_features",
    "validate_motion_quality",
    "parse_motion_sequence",
    "GestureAnalyzer",
    "ProfileStore",
    "SessionStore",
    "IdentityMatcher",
    "calculate_match_score",
    "calculate_similarity",
    "TelehealthVerifier",
]
