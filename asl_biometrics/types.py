"""
Type definitions for the ASL biometric verification system.
"""
import time
from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, List, Literal, Optional, Protocol, Tuple, runtime_checkable


Handedness = Literal["left", "right"]
HandOrientation = Literal["palm_up", "palm_down", "palm_forward", "palm_back"]
MovementDirection = Literal["up", "down", "left", "right", "forward", "back", "stationary"]
PathShape = Literal["horizontal", "vertical", "circular", "stationary"]
MatchConfidence = Literal["low", "medium", "high"]
SessionType = Literal["consultation", "followup", "prescription", "emergency"]
VerificationStatus = Literal["pending", "verified", "failed", "expired"]

SESSION_TYPES: Tuple[str, ...] = ("consultation", "followup", "prescription", "emergency")

# Returns the current time in epoch milliseconds
Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)


class _DictMixin:
    """Serialization helper shared by the result types."""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Raw capture
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Landmark:
    """A single hand landmark in normalized frame coordinates."""
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class HandFrame:
    """One tracker sample: 21 landmarks for one hand at one instant."""
    timestamp: int  # ms
    handedness: Handedness
    landmarks: Tuple[Landmark, ...]
    confidence: float


@dataclass(frozen=True)
class MotionSequence:
    """One signing attempt as captured by the browser tracker."""
    session_id: str
    frames: Tuple[HandFrame, ...]
    capture_start_time: int  # ms
    capture_end_time: int  # ms


# ---------------------------------------------------------------------------
# Features and quality
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MotionFeatures(_DictMixin):
    """Kinematic summary of a motion sequence."""
    average_velocity: float
    max_velocity: float
    motion_smoothness: float
    average_finger_spread: float
    average_wrist_movement: float
    frame_duration: float  # seconds
    frame_count: int
    dominant_hand: Handedness
    average_confidence: float


@dataclass(frozen=True)
class QualityResult(_DictMixin):
    """Outcome of the capture quality check."""
    is_valid: bool
    quality_score: float
    issues: Tuple[str, ...]
    features: MotionFeatures


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PatternFeatures:
    """The subset of motion features kept in an enrolled pattern."""
    average_velocity: float
    max_velocity: float
    motion_smoothness: float
    average_finger_spread: float
    average_wrist_movement: float
    dominant_hand: Handedness

    @classmethod
    def from_motion(cls, features: MotionFeatures) -> "PatternFeatures":
        return cls(
            average_velocity=features.average_velocity,
            max_velocity=features.max_velocity,
            motion_smoothness=features.motion_smoothness,
            average_finger_spread=features.average_finger_spread,
            average_wrist_movement=features.average_wrist_movement,
            dominant_hand=features.dominant_hand,
        )


@dataclass(frozen=True)
class SignaturePattern:
    """An enrolled signing pattern."""
    pattern_id: str
    sign_type: str
    features: PatternFeatures
    captured_at: str  # ISO-8601


@dataclass
class BiometricProfile:
    """Per-user biometric profile. Owned by the profile store."""
    user_id: str
    enrollment_date: str
    dominant_hand: Handedness
    signature_patterns: List[SignaturePattern] = field(default_factory=list)
    preferred_signs: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProfileInfo(_DictMixin):
    """Public view of a profile. Carries no biometric features."""
    user_id: str
    enrollment_date: str
    enrolled_patterns: int
    dominant_hand: Handedness
    last_pattern_date: Optional[str]


@dataclass(frozen=True)
class EnrollmentResult(_DictMixin):
    pattern_id: str
    quality_score: float
    enrolled_patterns: int


@dataclass(frozen=True)
class VerificationResult(_DictMixin):
    verified: bool
    match_score: float
    quality_score: float
    confidence: MatchConfidence
    matched_pattern_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Gesture analysis
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FingerPositions:
    thumb_extended: bool
    index_extended: bool
    middle_extended: bool
    ring_extended: bool
    pinky_extended: bool

    def as_tuple(self) -> Tuple[bool, bool, bool, bool, bool]:
        return (self.thumb_extended, self.index_extended, self.middle_extended,
                self.ring_extended, self.pinky_extended)


@dataclass(frozen=True)
class KeyframeAnalysis:
    frame_index: int
    timestamp: int
    finger_positions: FingerPositions
    hand_orientation: HandOrientation
    movement_direction: Optional[MovementDirection] = None


@dataclass(frozen=True)
class BoundingBox:
    min_x: float
    max_x: float
    min_y: float
    max_y: float


@dataclass(frozen=True)
class GesturePath:
    bounding_box: BoundingBox
    total_distance: float
    path_shape: PathShape


@dataclass(frozen=True)
class GestureAnalysisResult(_DictMixin):
    keyframes: Tuple[KeyframeAnalysis, ...]
    gesture_path: GesturePath
    sign_duration: float
    complexity: float
    handedness: Handedness
    confidence: float
    suggested_gesture: Optional[str]


@dataclass(frozen=True)
class VerificationChallenge(_DictMixin):
    """A gesture the patient is asked to perform before it expires."""
    challenge_id: str
    gesture_type: str
    instructions: str
    expires_at: int  # ms

    def is_expired(self, now_ms: int) -> bool:
        return now_ms > self.expires_at


# ---------------------------------------------------------------------------
# Telehealth sessions
# ---------------------------------------------------------------------------

@dataclass
class TelehealthSession(_DictMixin):
    """One consultation. Mutated only by the session state machine."""
    session_id: str
    patient_id: str
    provider_id: str
    session_type: SessionType
    created_at: str
    created_at_ms: int
    verification_status: VerificationStatus = "pending"


@dataclass(frozen=True)
class SessionInitResult(_DictMixin):
    session_id: str
    requires_enrollment: bool
    challenge: VerificationChallenge
    session: TelehealthSession
    message: str


@dataclass(frozen=True)
class SessionEnrollmentResult(_DictMixin):
    enrollment: EnrollmentResult
    gesture_analysis: GestureAnalysisResult
    message: str


@dataclass(frozen=True)
class SessionVerificationResult(_DictMixin):
    verification: VerificationResult
    verification_status: VerificationStatus
    gesture_analysis: GestureAnalysisResult
    message: str


@dataclass(frozen=True)
class SessionStatus(_DictMixin):
    session: TelehealthSession
    patient_enrolled: bool
    has_pending_challenge: bool
    challenge_expired: bool


@dataclass(frozen=True)
class DataDeletionResult(_DictMixin):
    biometrics_deleted: bool
    sessions_removed: int
    message: str


@dataclass(frozen=True)
class SessionStats(_DictMixin):
    total_active_sessions: int
    pending_verifications: int
    verified_sessions: int
    failed_verifications: int
    pending_challenges: int


# ---------------------------------------------------------------------------
# Storage protocols
# ---------------------------------------------------------------------------

@runtime_checkable
class ProfileStoreProto(Protocol):
    """Keyed container for biometric profiles."""

    def get(self, user_id: str) -> Optional[BiometricProfile]:
        ...

    def put(self, profile: BiometricProfile) -> None:
        ...

    def delete(self, user_id: str) -> bool:
        ...

    def lock(self, user_id: str) -> Any:
        """Return a context manager serializing work on one user."""
        ...


@runtime_checkable
class SessionStoreProto(Protocol):
    """Keyed container for sessions and their pending challenges."""

    def get_session(self, session_id: str) -> Optional[TelehealthSession]:
        ...

    def put_session(self, session: TelehealthSession) -> None:
        ...

    def delete_session(self, session_id: str) -> bool:
        ...

    def get_challenge(self, session_id: str) -> Optional[VerificationChallenge]:
        ...

    def put_challenge(self, session_id: str, challenge: VerificationChallenge) -> None:
        ...

    def delete_challenge(self, session_id: str) -> bool:
        ...

    def sessions_for_patient(self, patient_id: str) -> List[str]:
        ...

    def all_sessions(self) -> List[TelehealthSession]:
        ...

    def challenge_count(self) -> int:
        ...

    def lock(self, session_id: str) -> Any:
        ...
