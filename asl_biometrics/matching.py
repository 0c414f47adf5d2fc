"""
Identity matching against enrolled ASL signature patterns.
"""
import dataclasses
import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple

from .config import Cfg
from .errors import NotEnrolled, QualityInsufficient
from .features import extract_motion_features, validate_motion_quality
from .schemas import parse_motion_sequence
from .stores import ProfileStore
from .types import (
    BiometricProfile,
    EnrollmentResult,
    MatchConfidence,
    MotionFeatures,
    PatternFeatures,
    ProfileInfo,
    ProfileStoreProto,
    QualityResult,
    SignaturePattern,
    VerificationResult,
)

logger = logging.getLogger(__name__)

# feature -> (tolerance, weight); weights sum to 1
MATCH_FEATURES = {
    "average_velocity": (0.5, 0.25),
    "max_velocity": (0.5, 0.15),
    "motion_smoothness": (0.3, 0.25),
    "average_finger_spread": (0.2, 0.20),
    "average_wrist_movement": (0.3, 0.15),
}

HIGH_CONFIDENCE_SCORE = 0.9
MEDIUM_CONFIDENCE_SCORE = 0.8

ISSUE_LOW_OVERALL_QUALITY = "Overall capture quality too low for enrollment"

DEFAULT_SIGN_TYPE = "verification_sign"


def calculate_similarity(a: float, b: float, tolerance: float) -> float:
    """
    Similarity of two feature values in [0, 1].

    The relative difference is scaled by the tolerance, so values that differ
    by more than ``tolerance`` of the larger magnitude score 0.
    """
    if a == 0 and b == 0:
        return 1.0
    max_val = max(abs(a), abs(b))
    if max_val == 0:
        return 1.0
    diff = abs(a - b) / max_val
    return max(0.0, 1.0 - diff / tolerance)


def calculate_match_score(attempt: MotionFeatures, enrolled: PatternFeatures) -> float:
    """
    Weighted similarity between an attempt and one enrolled pattern.

    Args:
        attempt: Features of the verification attempt
        enrolled: Stored pattern features

    Returns:
        Score in [0, 1]; 0 whenever the dominant hand differs
    """
    if attempt.dominant_hand != enrolled.dominant_hand:
        return 0.0

    return math.fsum(
        weight * calculate_similarity(getattr(attempt, name), getattr(enrolled, name), tolerance)
        for name, (tolerance, weight) in MATCH_FEATURES.items()
    )


def calculate_confidence(match_score: float) -> MatchConfidence:
    if match_score >= HIGH_CONFIDENCE_SCORE:
        return "high"
    if match_score >= MEDIUM_CONFIDENCE_SCORE:
        return "medium"
    return "low"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class IdentityMatcher:
    """
    Enrolls users and verifies attempts against their signature patterns.

    The matcher is the only writer of its profile store; callers never see
    stored features.
    """

    def __init__(self, cfg: Optional[Cfg] = None, store: Optional[ProfileStoreProto] = None):
        """Initialize matcher with configuration and an optional store."""
        self.cfg = cfg or Cfg()
        self.store = store if store is not None else ProfileStore()

    @property
    def verification_threshold(self) -> float:
        return self.cfg.matching.verification_threshold

    def _assess(self, sequence) -> Tuple[MotionFeatures, QualityResult]:
        validated = parse_motion_sequence(sequence)
        features = extract_motion_features(validated)
        return features, validate_motion_quality(features)

    def enroll(self, user_id: str, sequence, sign_type: str = DEFAULT_SIGN_TYPE) -> EnrollmentResult:
        """
        Enroll a new signature pattern for a user.

        Args:
            user_id: Owner of the profile
            sequence: MotionSequence or its wire mapping
            sign_type: Label of the performed sign

        Returns:
            EnrollmentResult with the new pattern id

        Raises:
            InvalidInput: malformed sequence
            QualityInsufficient: capture below quality thresholds
        """
        features, quality = self._assess(sequence)

        issues = list(quality.issues)
        if quality.is_valid and quality.quality_score < self.cfg.matching.min_enrollment_quality:
            issues.append(ISSUE_LOW_OVERALL_QUALITY)
        if issues:
            logger.warning(f"Enrollment rejected for user {user_id}: {len(issues)} quality issue(s)")
            raise QualityInsufficient(
                "Motion quality insufficient for enrollment", issues, quality.quality_score
            )

        pattern = SignaturePattern(
            pattern_id=str(uuid.uuid4()),
            sign_type=sign_type,
            features=PatternFeatures.from_motion(features),
            captured_at=_utc_now(),
        )

        with self.store.lock(user_id):
            profile = self.store.get(user_id)
            if profile is None:
                profile = BiometricProfile(
                    user_id=user_id,
                    enrollment_date=pattern.captured_at,
                    dominant_hand=features.dominant_hand,
                )
            patterns = list(profile.signature_patterns) + [pattern]
            cap = self.cfg.matching.max_patterns_per_profile
            if len(patterns) > cap:
                # oldest patterns go first
                patterns = patterns[-cap:]
            self.store.put(dataclasses.replace(profile, signature_patterns=patterns))

        logger.info(f"Enrolled pattern for user {user_id} ({len(patterns)} total)")
        return EnrollmentResult(
            pattern_id=pattern.pattern_id,
            quality_score=quality.quality_score,
            enrolled_patterns=len(patterns),
        )

    def verify(self, user_id: str, sequence) -> VerificationResult:
        """
        Verify an attempt against every pattern enrolled for the user.

        Raises:
            NotEnrolled: no profile or no patterns for the user
            InvalidInput: malformed sequence
            QualityInsufficient: attempt below quality thresholds
        """
        # profiles are replaced, never mutated in place
        profile = self.store.get(user_id)
        patterns = tuple(profile.signature_patterns) if profile else ()

        if not patterns:
            raise NotEnrolled(f"User {user_id} is not enrolled")

        features, quality = self._assess(sequence)
        if not quality.is_valid:
            logger.warning(f"Verification attempt for user {user_id} rejected on quality")
            raise QualityInsufficient(
                "Motion quality insufficient for verification", quality.issues, quality.quality_score
            )

        best_score = 0.0
        best_pattern_id: Optional[str] = None
        for pattern in patterns:
            score = calculate_match_score(features, pattern.features)
            if score > best_score:
                best_score = score
                best_pattern_id = pattern.pattern_id

        verified = best_score >= self.verification_threshold
        logger.info(f"Verification for user {user_id}: {'match' if verified else 'no match'}")

        return VerificationResult(
            verified=verified,
            match_score=best_score,
            quality_score=quality.quality_score,
            confidence=calculate_confidence(best_score) if verified else "low",
            # never reveal which pattern came closest on a failed attempt
            matched_pattern_id=best_pattern_id if verified else None,
        )

    def get_profile(self, user_id: str) -> Optional[ProfileInfo]:
        """Public summary of a profile, without any biometric features."""
        profile = self.store.get(user_id)
        if profile is None:
            return None
        patterns = profile.signature_patterns
        return ProfileInfo(
            user_id=profile.user_id,
            enrollment_date=profile.enrollment_date,
            enrolled_patterns=len(patterns),
            dominant_hand=profile.dominant_hand,
            last_pattern_date=patterns[-1].captured_at if patterns else None,
        )

    def has_enrolled_patterns(self, user_id: str) -> bool:
        profile = self.store.get(user_id)
        return profile is not None and len(profile.signature_patterns) > 0

    def delete_profile(self, user_id: str) -> bool:
        """Hard-delete a profile. Returns whether anything was removed."""
        with self.store.lock(user_id):
            deleted = self.store.delete(user_id)
        if deleted:
            logger.info(f"Deleted biometric profile for user {user_id}")
        return deleted
