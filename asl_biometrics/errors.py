"""
Error kinds raised by the biometric core.

Every error is recoverable by the caller. The ``kind`` tag and ``status_code``
let an outer binding turn them into responses without inspecting messages.
"""
from typing import Any, Dict, Iterable, Optional, Tuple


class BiometricError(Exception):
    """Base class for all biometric core errors."""

    kind = "biometric_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.kind, "message": self.message}


class InvalidInput(BiometricError):
    """Malformed motion sequence or request argument."""

    kind = "invalid_input"
    status_code = 400

    def __init__(self, message: str, errors: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.errors: Tuple[str, ...] = tuple(errors or ())

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.errors:
            data["validation_errors"] = list(self.errors)
        return data


class InsufficientFrames(InvalidInput):
    """Too few frames to compute any frame-to-frame motion."""

    kind = "insufficient_frames"


class QualityInsufficient(BiometricError):
    """Capture quality below threshold; re-capture and retry."""

    kind = "quality_insufficient"
    status_code = 422

    def __init__(self, message: str, issues: Iterable[str], quality_score: float):
        super().__init__(message)
        self.issues: Tuple[str, ...] = tuple(issues)
        self.quality_score = quality_score

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["quality_issues"] = list(self.issues)
        data["quality_score"] = self.quality_score
        return data


class NotEnrolled(BiometricError):
    """User has no enrolled signature patterns."""

    kind = "not_enrolled"
    status_code = 404


class SessionNotFound(BiometricError):
    kind = "session_not_found"
    status_code = 404


class NoPendingChallenge(BiometricError):
    kind = "no_pending_challenge"
    status_code = 409


class ChallengeExpired(BiometricError):
    kind = "challenge_expired"
    status_code = 410
