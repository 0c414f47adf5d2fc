"""
Telehealth session state machine.

A session starts ``pending`` with a challenge attached. A successful
verification moves it to ``verified`` (terminal) and consumes the challenge;
a failed one moves it to ``failed`` and leaves the challenge live for a retry.
Challenge expiry is checked lazily when a verification arrives.
"""
import dataclasses
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Optional

from .config import Cfg
from .errors import ChallengeExpired, InvalidInput, NoPendingChallenge, SessionNotFound
from .gestures import GestureAnalyzer
from .matching import IdentityMatcher
from .schemas import parse_motion_sequence
from .stores import SessionStore
from .types import (
    SESSION_TYPES,
    Clock,
    DataDeletionResult,
    SessionEnrollmentResult,
    SessionInitResult,
    SessionStats,
    SessionStatus,
    SessionStoreProto,
    SessionVerificationResult,
    TelehealthSession,
    VerificationChallenge,
    VerificationStatus,
    now_ms,
)

logger = logging.getLogger(__name__)

TELEHEALTH_SIGN_TYPE = "telehealth_verification"


class TelehealthVerifier:
    """
    Orchestrates enrollment and verification inside telehealth sessions.
    """

    def __init__(self, cfg: Optional[Cfg] = None,
                 matcher: Optional[IdentityMatcher] = None,
                 analyzer: Optional[GestureAnalyzer] = None,
                 store: Optional[SessionStoreProto] = None,
                 clock: Clock = now_ms):
        """Initialize the state machine and its collaborators."""
        self.cfg = cfg or Cfg()
        self.clock = clock
        self.matcher = matcher or IdentityMatcher(self.cfg)
        self.analyzer = analyzer or GestureAnalyzer(self.cfg, clock=clock)
        self.store = store if store is not None else SessionStore()

        self._sweep_lock = threading.Lock()
        self._last_sweep_ms = clock()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_session(self, session_id: str) -> TelehealthSession:
        session = self.store.get_session(session_id)
        if session is None:
            raise SessionNotFound(f"Session {session_id} not found or expired")
        return session

    def _set_status(self, session: TelehealthSession,
                    status: VerificationStatus) -> TelehealthSession:
        # verified is terminal
        if session.verification_status == "verified":
            status = "verified"
        updated = dataclasses.replace(session, verification_status=status)
        self.store.put_session(updated)
        return updated

    def _maybe_sweep(self) -> None:
        now = self.clock()
        with self._sweep_lock:
            if now - self._last_sweep_ms < self.cfg.session.sweep_interval_ms:
                return
            self._last_sweep_ms = now
        self.sweep_stale_sessions(now)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def initialize_session(self, patient_id: str, provider_id: str,
                           session_type: str = "consultation") -> SessionInitResult:
        """
        Create a pending session with a fresh verification challenge.

        Args:
            patient_id: Patient to be verified
            provider_id: Provider running the consultation
            session_type: One of SESSION_TYPES

        Returns:
            SessionInitResult, including whether the patient must enroll first
        """
        if not patient_id or not provider_id:
            raise InvalidInput("patientId and providerId are required")
        if session_type not in SESSION_TYPES:
            raise InvalidInput(
                f"Unknown session type {session_type!r}",
                [f"sessionType must be one of {', '.join(SESSION_TYPES)}"],
            )

        self._maybe_sweep()

        created_ms = self.clock()
        session = TelehealthSession(
            session_id=str(uuid.uuid4()),
            patient_id=patient_id,
            provider_id=provider_id,
            session_type=session_type,
            created_at=datetime.fromtimestamp(created_ms / 1000, tz=timezone.utc).isoformat(),
            created_at_ms=created_ms,
        )
        challenge = self.analyzer.generate_challenge()

        with self.store.lock(session.session_id):
            self.store.put_session(session)
            self.store.put_challenge(session.session_id, challenge)

        requires_enrollment = not self.matcher.has_enrolled_patterns(patient_id)
        logger.info(f"Initialized {session_type} session {session.session_id} for patient {patient_id}")

        return SessionInitResult(
            session_id=session.session_id,
            requires_enrollment=requires_enrollment,
            challenge=challenge,
            session=dataclasses.replace(session),
            message=("Please enroll your ASL signature before verification"
                     if requires_enrollment else "Please perform the verification gesture"),
        )

    def enroll_in_session(self, session_id: str, sequence) -> SessionEnrollmentResult:
        """Enroll the session's patient. Session status is left untouched."""
        self._require_session(session_id)
        validated = parse_motion_sequence(sequence)

        # erasure deletes sessions under their locks before the profile
        with self.store.lock(session_id):
            session = self._require_session(session_id)
            enrollment = self.matcher.enroll(session.patient_id, validated, TELEHEALTH_SIGN_TYPE)
        analysis = self.analyzer.analyze(validated)

        return SessionEnrollmentResult(
            enrollment=enrollment,
            gesture_analysis=analysis,
            message="Biometric enrollment successful. You can now verify your identity.",
        )

    def verify_in_session(self, session_id: str, sequence) -> SessionVerificationResult:
        """
        Verify the session's patient against the pending challenge.

        Raises:
            SessionNotFound: unknown session
            NoPendingChallenge: no challenge attached
            ChallengeExpired: challenge TTL lapsed; the stale challenge is removed
            NotEnrolled, InvalidInput, QualityInsufficient: from the matcher,
                leaving session and challenge unchanged
        """
        self._require_session(session_id)
        with self.store.lock(session_id):
            session = self._require_session(session_id)

            challenge = self.store.get_challenge(session_id)
            if challenge is None:
                raise NoPendingChallenge("No pending verification challenge")

            if challenge.is_expired(self.clock()):
                self.store.delete_challenge(session_id)
                logger.warning(f"Challenge {challenge.challenge_id} for session {session_id} expired")
                raise ChallengeExpired("Verification challenge expired. Please request a new one.")

            validated = parse_motion_sequence(sequence)
            verification = self.matcher.verify(session.patient_id, validated)
            analysis = self.analyzer.analyze(validated)

            session = self._set_status(session, "verified" if verification.verified else "failed")
            if verification.verified:
                # challenges are single-use
                self.store.delete_challenge(session_id)

        logger.info(f"Session {session_id} verification status: {session.verification_status}")
        return SessionVerificationResult(
            verification=verification,
            verification_status=session.verification_status,
            gesture_analysis=analysis,
            message=("Identity verified successfully" if verification.verified
                     else "Verification failed. Please try again."),
        )

    def refresh_challenge(self, session_id: str) -> VerificationChallenge:
        """Replace the session's challenge with a new one."""
        self._require_session(session_id)
        with self.store.lock(session_id):
            self._require_session(session_id)
            challenge = self.analyzer.generate_challenge()
            self.store.put_challenge(session_id, challenge)
        return challenge

    def get_status(self, session_id: str) -> SessionStatus:
        session = self._require_session(session_id)
        challenge = self.store.get_challenge(session_id)
        return SessionStatus(
            session=dataclasses.replace(session),
            patient_enrolled=self.matcher.has_enrolled_patterns(session.patient_id),
            has_pending_challenge=challenge is not None,
            challenge_expired=challenge.is_expired(self.clock()) if challenge else False,
        )

    def end_session(self, session_id: str) -> bool:
        """Remove a session and its challenge. Safe to call twice."""
        if self.store.get_session(session_id) is None:
            return False
        with self.store.lock(session_id):
            ended = self.store.delete_session(session_id)
        if ended:
            logger.info(f"Ended session {session_id}")
        return ended

    def delete_patient_data(self, patient_id: str) -> DataDeletionResult:
        """Erase a patient's biometrics and every session referencing them."""
        removed = 0
        for session_id in self.store.sessions_for_patient(patient_id):
            with self.store.lock(session_id):
                if self.store.delete_session(session_id):
                    removed += 1

        biometrics_deleted = self.matcher.delete_profile(patient_id)

        logger.info(f"Erased data for patient {patient_id}: profile={biometrics_deleted}, sessions={removed}")
        return DataDeletionResult(
            biometrics_deleted=biometrics_deleted,
            sessions_removed=removed,
            message="All patient biometric data has been deleted",
        )

    def get_stats(self) -> SessionStats:
        counts = {"pending": 0, "verified": 0, "failed": 0}
        sessions = self.store.all_sessions()
        for session in sessions:
            if session.verification_status in counts:
                counts[session.verification_status] += 1
        return SessionStats(
            total_active_sessions=len(sessions),
            pending_verifications=counts["pending"],
            verified_sessions=counts["verified"],
            failed_verifications=counts["failed"],
            pending_challenges=self.store.challenge_count(),
        )

    def sweep_stale_sessions(self, now: Optional[int] = None) -> int:
        """
        Remove sessions older than the configured session TTL.

        Returns:
            Number of sessions removed
        """
        now = self.clock() if now is None else now
        cutoff = now - self.cfg.session.ttl_ms

        removed = 0
        for session in self.store.all_sessions():
            if session.created_at_ms < cutoff:
                with self.store.lock(session.session_id):
                    if self.store.delete_session(session.session_id):
                        removed += 1
        if removed:
            logger.info(f"Swept {removed} stale session(s)")
        return removed
