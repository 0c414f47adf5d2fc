"""
In-memory stores for biometric profiles and telehealth sessions.

Each store owns a keyed container and hands out one lock per key, so work
on a single user or session is serialized while different keys never
contend. A database-backed store only has to honour the same protocol.
"""
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from .types import BiometricProfile, TelehealthSession, VerificationChallenge


class KeyedLocks:
    """Lazily created re-entrant lock per key."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}

    def get(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: str, keep: Optional[Callable[[], bool]] = None) -> Iterator[threading.RLock]:
        """
        Hold the lock for a key.

        When `keep` returns False on release, the lock is dropped from the
        map, so lookups of missing keys leave nothing behind. Threads that were
        queued on a dropped lock retry with the current one.
        """
        while True:
            lock = self.get(key)
            with lock:
                with self._guard:
                    current = self._locks.get(key) is lock
                if not current:
                    continue
                try:
                    yield lock
                finally:
                    if keep is not None and not keep():
                        self.discard(key)
                return

    def discard(self, key: str) -> None:
        with self._guard:
            self._locks.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class ProfileStore:
    """Biometric profiles keyed by user id."""

    def __init__(self):
        self._profiles: Dict[str, BiometricProfile] = {}
        self._mutex = threading.Lock()
        self._locks = KeyedLocks()

    def lock(self, user_id: str):
        return self._locks.hold(user_id, keep=lambda: self.get(user_id) is not None)

    def get(self, user_id: str) -> Optional[BiometricProfile]:
        with self._mutex:
            return self._profiles.get(user_id)

    def put(self, profile: BiometricProfile) -> None:
        with self._mutex:
            self._profiles[profile.user_id] = profile

    def delete(self, user_id: str) -> bool:
        with self._mutex:
            return self._profiles.pop(user_id, None) is not None

    def __len__(self) -> int:
        with self._mutex:
            return len(self._profiles)


class SessionStore:
    """Telehealth sessions and the challenge pending on each of them."""

    def __init__(self):
        self._sessions: Dict[str, TelehealthSession] = {}
        self._challenges: Dict[str, VerificationChallenge] = {}
        self._mutex = threading.Lock()
        self._locks = KeyedLocks()

    def lock(self, session_id: str):
        return self._locks.hold(session_id, keep=lambda: self.get_session(session_id) is not None)

    def get_session(self, session_id: str) -> Optional[TelehealthSession]:
        with self._mutex:
            return self._sessions.get(session_id)

    def put_session(self, session: TelehealthSession) -> None:
        with self._mutex:
            self._sessions[session.session_id] = session

    def delete_session(self, session_id: str) -> bool:
        """Remove a session together with its challenge."""
        with self._mutex:
            self._challenges.pop(session_id, None)
            return self._sessions.pop(session_id, None) is not None

    def get_challenge(self, session_id: str) -> Optional[VerificationChallenge]:
        with self._mutex:
            return self._challenges.get(session_id)

    def put_challenge(self, session_id: str, challenge: VerificationChallenge) -> None:
        with self._mutex:
            self._challenges[session_id] = challenge

    def delete_challenge(self, session_id: str) -> bool:
        with self._mutex:
            return self._challenges.pop(session_id, None) is not None

    def sessions_for_patient(self, patient_id: str) -> List[str]:
        with self._mutex:
            return [sid for sid, s in self._sessions.items() if s.patient_id == patient_id]

    def all_sessions(self) -> List[TelehealthSession]:
        with self._mutex:
            return list(self._sessions.values())

    def challenge_count(self) -> int:
        with self._mutex:
            return len(self._challenges)

    def __len__(self) -> int:
        with self._mutex:
            return len(self._sessions)
