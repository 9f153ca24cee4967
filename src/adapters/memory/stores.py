"""
In-memory adapters - CodeStore, CredentialStore and ProfileService.

Used for local development (STORAGE_BACKEND=memory / PROFILE_BACKEND=memory)
and by the unit and adversarial tests. Each store guards its state with a
single lock, so compound operations (match-and-delete, check-and-insert) are
atomic across request threads. The code store runs bcrypt outside its lock
and re-checks the entry before deleting it.

The code store takes an injectable monotonic clock so tests can move time
past a TTL without sleeping.
"""

import copy
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

from src.domain.codes import verify_secret
from src.domain.exceptions import DuplicateEmail, ProfileRejected
from src.domain.models import CodeKey, Identity, Role, VerifyOutcome

logger = logging.getLogger(__name__)


@dataclass
class _CodeEntry:
    code_hash: str
    payload: dict[str, Any] | None
    expires_at: float


class InMemoryCodeStore:
    """Implements CodeStore protocol with a dict and a lock."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[CodeKey, _CodeEntry] = {}
        self._lock = threading.Lock()

    def put(
        self, key: CodeKey, code_hash: str, payload: dict[str, Any] | None, ttl_seconds: int
    ) -> None:
        with self._lock:
            self._entries[key] = _CodeEntry(
                code_hash=code_hash,
                payload=copy.deepcopy(payload),
                expires_at=self._clock() + ttl_seconds,
            )

    def verify(self, key: CodeKey, candidate: str) -> VerifyOutcome:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return VerifyOutcome(ok=False)
            code_hash = entry.code_hash

        # bcrypt runs unlocked; the entry must be unchanged when we come back
        if not verify_secret(candidate, code_hash):
            return VerifyOutcome(ok=False)

        with self._lock:
            if self._live_entry(key) is not entry or entry.code_hash != code_hash:
                return VerifyOutcome(ok=False)
            del self._entries[key]
            return VerifyOutcome(ok=True, payload=entry.payload)

    def reissue(self, key: CodeKey, code_hash: str, ttl_seconds: int) -> bool:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return False
            entry.code_hash = code_hash
            entry.expires_at = self._clock() + ttl_seconds
            return True

    def clear(self, key: CodeKey) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def __contains__(self, key: CodeKey) -> bool:
        with self._lock:
            return self._live_entry(key) is not None

    def dump(self) -> list[dict[str, Any]]:
        """Snapshot of live entries (for inspection in tests)."""
        with self._lock:
            return [
                {"key": key.cache_key, "code_hash": entry.code_hash, "payload": copy.deepcopy(entry.payload)}
                for key in list(self._entries)
                if (entry := self._live_entry(key)) is not None
            ]

    def _live_entry(self, key: CodeKey) -> _CodeEntry | None:
        # Caller holds the lock
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry


class InMemoryCredentialStore:
    """Implements CredentialStore protocol with dicts and a lock."""

    def __init__(self) -> None:
        self._by_id: dict[str, Identity] = {}
        self._id_by_email: dict[str, str] = {}
        self._lock = threading.Lock()

    def create(self, identity: Identity) -> Identity:
        with self._lock:
            if identity.email in self._id_by_email:
                raise DuplicateEmail(identity.email)
            now = datetime.now(timezone.utc)
            stored = replace(identity, created_at=now, updated_at=now)
            self._by_id[stored.subject_id] = stored
            self._id_by_email[stored.email] = stored.subject_id
            logger.info("Identity %s created (%s)", stored.subject_id, stored.role.value)
            return replace(stored)

    def find_by_email(self, email: str) -> Identity | None:
        with self._lock:
            subject_id = self._id_by_email.get(email)
            if subject_id is None:
                return None
            return replace(self._by_id[subject_id])

    def find_by_id(self, subject_id: str) -> Identity | None:
        with self._lock:
            identity = self._by_id.get(subject_id)
            return replace(identity) if identity is not None else None

    def delete(self, subject_id: str) -> None:
        with self._lock:
            identity = self._by_id.pop(subject_id, None)
            if identity is not None:
                self._id_by_email.pop(identity.email, None)

    def update_password_hash(self, subject_id: str, password_hash: str) -> bool:
        with self._lock:
            identity = self._by_id.get(subject_id)
            if identity is None or identity.role is Role.PARTNER:
                return False
            self._by_id[subject_id] = replace(
                identity, password_hash=password_hash, updated_at=datetime.now(timezone.utc)
            )
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_id)


class InMemoryProfileService:
    """Implements ProfileService protocol by keeping profiles in a dict."""

    def __init__(self, role: Role) -> None:
        self.role = role
        self.profiles: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def create_profile(self, subject_id: str, email: str, profile: dict[str, Any]) -> None:
        with self._lock:
            if subject_id in self.profiles:
                raise ProfileRejected(f"Profile {subject_id} already exists", status_code=409)
            self.profiles[subject_id] = {"subject_id": subject_id, "email": email, **profile}
        logger.info("Profile %s created (%s)", subject_id, self.role.value)
