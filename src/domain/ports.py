"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from enum import Enum
from typing import Any, Protocol

from .models import CodeKey, CodePurpose, Identity, Role, VerifyOutcome


class SagaState(str, Enum):
    """
    Registration saga states.

    Transitions:
    - INITIATED -> CODE_ISSUED (register)
    - CODE_ISSUED -> VERIFIED -> COMMITTING (correct code submitted)
    - CODE_ISSUED -> EXPIRED (code mismatch, consumed, or TTL elapsed)
    - CODE_ISSUED -> ABANDONED (registration aborted before verification)
    - COMMITTING -> COMMITTED (identity and profile created)
    - COMMITTING -> COMPENSATING_ROLLBACK -> ROLLED_BACK (profile creation failed)

    Terminal States: COMMITTED, ROLLED_BACK, EXPIRED, ABANDONED
    """

    INITIATED = "INITIATED"
    CODE_ISSUED = "CODE_ISSUED"
    VERIFIED = "VERIFIED"
    COMMITTING = "COMMITTING"
    COMMITTED = "COMMITTED"
    COMPENSATING_ROLLBACK = "COMPENSATING_ROLLBACK"
    ROLLED_BACK = "ROLLED_BACK"
    EXPIRED = "EXPIRED"
    ABANDONED = "ABANDONED"


class CodeStore(Protocol):
    """Port interface for the volatile one-time-code cache."""

    def put(
        self, key: CodeKey, code_hash: str, payload: dict[str, Any] | None, ttl_seconds: int
    ) -> None:
        """
        Store a code hash and its payload under a single expiry.

        Overwrites any existing entry for the key.
        """
        ...

    def verify(self, key: CodeKey, candidate: str) -> VerifyOutcome:
        """
        Check a candidate code and consume the entry on match.

        Match-and-delete is atomic: of several concurrent callers presenting
        the correct code, exactly one observes ok=True.

        Returns:
            VerifyOutcome(ok=True, payload) on match,
            VerifyOutcome(ok=False, payload=None) on mismatch, miss, or expiry.
            A mismatch leaves the entry intact.
        """
        ...

    def reissue(self, key: CodeKey, code_hash: str, ttl_seconds: int) -> bool:
        """
        Replace the code hash of a live entry and restart its TTL.

        Returns:
            True if a live entry was updated, False if none exists
        """
        ...

    def clear(self, key: CodeKey) -> None:
        """Delete the entry for key, if any."""
        ...


class CredentialStore(Protocol):
    """Port interface for the durable identity table."""

    def create(self, identity: Identity) -> Identity:
        """
        Persist a new identity.

        Raises:
            DuplicateEmail: If the email is already bound to an identity
        """
        ...

    def find_by_email(self, email: str) -> Identity | None:
        ...

    def find_by_id(self, subject_id: str) -> Identity | None:
        ...

    def delete(self, subject_id: str) -> None:
        """Delete an identity. Deleting a missing id is not an error."""
        ...

    def update_password_hash(self, subject_id: str, password_hash: str) -> bool:
        """
        Replace the stored password hash.

        Returns:
            True if the identity existed and was updated
        """
        ...


class EmailSender(Protocol):
    """Port interface for one-time-code delivery."""

    def send_code(self, email: str, code: str, purpose: CodePurpose) -> None:
        """
        Deliver a plaintext code out of band.

        Args:
            email: Recipient email address
            code: 6-digit one-time code
            purpose: What the code authorizes (shapes the message)

        Raises:
            Exception: Any delivery failure; callers treat dispatch as
                fire-and-forget and only log it.
        """
        ...


class ProfileService(Protocol):
    """Port interface for a role's downstream profile store."""

    def create_profile(self, subject_id: str, email: str, profile: dict[str, Any]) -> None:
        """
        Create the role-specific profile for a committed identity.

        Raises:
            ProfileRejected: Downstream refused the profile (non-transient)
            ProfileServiceUnavailable: Retries exhausted on transient failures
        """
        ...


class TokenIssuer(Protocol):
    """Port interface for signing and verifying bearer tokens."""

    def issue_subject_token(
        self, subject_id: str, email: str, role: Role, ttl_seconds: int | None = None
    ) -> str:
        ...

    def issue_scoped_token(self, purpose: str, role: Role, ttl_seconds: int | None = None) -> str:
        ...

    def verify(self, token: str) -> dict[str, Any]:
        ...

    def verify_subject(self, token: str) -> dict[str, Any]:
        ...

    def verify_scoped(self, token: str, purpose: str, role: Role) -> dict[str, Any]:
        ...
