"""
Registration orchestrator - the register / verify-and-commit saga.

This module contains the core business logic for registration: a caller
claims an email, proves control of it with a one-time code, and ends up with
one committed identity plus one role-specific profile in a downstream
service.

Saga (create-after-verify with compensation)
============================================

    register:
        INITIATED -> CODE_ISSUED
            pending identity + profile drafts are stored with the code hash

    verify_and_commit:
        CODE_ISSUED -> EXPIRED
            code mismatch, already consumed, or TTL elapsed
        CODE_ISSUED -> VERIFIED -> COMMITTING
            code matched; the cache entry is consumed and never restored
        COMMITTING -> COMMITTED
            identity created, downstream profile created, token issued
        COMMITTING -> COMPENSATING_ROLLBACK -> ROLLED_BACK
            downstream failed for good; the identity is deleted again

Concurrency:
- The code store's atomic match-and-delete lets exactly one of several
  concurrent correct submissions through to COMMITTING.
- The credential store's unique email constraint catches two *different*
  codes (e.g. after a resend) both reaching the commit step.

Once COMMITTING is entered the saga runs to COMMITTED or ROLLED_BACK
regardless of what happens to the caller's connection.
"""

import logging
import secrets
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .codes import SecureCodeGenerator, hash_secret
from .exceptions import (
    ConfigurationError,
    DownstreamRegistrationFailed,
    DuplicateEmail,
    EmailExists,
    InvalidOrExpiredCode,
    ProfileServiceError,
    ValidationFailed,
)
from .models import (
    CodeAck,
    CodeKey,
    CodePurpose,
    Identity,
    IdentityDraft,
    IssuedToken,
    PendingRegistration,
    Role,
)
from .ports import (
    CodeStore,
    CredentialStore,
    EmailSender,
    ProfileService,
    SagaState,
    TokenIssuer,
)
from .validation import validate_password, validate_profile

logger = logging.getLogger(__name__)

# Orphaned identities (compensation failed) are reported here for operators.
alert_logger = logging.getLogger("gatehouse.alerts")


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()


def parse_role(role: Role | str) -> Role:
    try:
        return Role(role)
    except ValueError:
        raise ValidationFailed(f"Unknown role '{role}'", field="role") from None


def new_subject_id(role: Role) -> str:
    """Role-prefixed subject id, e.g. USR-3F9A0C21B7D4."""
    return f"{role.subject_prefix}-{secrets.token_hex(6).upper()}"


@dataclass
class RegistrationOrchestrator:
    """
    Domain service coordinating the registration saga.

    Every collaborator is injected; the orchestrator holds no connections
    of its own.
    """

    credential_store: CredentialStore
    code_store: CodeStore
    email_sender: EmailSender
    profile_services: Mapping[Role, ProfileService]
    token_issuer: TokenIssuer
    code_generator: SecureCodeGenerator = field(default_factory=SecureCodeGenerator)
    code_ttl_seconds: int = 300
    password_cost: int = 10
    code_hash_cost: int = 10
    subject_token_ttl_seconds: int = 3600

    def register(
        self,
        email: str,
        password: str | None,
        role: Role | str,
        fields: dict[str, Any] | None = None,
    ) -> CodeAck:
        """
        Begin registration: validate, store drafts under a fresh code, send it.

        Args:
            email: Email being claimed (will be normalized)
            password: Plaintext password, required for password-bearing roles
            role: Role being registered
            fields: Role-specific profile fields

        Returns:
            CodeAck with the normalized email and code lifetime

        Raises:
            EmailExists: An identity already owns this email
            ValidationFailed: Bad role, profile fields, or weak password
        """
        normalized_email = normalize_email(email)
        role = parse_role(role)

        if self.credential_store.find_by_email(normalized_email) is not None:
            raise EmailExists(normalized_email)

        profile = validate_profile(role, fields or {})
        self._profile_service_for(role)

        password_hash = None
        if role.uses_password:
            password_hash = hash_secret(validate_password(password), self.password_cost)

        pending = PendingRegistration(
            identity=IdentityDraft(email=normalized_email, role=role, password_hash=password_hash),
            profile=profile,
        )

        code = self.code_generator.generate()
        self.code_store.put(
            CodeKey(normalized_email, CodePurpose.REGISTER),
            hash_secret(code, self.code_hash_cost),
            pending.to_payload(),
            self.code_ttl_seconds,
        )
        self._transition(normalized_email, SagaState.INITIATED, SagaState.CODE_ISSUED)

        self._dispatch(normalized_email, code, CodePurpose.REGISTER)
        return CodeAck(email=normalized_email, expires_in_seconds=self.code_ttl_seconds)

    def resend_registration_code(self, email: str) -> CodeAck:
        """
        Issue a fresh code for a pending registration and restart its TTL.

        The previously sent code stops working; the stored drafts are kept.

        Raises:
            InvalidOrExpiredCode: No pending registration for this email
        """
        normalized_email = normalize_email(email)
        code = self.code_generator.generate()

        reissued = self.code_store.reissue(
            CodeKey(normalized_email, CodePurpose.REGISTER),
            hash_secret(code, self.code_hash_cost),
            self.code_ttl_seconds,
        )
        if not reissued:
            raise InvalidOrExpiredCode(normalized_email)

        logger.info("Registration code reissued for %s", normalized_email)
        self._dispatch(normalized_email, code, CodePurpose.REGISTER)
        return CodeAck(email=normalized_email, expires_in_seconds=self.code_ttl_seconds)

    def abandon_registration(self, email: str) -> None:
        """Drop a pending registration before it is verified."""
        normalized_email = normalize_email(email)
        self.code_store.clear(CodeKey(normalized_email, CodePurpose.REGISTER))
        self._transition(normalized_email, SagaState.CODE_ISSUED, SagaState.ABANDONED)

    def verify_and_commit(self, email: str, code: str) -> IssuedToken:
        """
        Verify the code, commit the identity, create the profile, issue a token.

        Args:
            email: Email being verified (will be normalized)
            code: One-time code the caller received

        Returns:
            IssuedToken for the new identity

        Raises:
            InvalidOrExpiredCode: Code mismatch, already consumed, or expired
            EmailExists: Another registration committed this email first
            DownstreamRegistrationFailed: Profile creation failed; rolled back
        """
        normalized_email = normalize_email(email)

        outcome = self.code_store.verify(CodeKey(normalized_email, CodePurpose.REGISTER), code)
        if not outcome.ok or outcome.payload is None:
            self._transition(normalized_email, SagaState.CODE_ISSUED, SagaState.EXPIRED)
            raise InvalidOrExpiredCode(normalized_email)

        pending = PendingRegistration.from_payload(outcome.payload)
        draft = pending.identity
        self._transition(normalized_email, SagaState.CODE_ISSUED, SagaState.VERIFIED)
        profile_service = self._profile_service_for(draft.role)

        self._transition(normalized_email, SagaState.VERIFIED, SagaState.COMMITTING)
        try:
            identity = self.credential_store.create(
                Identity(
                    subject_id=new_subject_id(draft.role),
                    email=normalized_email,
                    role=draft.role,
                    password_hash=draft.password_hash,
                )
            )
        except DuplicateEmail:
            logger.info("Commit lost race for %s: email already committed", normalized_email)
            raise EmailExists(normalized_email) from None

        try:
            profile_service.create_profile(identity.subject_id, identity.email, pending.profile)
        except ProfileServiceError as e:
            logger.error(
                "Profile creation failed for %s (%s, status=%s): %s",
                identity.subject_id,
                draft.role.value,
                e.status_code,
                e,
            )
            self._compensate(identity)
            raise DownstreamRegistrationFailed(normalized_email) from e
        except Exception as e:
            logger.exception("Unexpected error creating profile for %s", identity.subject_id)
            self._compensate(identity)
            raise DownstreamRegistrationFailed(normalized_email) from e

        self._transition(normalized_email, SagaState.COMMITTING, SagaState.COMMITTED)
        token = self.token_issuer.issue_subject_token(
            identity.subject_id, identity.email, identity.role, self.subject_token_ttl_seconds
        )
        return IssuedToken(
            access_token=token,
            subject_id=identity.subject_id,
            email=identity.email,
            role=identity.role,
            expires_in_seconds=self.subject_token_ttl_seconds,
        )

    def _compensate(self, identity: Identity) -> None:
        """
        Undo the identity commit after a failed profile creation.

        A failed delete leaves an orphaned identity; it is reported on the
        alert channel and not retried here.
        """
        self._transition(identity.email, SagaState.COMMITTING, SagaState.COMPENSATING_ROLLBACK)
        try:
            self.credential_store.delete(identity.subject_id)
        except Exception:
            alert_logger.critical(
                "Compensation failed: identity %s <%s> has no profile and was not deleted",
                identity.subject_id,
                identity.email,
                exc_info=True,
            )
            return
        self._transition(identity.email, SagaState.COMPENSATING_ROLLBACK, SagaState.ROLLED_BACK)

    def _profile_service_for(self, role: Role) -> ProfileService:
        try:
            return self.profile_services[role]
        except KeyError:
            raise ConfigurationError(f"No profile service configured for role {role.value}") from None

    def _dispatch(self, email: str, code: str, purpose: CodePurpose) -> None:
        # Fire-and-forget: the caller can ask for a resend
        try:
            self.email_sender.send_code(email, code, purpose)
        except Exception as e:
            logger.warning("Code dispatch failed for %s (%s): %s", email, purpose.value, type(e).__name__)

    def _transition(self, email: str, source: SagaState, target: SagaState) -> None:
        logger.info("Registration %s: %s -> %s", email, source.value, target.value)
