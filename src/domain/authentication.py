"""
Authentication service - login variants, password reset, scoped tokens.

These flows work against identities that already exist, so they reuse the
code store and token issuer without the commit/compensate machinery of the
registration saga.

Account enumeration:
- Password login fails with one generic InvalidCredentials whether the email
  is unknown, has no password, or the password is wrong. A dummy bcrypt
  comparison keeps the timing identical.
- Code requests (login, password reset) always return the same
  acknowledgement; a code is only issued when the identity qualifies.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from .codes import SecureCodeGenerator, dummy_hash, hash_secret, verify_secret
from .exceptions import InvalidCredentials, InvalidOrExpiredCode, ValidationFailed
from .models import CodeAck, CodeKey, CodePurpose, Identity, IssuedToken, Role, ScopedToken
from .ports import CodeStore, CredentialStore, EmailSender, TokenIssuer
from .registration import normalize_email, parse_role
from .validation import validate_password

logger = logging.getLogger(__name__)

DOCUMENT_UPLOAD = "document-upload"

# (purpose, role) pairs for which scoped tokens may be minted
SCOPED_GRANTS: frozenset[tuple[str, Role]] = frozenset({(DOCUMENT_UPLOAD, Role.PARTNER)})


@dataclass
class AuthenticationService:
    """Domain service for credential verification and token issuance."""

    credential_store: CredentialStore
    code_store: CodeStore
    email_sender: EmailSender
    token_issuer: TokenIssuer
    code_generator: SecureCodeGenerator = field(default_factory=SecureCodeGenerator)
    code_ttl_seconds: int = 300
    password_cost: int = 10
    code_hash_cost: int = 10
    subject_token_ttl_seconds: int = 3600
    scoped_token_ttl_seconds: int = 900

    def __post_init__(self) -> None:
        # Build the dummy hash now rather than on the first unknown-email login
        dummy_hash(self.password_cost)

    def login_with_password(self, email: str, password: str) -> IssuedToken:
        """
        Authenticate with email and password.

        Raises:
            InvalidCredentials: For every failure, without saying which
        """
        normalized_email = normalize_email(email)
        identity = self.credential_store.find_by_email(normalized_email)

        # Always run bcrypt, even with no identity or no stored hash
        stored_hash = identity.password_hash if identity is not None else None
        password_valid = verify_secret(password, stored_hash, dummy_rounds=self.password_cost)

        if identity is None or not password_valid:
            logger.info("Password login rejected for %s", normalized_email)
            raise InvalidCredentials()

        return self._issue(identity)

    def request_login_code(self, email: str) -> CodeAck:
        """
        Send a login code to a partner identity.

        Returns the same acknowledgement whether or not a code was sent.
        """
        normalized_email = normalize_email(email)
        identity = self.credential_store.find_by_email(normalized_email)

        if identity is not None and identity.role is Role.PARTNER:
            self._issue_code(identity, CodePurpose.LOGIN)
        else:
            logger.info("Login code not issued for %s: no partner identity", normalized_email)

        return CodeAck(email=normalized_email, expires_in_seconds=self.code_ttl_seconds)

    def verify_login_code(self, email: str, code: str) -> IssuedToken:
        """
        Consume a login code and issue a subject token.

        Raises:
            InvalidOrExpiredCode: Code mismatch, consumed, expired, or identity gone
        """
        normalized_email = normalize_email(email)
        identity = self._consume_code(normalized_email, code, CodePurpose.LOGIN)
        return self._issue(identity)

    def request_password_reset(self, email: str) -> CodeAck:
        """
        Send a password reset code to an identity that has a password.

        Returns the same acknowledgement whether or not a code was sent.
        """
        normalized_email = normalize_email(email)
        identity = self.credential_store.find_by_email(normalized_email)

        if identity is not None and identity.password_hash:
            self._issue_code(identity, CodePurpose.PASSWORD_RESET)
        else:
            logger.info("Reset code not issued for %s: no password identity", normalized_email)

        return CodeAck(email=normalized_email, expires_in_seconds=self.code_ttl_seconds)

    def reset_password(self, email: str, code: str, new_password: str) -> None:
        """
        Set a new password using a reset code.

        The password is checked before the code is consumed, so a weak
        password does not burn the code.

        Raises:
            ValidationFailed: New password is too weak
            InvalidOrExpiredCode: Code mismatch, consumed, expired, or identity gone
        """
        validate_password(new_password)
        normalized_email = normalize_email(email)
        identity = self._consume_code(normalized_email, code, CodePurpose.PASSWORD_RESET)

        updated = self.credential_store.update_password_hash(
            identity.subject_id, hash_secret(new_password, self.password_cost)
        )
        if not updated:
            raise InvalidOrExpiredCode(normalized_email)
        logger.info("Password reset for %s", identity.subject_id)

    def issue_scoped_token(self, purpose: str, role: Role | str) -> ScopedToken:
        """
        Mint a purpose-scoped token (e.g. a partner's document upload).

        Raises:
            ValidationFailed: The (purpose, role) pair is not grantable
        """
        role = parse_role(role)
        if (purpose, role) not in SCOPED_GRANTS:
            raise ValidationFailed(
                f"Scoped tokens for '{purpose}' are not available to role '{role.value}'",
                field="purpose",
            )
        token = self.token_issuer.issue_scoped_token(purpose, role, self.scoped_token_ttl_seconds)
        return ScopedToken(
            access_token=token,
            purpose=purpose,
            role=role,
            expires_in_seconds=self.scoped_token_ttl_seconds,
        )

    def authenticate(self, token: str) -> dict[str, Any]:
        """Verify a subject token and return its claims."""
        return self.token_issuer.verify_subject(token)

    def _issue_code(self, identity: Identity, purpose: CodePurpose) -> None:
        code = self.code_generator.generate()
        self.code_store.put(
            CodeKey(identity.email, purpose),
            hash_secret(code, self.code_hash_cost),
            {"subject_id": identity.subject_id},
            self.code_ttl_seconds,
        )
        logger.info("%s code issued for %s", purpose.value, identity.subject_id)
        try:
            self.email_sender.send_code(identity.email, code, purpose)
        except Exception as e:
            logger.warning("Code dispatch failed for %s (%s): %s", identity.email, purpose.value, type(e).__name__)

    def _consume_code(self, email: str, code: str, purpose: CodePurpose) -> Identity:
        outcome = self.code_store.verify(CodeKey(email, purpose), code)
        if not outcome.ok or outcome.payload is None:
            raise InvalidOrExpiredCode(email)

        identity = self.credential_store.find_by_id(outcome.payload.get("subject_id", ""))
        if identity is None or identity.email != email:
            logger.warning("%s code for %s matched a missing identity", purpose.value, email)
            raise InvalidOrExpiredCode(email)
        return identity

    def _issue(self, identity: Identity) -> IssuedToken:
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
