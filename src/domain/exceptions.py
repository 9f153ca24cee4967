"""
Domain exceptions - Semantic error types for registration and login.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Every caller-facing error carries a stable ``code`` for client-side branching.
"""


class IdentityError(Exception):
    """Base class for identity domain errors."""

    code = "identity_error"


class ValidationFailed(IdentityError):
    """Malformed registration input or weak password."""

    code = "validation_failed"

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class EmailExists(IdentityError):
    """Email is already bound to a committed identity."""

    code = "email_exists"


class InvalidOrExpiredCode(IdentityError):
    """Code mismatch, already consumed, or past its TTL."""

    code = "invalid_or_expired_code"


class DownstreamRegistrationFailed(IdentityError):
    """Profile creation failed and the identity was rolled back."""

    code = "downstream_registration_failed"


class InvalidCredentials(IdentityError):
    """Unknown email or wrong password (deliberately indistinguishable)."""

    code = "invalid_credentials"


class InvalidToken(IdentityError):
    """Token signature, shape, or claim set is not acceptable."""

    code = "invalid_token"


class ExpiredToken(InvalidToken):
    """Token is past its ``exp`` claim."""

    code = "token_expired"


class FatalError(IdentityError):
    """Unrecoverable misconfiguration or resource failure."""

    code = "internal_error"


class ConfigurationError(FatalError):
    """Signing key or other startup configuration is unusable."""

    pass


class CodeGenerationError(FatalError):
    """The cryptographic randomness source failed."""

    pass


class DuplicateEmail(Exception):
    """Raised by a credential store when the email uniqueness constraint fires."""

    pass


class ProfileServiceError(Exception):
    """Base class for downstream profile service failures."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProfileRejected(ProfileServiceError):
    """Downstream rejected the profile (4xx); retrying will not help."""

    pass


class ProfileServiceUnavailable(ProfileServiceError):
    """Transport error or 5xx from downstream; retryable."""

    pass
