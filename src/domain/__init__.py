"""
Domain layer - Pure business logic with zero framework imports.

This package contains the registration saga and the login flows of the
identity service. It defines its own port interfaces for infrastructure
abstraction, ensuring true hexagonal architecture decoupling.
"""

from .authentication import AuthenticationService
from .exceptions import (
    DownstreamRegistrationFailed,
    EmailExists,
    FatalError,
    IdentityError,
    InvalidCredentials,
    InvalidOrExpiredCode,
    InvalidToken,
    ValidationFailed,
)
from .models import CodeKey, CodePurpose, Identity, Role
from .ports import CodeStore, CredentialStore, EmailSender, ProfileService, SagaState, TokenIssuer
from .registration import RegistrationOrchestrator

__all__ = [
    "AuthenticationService",
    "CodeKey",
    "CodePurpose",
    "CodeStore",
    "CredentialStore",
    "DownstreamRegistrationFailed",
    "EmailExists",
    "EmailSender",
    "FatalError",
    "Identity",
    "IdentityError",
    "InvalidCredentials",
    "InvalidOrExpiredCode",
    "InvalidToken",
    "ProfileService",
    "RegistrationOrchestrator",
    "Role",
    "SagaState",
    "TokenIssuer",
    "ValidationFailed",
]
