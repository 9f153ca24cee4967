"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
Every adapter is created by the application lifespan and stored in
app.state; nothing here opens a connection.
"""

from collections.abc import Mapping
from typing import Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.config.settings import Settings, get_settings
from src.domain.authentication import AuthenticationService
from src.domain.models import Role
from src.domain.ports import CodeStore, CredentialStore, EmailSender, ProfileService, TokenIssuer
from src.domain.registration import RegistrationOrchestrator


def get_credential_store(request: Request) -> CredentialStore:
    return request.app.state.credential_store


def get_code_store(request: Request) -> CodeStore:
    return request.app.state.code_store


def get_email_sender(request: Request) -> EmailSender:
    return request.app.state.email_sender


def get_profile_services(request: Request) -> Mapping[Role, ProfileService]:
    return request.app.state.profile_services


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_registration_orchestrator(
    credential_store: CredentialStore = Depends(get_credential_store),
    code_store: CodeStore = Depends(get_code_store),
    email_sender: EmailSender = Depends(get_email_sender),
    profile_services: Mapping[Role, ProfileService] = Depends(get_profile_services),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
) -> RegistrationOrchestrator:
    """
    Create the registration orchestrator with injected dependencies.

    Wires together the stores, dispatcher, profile services, and issuer.
    """
    return RegistrationOrchestrator(
        credential_store=credential_store,
        code_store=code_store,
        email_sender=email_sender,
        profile_services=profile_services,
        token_issuer=token_issuer,
        code_ttl_seconds=settings.code_ttl_seconds,
        password_cost=settings.bcrypt_cost,
        code_hash_cost=settings.code_hash_cost,
        subject_token_ttl_seconds=settings.subject_token_ttl_seconds,
    )


def get_authentication_service(
    credential_store: CredentialStore = Depends(get_credential_store),
    code_store: CodeStore = Depends(get_code_store),
    email_sender: EmailSender = Depends(get_email_sender),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
) -> AuthenticationService:
    return AuthenticationService(
        credential_store=credential_store,
        code_store=code_store,
        email_sender=email_sender,
        token_issuer=token_issuer,
        code_ttl_seconds=settings.code_ttl_seconds,
        password_cost=settings.bcrypt_cost,
        code_hash_cost=settings.code_hash_cost,
        subject_token_ttl_seconds=settings.subject_token_ttl_seconds,
        scoped_token_ttl_seconds=settings.scoped_token_ttl_seconds,
    )


# Bearer security scheme for OpenAPI documentation.
# auto_error=False so a missing header becomes our own 401 InvalidToken body.
http_bearer = HTTPBearer(auto_error=False)


def get_current_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    service: AuthenticationService = Depends(get_authentication_service),
) -> dict[str, Any]:
    """
    Verify the bearer subject token and return its claims.

    Scoped tokens are rejected: they carry no subject.
    """
    token = credentials.credentials if credentials is not None else ""
    return service.authenticate(token)
