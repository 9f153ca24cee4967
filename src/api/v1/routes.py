"""
API v1 routes.

Defines REST endpoints for registration, login, and token operations.

Handlers are plain ``def`` so FastAPI runs them in its threadpool: a saga
that has started committing finishes even if the client disconnects.
Domain errors propagate to the exception handlers in src.api.main.
"""

from typing import Any

from fastapi import APIRouter, Depends, status

from src.api.dependencies import (
    get_authentication_service,
    get_current_claims,
    get_registration_orchestrator,
    get_token_issuer,
)
from src.api.models import (
    AckResponse,
    ClaimsResponse,
    EmailRequest,
    ErrorResponse,
    IntrospectRequest,
    LoginRequest,
    MessageResponse,
    PasswordResetRequest,
    RegisterRequest,
    ScopedTokenRequest,
    ScopedTokenResponse,
    TokenResponse,
    VerifyRequest,
)
from src.domain.authentication import AuthenticationService
from src.domain.models import CodeAck, IssuedToken
from src.domain.ports import TokenIssuer
from src.domain.registration import RegistrationOrchestrator

router = APIRouter(tags=["v1"])

CODE_SENT = "If the account qualifies, a code has been sent"

_validation_error = {422: {"model": ErrorResponse, "description": "Validation error"}}
_code_error = {400: {"model": ErrorResponse, "description": "Invalid or expired code"}}
_token_error = {401: {"model": ErrorResponse, "description": "Invalid or expired token"}}


def _ack(ack: CodeAck, message: str) -> AckResponse:
    return AckResponse(message=message, email=ack.email, expires_in_seconds=ack.expires_in_seconds)


def _token(issued: IssuedToken) -> TokenResponse:
    return TokenResponse(
        access_token=issued.access_token,
        expires_in=issued.expires_in_seconds,
        subject_id=issued.subject_id,
        role=issued.role,
    )


@router.post(
    "/register",
    response_model=AckResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"},
        **_validation_error,
    },
    summary="Begin registration",
    description="Claim an email for a role. A 6-digit verification code is sent "
    "to the address; nothing is committed until it is verified.",
)
def register(
    request_data: RegisterRequest,
    orchestrator: RegistrationOrchestrator = Depends(get_registration_orchestrator),
) -> AckResponse:
    ack = orchestrator.register(
        request_data.email, request_data.password, request_data.role, request_data.profile
    )
    return _ack(ack, "Verification code sent")


@router.post(
    "/register/resend",
    response_model=AckResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={**_code_error, **_validation_error},
    summary="Resend registration code",
)
def resend_registration_code(
    request_data: EmailRequest,
    orchestrator: RegistrationOrchestrator = Depends(get_registration_orchestrator),
) -> AckResponse:
    """Replace the pending code with a fresh one. The previous code stops working."""
    ack = orchestrator.resend_registration_code(request_data.email)
    return _ack(ack, "Verification code sent")


@router.post(
    "/register/verify",
    response_model=TokenResponse,
    responses={
        **_code_error,
        409: {"model": ErrorResponse, "description": "Email already registered"},
        502: {"model": ErrorResponse, "description": "Profile creation failed; rolled back"},
        **_validation_error,
    },
    summary="Verify code and commit registration",
)
def verify_registration(
    request_data: VerifyRequest,
    orchestrator: RegistrationOrchestrator = Depends(get_registration_orchestrator),
) -> TokenResponse:
    """
    Verify the registration code and commit the identity.

    - **email**: Email the code was sent to
    - **code**: 6-digit code

    On success the identity and its profile exist and a subject token is returned.
    """
    return _token(orchestrator.verify_and_commit(request_data.email, request_data.code))


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}, **_validation_error},
    summary="Log in with email and password",
)
def login(
    request_data: LoginRequest,
    service: AuthenticationService = Depends(get_authentication_service),
) -> TokenResponse:
    return _token(service.login_with_password(request_data.email, request_data.password))


@router.post(
    "/login/code",
    response_model=AckResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses=_validation_error,
    summary="Request a login code",
    description="Partners log in with a one-time code. The response is the same "
    "whether or not the email belongs to a partner.",
)
def request_login_code(
    request_data: EmailRequest,
    service: AuthenticationService = Depends(get_authentication_service),
) -> AckResponse:
    return _ack(service.request_login_code(request_data.email), CODE_SENT)


@router.post(
    "/login/code/verify",
    response_model=TokenResponse,
    responses={**_code_error, **_validation_error},
    summary="Log in with a one-time code",
)
def verify_login_code(
    request_data: VerifyRequest,
    service: AuthenticationService = Depends(get_authentication_service),
) -> TokenResponse:
    return _token(service.verify_login_code(request_data.email, request_data.code))


@router.post(
    "/password/reset-code",
    response_model=AckResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses=_validation_error,
    summary="Request a password reset code",
)
def request_password_reset(
    request_data: EmailRequest,
    service: AuthenticationService = Depends(get_authentication_service),
) -> AckResponse:
    return _ack(service.request_password_reset(request_data.email), CODE_SENT)


@router.post(
    "/password/reset",
    response_model=MessageResponse,
    responses={**_code_error, **_validation_error},
    summary="Set a new password with a reset code",
)
def reset_password(
    request_data: PasswordResetRequest,
    service: AuthenticationService = Depends(get_authentication_service),
) -> MessageResponse:
    service.reset_password(request_data.email, request_data.code, request_data.new_password)
    return MessageResponse(message="Password updated")


@router.post(
    "/tokens/scoped",
    response_model=ScopedTokenResponse,
    responses=_validation_error,
    summary="Issue a purpose-scoped token",
    description="Short-lived token for one operation (e.g. a partner's document "
    "upload). It grants no account access.",
)
def issue_scoped_token(
    request_data: ScopedTokenRequest,
    service: AuthenticationService = Depends(get_authentication_service),
) -> ScopedTokenResponse:
    scoped = service.issue_scoped_token(request_data.purpose, request_data.role)
    return ScopedTokenResponse(
        access_token=scoped.access_token,
        expires_in=scoped.expires_in_seconds,
        purpose=scoped.purpose,
        role=scoped.role,
    )


@router.post(
    "/tokens/introspect",
    response_model=ClaimsResponse,
    responses=_token_error,
    summary="Verify a token and return its claims",
)
def introspect_token(
    request_data: IntrospectRequest,
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> dict[str, Any]:
    return token_issuer.verify(request_data.token)


@router.get(
    "/me",
    response_model=ClaimsResponse,
    responses=_token_error,
    summary="Claims of the current subject token",
)
def read_current_subject(claims: dict[str, Any] = Depends(get_current_claims)) -> dict[str, Any]:
    return claims
