"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from typing import Any

from pydantic import BaseModel, EmailStr, Field

from src.domain.models import Role

CODE_FIELD = Field(
    ...,
    min_length=6,
    max_length=6,
    pattern=r"^\d{6}$",
    description="6-digit one-time code",
)


class RegisterRequest(BaseModel):
    """Request model for registration (email claim)."""

    email: EmailStr
    password: str | None = Field(
        None,
        max_length=72,
        description="Password; required for end-user, omitted for partner",
    )
    role: Role = Role.END_USER
    profile: dict[str, Any] = Field(default_factory=dict, description="Role-specific profile fields")


class EmailRequest(BaseModel):
    """Request model for endpoints that only take an email."""

    email: EmailStr


class AckResponse(BaseModel):
    """Response model for a (possibly) sent one-time code."""

    message: str
    email: str
    expires_in_seconds: int


class VerifyRequest(BaseModel):
    """Request model for consuming a one-time code."""

    email: EmailStr
    code: str = CODE_FIELD


class TokenResponse(BaseModel):
    """Response model for an issued subject token."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    subject_id: str
    role: Role


class LoginRequest(BaseModel):
    """Request model for password login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class PasswordResetRequest(BaseModel):
    """Request model for setting a new password with a reset code."""

    email: EmailStr
    code: str = CODE_FIELD
    new_password: str = Field(..., max_length=72)


class MessageResponse(BaseModel):
    message: str


class ScopedTokenRequest(BaseModel):
    """Request model for a purpose-scoped token."""

    purpose: str = Field(..., min_length=1, max_length=64)
    role: Role


class ScopedTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    purpose: str
    role: Role


class IntrospectRequest(BaseModel):
    token: str = Field(..., min_length=1)


class ClaimsResponse(BaseModel):
    """Verified token claims."""

    sub: str | None = None
    email: str | None = None
    role: Role
    typ: str
    purpose: str | None = None
    iat: int
    exp: int


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
    code: str
