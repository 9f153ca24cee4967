"""
Domain models - identities, pending registrations, and code keys.

Plain dataclasses shared by the domain services and the adapters.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Identity roles. Each registrable role maps to one downstream profile store."""

    END_USER = "end-user"
    PARTNER = "partner"
    ADMINISTRATOR = "administrator"

    @property
    def uses_password(self) -> bool:
        """Partners prove control of their email with one-time codes only."""
        return self is not Role.PARTNER

    @property
    def subject_prefix(self) -> str:
        return _SUBJECT_PREFIXES[self]


_SUBJECT_PREFIXES = {
    Role.END_USER: "USR",
    Role.PARTNER: "DRV",
    Role.ADMINISTRATOR: "ADM",
}


class CodePurpose(str, Enum):
    """
    Namespace of a one-time code.

    A code issued under one purpose never validates another, because the
    purpose is part of the store key (see CodeKey).
    """

    REGISTER = "register"
    LOGIN = "login"
    PASSWORD_RESET = "password_reset"


@dataclass(frozen=True)
class CodeKey:
    """Composite (email, purpose) key of a one-time-code entry."""

    email: str
    purpose: CodePurpose

    @property
    def cache_key(self) -> str:
        return f"otp:{self.purpose.value}:{self.email}"


@dataclass
class Identity:
    """A committed identity row in the credential store."""

    subject_id: str
    email: str
    role: Role
    password_hash: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class IdentityDraft:
    """Identity fields captured at registration, before a subject id exists."""

    email: str
    role: Role
    password_hash: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"email": self.email, "role": self.role.value, "password_hash": self.password_hash}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IdentityDraft":
        return cls(
            email=data["email"],
            role=Role(data["role"]),
            password_hash=data.get("password_hash"),
        )


@dataclass
class PendingRegistration:
    """
    Identity and profile drafts stored alongside a registration code.

    Both drafts are serialized into one payload so they are written,
    expired, and consumed as a single unit.
    """

    identity: IdentityDraft
    profile: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {"identity": self.identity.to_dict(), "profile": self.profile}

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "PendingRegistration":
        return cls(
            identity=IdentityDraft.from_dict(payload["identity"]),
            profile=dict(payload.get("profile") or {}),
        )


@dataclass(frozen=True)
class VerifyOutcome:
    """Result of a code store verification attempt."""

    ok: bool
    payload: dict[str, Any] | None = None


@dataclass(frozen=True)
class CodeAck:
    """Acknowledgement that a code was (or would have been) sent. Never carries the code."""

    email: str
    expires_in_seconds: int


@dataclass(frozen=True)
class IssuedToken:
    """A signed subject token and the identity it was issued for."""

    access_token: str
    subject_id: str
    email: str
    role: Role
    expires_in_seconds: int


@dataclass(frozen=True)
class ScopedToken:
    """A signed purpose-scoped token. Grants no account access."""

    access_token: str
    purpose: str
    role: Role
    expires_in_seconds: int
