"""
JWT token issuer adapter - Implements TokenIssuer protocol.

Two token shapes share one signing key:

    subject token: {"sub", "email", "role", "typ": "subject", "iat", "exp"}
    scoped token:  {"purpose", "role", "typ": "scoped", "iat", "exp"}

A token is a subject token iff it carries "sub". verify_subject() rejects
anything without it, so a scoped token can never stand in for account
access. verify_scoped() rejects anything *with* it and checks that purpose
and role match the single operation the token was minted for.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from src.domain.exceptions import ConfigurationError, ExpiredToken, InvalidToken
from src.domain.models import Role

logger = logging.getLogger(__name__)

MIN_HMAC_KEY_BYTES = 32
SUBJECT = "subject"
SCOPED = "scoped"


class JwtTokenIssuer:
    """
    Implements TokenIssuer protocol via PyJWT.

    The signing key is read once at construction; an unusable key is a
    FatalError raised at startup rather than on the first request.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        subject_ttl_seconds: int = 3600,
        scoped_ttl_seconds: int = 900,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        if not secret_key:
            raise ConfigurationError("JWT signing key is not configured")
        if algorithm.startswith("HS") and len(secret_key.encode()) < MIN_HMAC_KEY_BYTES:
            raise ConfigurationError(f"JWT signing key must be at least {MIN_HMAC_KEY_BYTES} bytes")
        if algorithm.lower() == "none" or algorithm not in jwt.algorithms.get_default_algorithms():
            raise ConfigurationError(f"Unsupported JWT algorithm: {algorithm}")

        self._key = secret_key
        self._algorithm = algorithm
        self._subject_ttl = subject_ttl_seconds
        self._scoped_ttl = scoped_ttl_seconds
        self._now = now or (lambda: datetime.now(timezone.utc))

    def issue_subject_token(
        self, subject_id: str, email: str, role: Role, ttl_seconds: int | None = None
    ) -> str:
        claims = {"sub": subject_id, "email": email, "role": Role(role).value, "typ": SUBJECT}
        return self._encode(claims, self._subject_ttl if ttl_seconds is None else ttl_seconds)

    def issue_scoped_token(self, purpose: str, role: Role, ttl_seconds: int | None = None) -> str:
        claims = {"purpose": purpose, "role": Role(role).value, "typ": SCOPED}
        return self._encode(claims, self._scoped_ttl if ttl_seconds is None else ttl_seconds)

    def verify(self, token: str) -> dict[str, Any]:
        """
        Check signature and expiry and return the claims.

        Raises:
            ExpiredToken: Token is past its exp claim
            InvalidToken: Bad signature, malformed, or missing required claims
        """
        if not token or not isinstance(token, str):
            raise InvalidToken("empty token")
        try:
            return jwt.decode(
                token.strip(),
                self._key,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat", "typ", "role"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise ExpiredToken(str(e)) from e
        except jwt.PyJWTError as e:
            raise InvalidToken(str(e)) from e

    def verify_subject(self, token: str) -> dict[str, Any]:
        claims = self.verify(token)
        if not claims.get("sub") or claims.get("typ") != SUBJECT:
            raise InvalidToken("subject token required")
        return claims

    def verify_scoped(self, token: str, purpose: str, role: Role) -> dict[str, Any]:
        claims = self.verify(token)
        if "sub" in claims or claims.get("typ") != SCOPED:
            raise InvalidToken("scoped token required")
        if claims.get("purpose") != purpose or claims.get("role") != Role(role).value:
            raise InvalidToken("token not valid for this operation")
        return claims

    def _encode(self, claims: dict[str, Any], ttl_seconds: int) -> str:
        issued_at = self._now()
        payload = {**claims, "iat": issued_at, "exp": issued_at + timedelta(seconds=ttl_seconds)}
        return jwt.encode(payload, self._key, algorithm=self._algorithm)
