"""
One-time codes and secret hashing.

Codes come from the ``secrets`` module (never ``random``) and are stored only
as salted bcrypt hashes. Passwords use the same one-way comparator so that
registration and login agree on how a secret is checked.
"""

import secrets
from functools import lru_cache

import bcrypt

from .exceptions import CodeGenerationError

CODE_LENGTH = 6
_DIGITS = "0123456789"
_BCRYPT_MAX_BYTES = 72


@lru_cache(maxsize=None)
def dummy_hash(rounds: int = 10) -> str:
    """Bcrypt hash at the given cost, compared against when no stored hash exists."""
    return bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(rounds)).decode()


# Pre-computed at the default cost for timing oracle prevention
DUMMY_BCRYPT_HASH = dummy_hash(10)


class SecureCodeGenerator:
    """Generates uniformly distributed fixed-length numeric codes."""

    def __init__(self, length: int = CODE_LENGTH) -> None:
        self.length = length

    def generate(self) -> str:
        """
        Generate a cryptographically secure numeric code.

        Returns a string to preserve leading zeros.

        Raises:
            CodeGenerationError: If the OS randomness source fails
        """
        try:
            return "".join(secrets.choice(_DIGITS) for _ in range(self.length))
        except OSError as e:
            raise CodeGenerationError("Randomness source unavailable") from e


def hash_secret(secret: str, rounds: int = 10) -> str:
    """Salted one-way hash of a password or one-time code (bcrypt)."""
    return bcrypt.hashpw(_secret_bytes(secret), bcrypt.gensalt(rounds=rounds)).decode()


def verify_secret(secret: str, hashed: str | None, dummy_rounds: int = 10) -> bool:
    """
    Constant-time check of a plaintext secret against a bcrypt hash.

    A missing hash is compared against a dummy hash of cost ``dummy_rounds``
    so the call takes the same time whether or not there was anything to
    compare. Pass the cost real hashes are created with.
    """
    if not hashed:
        bcrypt.checkpw(_secret_bytes(secret), dummy_hash(dummy_rounds).encode())
        return False
    try:
        return bcrypt.checkpw(_secret_bytes(secret), hashed.encode())
    except ValueError:
        # Malformed stored hash
        return False


def _secret_bytes(secret: str) -> bytes:
    # bcrypt only considers the first 72 bytes and newer releases reject longer input
    return secret.encode("utf-8")[:_BCRYPT_MAX_BYTES]
