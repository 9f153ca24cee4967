"""Token adapters - Bearer token signing and verification."""

from .jwt_issuer import JwtTokenIssuer

__all__ = ["JwtTokenIssuer"]
