"""Profile service adapters - Downstream profile creation."""

from .http_client import HttpProfileService

__all__ = ["HttpProfileService"]
