"""Cache adapters - One-time-code store implementations."""

from .redis_store import RedisCodeStore

__all__ = ["RedisCodeStore"]
