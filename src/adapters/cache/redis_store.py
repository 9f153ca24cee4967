"""
Redis cache adapter - Implements CodeStore protocol.

Each (email, purpose) pair maps to one Redis string holding a JSON document:

    {"code_hash": "<bcrypt>", "payload": {...} | null}

Keeping the hash and the payload in one value means they share a single
Redis TTL: they cannot expire independently, and a reissued code can never
be checked against a payload from an earlier registration.

Atomic match-and-delete:
-----------------------
verify() runs an optimistic WATCH / MULTI / EXEC transaction. The key is
watched, read, compared with bcrypt, then deleted inside MULTI. If another
client consumed or rewrote the key in between, EXEC raises WatchError and
the attempt reports ok=False ("already consumed"). Of several concurrent
callers presenting the correct code, exactly one EXEC succeeds.
"""

import json
import logging
from typing import Any

from redis import Redis
from redis.exceptions import WatchError

from src.domain.codes import verify_secret
from src.domain.models import CodeKey, VerifyOutcome

logger = logging.getLogger(__name__)


class RedisCodeStore:
    """
    Implements CodeStore protocol via redis-py.

    Uses structural subtyping - no explicit inheritance from Protocol.
    The client is created and closed by the application lifespan.
    """

    def __init__(self, client: Redis) -> None:
        """
        Initialize store with a Redis client.

        Args:
            client: redis.Redis created with decode_responses=True
        """
        self._client = client

    def put(
        self, key: CodeKey, code_hash: str, payload: dict[str, Any] | None, ttl_seconds: int
    ) -> None:
        entry = json.dumps({"code_hash": code_hash, "payload": payload})
        self._client.set(key.cache_key, entry, ex=ttl_seconds)

    def verify(self, key: CodeKey, candidate: str) -> VerifyOutcome:
        with self._client.pipeline() as pipe:
            try:
                pipe.watch(key.cache_key)
                raw = pipe.get(key.cache_key)
                if raw is None:
                    pipe.unwatch()
                    return VerifyOutcome(ok=False)

                entry = json.loads(raw)
                if not verify_secret(candidate, entry.get("code_hash")):
                    pipe.unwatch()
                    return VerifyOutcome(ok=False)

                pipe.multi()
                pipe.delete(key.cache_key)
                pipe.execute()
            except WatchError:
                logger.info("Code for %s consumed concurrently", key.cache_key)
                return VerifyOutcome(ok=False)

        return VerifyOutcome(ok=True, payload=entry.get("payload"))

    def reissue(self, key: CodeKey, code_hash: str, ttl_seconds: int) -> bool:
        with self._client.pipeline() as pipe:
            try:
                pipe.watch(key.cache_key)
                raw = pipe.get(key.cache_key)
                if raw is None:
                    pipe.unwatch()
                    return False

                entry = json.loads(raw)
                entry["code_hash"] = code_hash

                pipe.multi()
                pipe.set(key.cache_key, json.dumps(entry), ex=ttl_seconds)
                pipe.execute()
            except WatchError:
                # Consumed or overwritten meanwhile; the caller may resend again
                return False
        return True

    def clear(self, key: CodeKey) -> None:
        self._client.delete(key.cache_key)
