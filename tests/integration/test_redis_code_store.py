"""
Integration tests for RedisCodeStore.

Tests TTL, single use, and atomic match-and-delete against a real Redis.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
import redis

from src.adapters.cache import RedisCodeStore
from src.domain.codes import hash_secret
from src.domain.models import CodeKey, CodePurpose

pytestmark = pytest.mark.integration

KEY = CodeKey("alice@it.example.com", CodePurpose.REGISTER)


@pytest.fixture(scope="module")
def code_hash() -> str:
    return hash_secret("123456", rounds=4)


class TestRedisCodeStore:
    def test_put_sets_ttl(self, redis_store: RedisCodeStore, redis_client: redis.Redis, code_hash: str) -> None:
        redis_store.put(KEY, code_hash, {"v": 1}, 300)

        assert 0 < redis_client.ttl(KEY.cache_key) <= 300

    def test_stored_value_has_no_plaintext_code(
        self, redis_store: RedisCodeStore, redis_client: redis.Redis, code_hash: str
    ) -> None:
        redis_store.put(KEY, code_hash, {"v": 1}, 300)

        assert "123456" not in redis_client.get(KEY.cache_key)

    def test_verify_consumes_on_match(self, redis_store: RedisCodeStore, code_hash: str) -> None:
        redis_store.put(KEY, code_hash, {"identity": {"email": "alice@it.example.com"}}, 300)

        outcome = redis_store.verify(KEY, "123456")

        assert outcome.ok is True
        assert outcome.payload == {"identity": {"email": "alice@it.example.com"}}
        assert redis_store.verify(KEY, "123456").ok is False

    def test_mismatch_keeps_entry(self, redis_store: RedisCodeStore, redis_client, code_hash: str) -> None:
        redis_store.put(KEY, code_hash, None, 300)

        assert redis_store.verify(KEY, "654321").ok is False
        assert redis_client.exists(KEY.cache_key) == 1

    def test_reissue_keeps_payload(self, redis_store: RedisCodeStore, code_hash: str) -> None:
        redis_store.put(KEY, hash_secret("999999", rounds=4), {"v": 1}, 300)

        assert redis_store.reissue(KEY, code_hash, 300) is True
        assert redis_store.verify(KEY, "999999").ok is False
        assert redis_store.verify(KEY, "123456").payload == {"v": 1}

    def test_reissue_missing_returns_false(self, redis_store: RedisCodeStore, code_hash: str) -> None:
        assert redis_store.reissue(KEY, code_hash, 300) is False

    def test_clear(self, redis_store: RedisCodeStore, redis_client, code_hash: str) -> None:
        redis_store.put(KEY, code_hash, None, 300)
        redis_store.clear(KEY)
        redis_store.clear(KEY)

        assert redis_client.exists(KEY.cache_key) == 0

    @pytest.mark.adversarial
    def test_concurrent_verify_exactly_one_wins(self, redis_store: RedisCodeStore, code_hash: str) -> None:
        redis_store.put(KEY, code_hash, {"v": 1}, 300)
        barrier = threading.Barrier(8)

        def attempt(_: int) -> bool:
            barrier.wait()
            return redis_store.verify(KEY, "123456").ok

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(attempt, range(8)))

        assert results.count(True) == 1
