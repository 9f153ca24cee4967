"""
Shared fixtures for integration tests.

Requires PostgreSQL and Redis at DATABASE_URL / REDIS_URL. Tests are
skipped (not failed) when either is unreachable.
"""

from collections.abc import Generator

import pytest
import redis
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.cache import RedisCodeStore
from src.adapters.repository import PostgresCredentialStore, run_migrations
from src.config.settings import get_settings

TEST_KEY_PATTERN = "otp:*:*@it.example.com"


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for integration tests."""
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=False)
    try:
        pool.open(wait=True, timeout=3)
    except PoolTimeout:
        pool.close()
        pytest.skip(f"PostgreSQL unreachable at {settings.database_url}")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture(scope="session")
def redis_client() -> Generator[redis.Redis, None, None]:
    settings = get_settings()
    client = redis.Redis.from_url(
        settings.redis_url, decode_responses=True, socket_timeout=2, socket_connect_timeout=2
    )
    try:
        client.ping()
    except redis.ConnectionError:
        client.close()
        pytest.skip(f"Redis unreachable at {settings.redis_url}")
    yield client
    client.close()


@pytest.fixture
def pg_store(pool: ConnectionPool) -> Generator[PostgresCredentialStore, None, None]:
    """Credential store on a clean identities table."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM identities")
    yield PostgresCredentialStore(pool)


@pytest.fixture
def redis_store(redis_client: redis.Redis) -> Generator[RedisCodeStore, None, None]:
    """Code store with this suite's keys removed before and after."""

    def purge() -> None:
        for key in redis_client.scan_iter(TEST_KEY_PATTERN):
            redis_client.delete(key)

    purge()
    yield RedisCodeStore(redis_client)
    purge()
