"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool
from redis import Redis

from src.adapters.cache import RedisCodeStore
from src.adapters.memory import InMemoryCodeStore, InMemoryCredentialStore, InMemoryProfileService
from src.adapters.profiles import HttpProfileService
from src.adapters.repository import PostgresCredentialStore, run_migrations
from src.adapters.smtp import ConsoleEmailSender, MailgunEmailSender
from src.adapters.tokens import JwtTokenIssuer
from src.api.v1 import router as v1_router
from src.config.settings import Settings, get_settings
from src.domain.exceptions import (
    DownstreamRegistrationFailed,
    EmailExists,
    FatalError,
    IdentityError,
    InvalidCredentials,
    InvalidOrExpiredCode,
    InvalidToken,
    ValidationFailed,
)
from src.domain.models import Role
from src.domain.ports import EmailSender, ProfileService

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Identity API v1 - Register, verify, log in, and issue tokens",
    },
]

# Most specific class first; the first isinstance match wins.
_STATUS_BY_ERROR: list[tuple[type[IdentityError], int]] = [
    (ValidationFailed, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (EmailExists, status.HTTP_409_CONFLICT),
    (InvalidOrExpiredCode, status.HTTP_400_BAD_REQUEST),
    (DownstreamRegistrationFailed, status.HTTP_502_BAD_GATEWAY),
    (InvalidCredentials, status.HTTP_401_UNAUTHORIZED),
    (InvalidToken, status.HTTP_401_UNAUTHORIZED),
]

_DETAILS = {
    EmailExists: "Email already registered",
    InvalidOrExpiredCode: "Invalid or expired code",
    DownstreamRegistrationFailed: "Registration could not be completed, please try again",
    InvalidCredentials: "Invalid credentials",
}


def _build_profile_services(settings: Settings, client: httpx.Client) -> dict[Role, ProfileService]:
    if settings.profile_backend == "memory":
        return {role: InMemoryProfileService(role) for role in (Role.END_USER, Role.PARTNER)}

    urls = {
        Role.END_USER: settings.user_profile_service_url,
        Role.PARTNER: settings.partner_profile_service_url,
    }
    return {
        role: HttpProfileService(
            client,
            base_url,
            role,
            timeout_seconds=settings.downstream_timeout_seconds,
            max_attempts=settings.downstream_max_attempts,
            backoff_seconds=settings.downstream_backoff_seconds,
        )
        for role, base_url in urls.items()
    }


def _build_email_sender(settings: Settings, client: httpx.Client) -> EmailSender:
    if settings.email_backend == "mailgun":
        return MailgunEmailSender(
            client,
            api_key=settings.mailgun_api_key,
            domain=settings.mailgun_domain,
            base_url=settings.mailgun_base_url,
            from_email=settings.mailgun_from_email,
            from_name=settings.mailgun_from_name,
            code_ttl_seconds=settings.code_ttl_seconds,
        )
    return ConsoleEmailSender()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Configures logging
    - Creates the database pool and Redis client (or in-memory stores)
    - Runs migrations on startup
    - Creates the shared HTTP client and token issuer
    - Closes every client on shutdown
    """
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger.info("Starting application (env=%s)...", settings.app_env)

    # Fails fast on an unusable signing key
    app.state.token_issuer = JwtTokenIssuer(
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        subject_ttl_seconds=settings.subject_token_ttl_seconds,
        scoped_ttl_seconds=settings.scoped_token_ttl_seconds,
    )

    closers: list[Callable[[], None]] = []
    app.state.pool = None
    app.state.redis = None

    if settings.storage_backend == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
            timeout=settings.pool_timeout_seconds,
        )
        closers.append(pool.close)

        logger.info("Running database migrations...")
        run_migrations(pool)

        redis_client = Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout_seconds,
            socket_connect_timeout=settings.redis_socket_timeout_seconds,
        )
        closers.append(redis_client.close)

        app.state.pool = pool
        app.state.redis = redis_client
        app.state.credential_store = PostgresCredentialStore(pool)
        app.state.code_store = RedisCodeStore(redis_client)
    else:
        logger.warning("Using in-memory stores; data is lost on restart")
        app.state.credential_store = InMemoryCredentialStore()
        app.state.code_store = InMemoryCodeStore()

    http_client = httpx.Client(timeout=settings.downstream_timeout_seconds)
    closers.append(http_client.close)
    app.state.profile_services = _build_profile_services(settings, http_client)
    app.state.email_sender = _build_email_sender(settings, http_client)

    logger.info("Application startup complete")

    try:
        yield
    finally:
        logger.info("Shutting down application...")
        for close in reversed(closers):
            close()
        logger.info("Clients closed")


app = FastAPI(
    title="gatehouse",
    description="Identity API - Registration saga with one-time-code verification "
    "and compensating rollback",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.exception_handler(IdentityError)
async def identity_error_handler(request: Request, exc: IdentityError) -> JSONResponse:
    """Map domain errors to {"detail", "code"} responses."""
    if isinstance(exc, FatalError):
        logger.error("Fatal error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error", "code": exc.code},
        )

    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            break
    else:
        status_code = status.HTTP_400_BAD_REQUEST

    if isinstance(exc, ValidationFailed):
        content = {"detail": str(exc), "code": exc.code, "field": exc.field}
    elif isinstance(exc, InvalidToken):
        content = {"detail": "Token expired" if exc.code == "token_expired" else "Invalid token", "code": exc.code}
    else:
        content = {"detail": _DETAILS.get(type(exc), "Request failed"), "code": exc.code}

    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Generic 500 for infrastructure failures (store, cache, pool)."""
    logger.error(
        "Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "code": FatalError.code},
    )


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with backing store validation.

    Returns 200 OK if application, database, and cache are healthy.
    Raises exception if a connection fails.
    """
    pool = getattr(request.app.state, "pool", None)
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    redis_client = getattr(request.app.state, "redis", None)
    if redis_client is not None:
        redis_client.ping()

    return {"status": "healthy"}
