"""
HTTP profile service adapter - Implements ProfileService protocol.

Creates role-specific profiles in a downstream service:

    POST {base_url}/profiles  {"subject_id": ..., "email": ..., **profile}

    201/2xx -> created
    4xx     -> ProfileRejected (not retried)
    5xx     -> ProfileServiceUnavailable (retried)
    request error (transport, timeout, decoding) -> ProfileServiceUnavailable (retried)

Retries are bounded by max_attempts with exponential backoff. When attempts
run out the last ProfileServiceUnavailable is re-raised to the saga, which
compensates.

A 409 Conflict on a *retry* means an earlier attempt reached the downstream
even though its response was lost; the profile exists for this subject_id,
so it counts as success.
"""

import logging
from typing import Any

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.domain.exceptions import ProfileRejected, ProfileServiceUnavailable
from src.domain.models import Role

logger = logging.getLogger(__name__)


class HttpProfileService:
    """Implements ProfileService protocol over a shared httpx.Client."""

    def __init__(
        self,
        client: httpx.Client,
        base_url: str,
        role: Role,
        timeout_seconds: float = 5.0,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
    ) -> None:
        self._client = client
        self._url = f"{base_url.rstrip('/')}/profiles"
        self.role = role
        self._timeout = timeout_seconds
        self._max_attempts = max_attempts
        self._backoff = backoff_seconds

    def create_profile(self, subject_id: str, email: str, profile: dict[str, Any]) -> None:
        """
        Create the profile, retrying transient failures.

        Raises:
            ProfileRejected: Downstream returned a non-retryable 4xx
            ProfileServiceUnavailable: Every attempt failed transiently
        """
        body = {"subject_id": subject_id, "email": email, **profile}

        retrying = Retrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._backoff, max=10),
            retry=retry_if_exception_type(ProfileServiceUnavailable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                self._post(body, attempt.retry_state.attempt_number)

    def _post(self, body: dict[str, Any], attempt_number: int) -> None:
        subject_id = body["subject_id"]
        try:
            response = self._client.post(self._url, json=body, timeout=self._timeout)
        except httpx.RequestError as e:
            raise ProfileServiceUnavailable(
                f"{self.role.value} profile service unreachable: {type(e).__name__}"
            ) from e

        status = response.status_code
        if 200 <= status < 300:
            logger.info("Profile %s created downstream (attempt %d)", subject_id, attempt_number)
            return
        if status == 409 and attempt_number > 1:
            logger.warning("Profile %s already exists after retry; treating as created", subject_id)
            return
        if status >= 500:
            raise ProfileServiceUnavailable(
                f"{self.role.value} profile service returned {status}", status_code=status
            )
        raise ProfileRejected(
            f"{self.role.value} profile service rejected profile: {_error_detail(response)}",
            status_code=status,
        )


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or body.get("message") or body)
    return str(body)
