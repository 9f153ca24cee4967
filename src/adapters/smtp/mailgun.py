"""
Mailgun email sender adapter - Implements EmailSender protocol.

Sends one-time codes through the Mailgun HTTP API using a shared
httpx.Client owned by the application lifespan.
"""

import logging

import httpx

from src.domain.models import CodePurpose

logger = logging.getLogger(__name__)

_SUBJECTS = {
    CodePurpose.REGISTER: "Verify your email address",
    CodePurpose.LOGIN: "Your sign-in code",
    CodePurpose.PASSWORD_RESET: "Your password reset code",
}


class MailgunEmailSender:
    """Implements EmailSender protocol via the Mailgun messages endpoint."""

    def __init__(
        self,
        client: httpx.Client,
        api_key: str,
        domain: str,
        base_url: str = "https://api.mailgun.net",
        from_email: str = "",
        from_name: str = "Gatehouse",
        code_ttl_seconds: int = 300,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._domain = domain.strip().lower()
        self._url = f"{base_url.strip().rstrip('/')}/v3/{self._domain}/messages"
        self._from = f"{from_name} <{from_email or f'noreply@{self._domain}'}>"
        self._minutes = max(1, code_ttl_seconds // 60)

    def send_code(self, email: str, code: str, purpose: CodePurpose) -> None:
        """
        Send a one-time code by email.

        Raises:
            httpx.HTTPError: On transport failure or a non-2xx response
        """
        data = {
            "from": self._from,
            "to": email,
            "subject": _SUBJECTS[purpose],
            "text": f"Your code is {code}. It expires in {self._minutes} minutes.",
        }
        response = self._client.post(self._url, auth=("api", self._api_key), data=data)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError:
            logger.error(
                "Mailgun send failed: to=%s status=%s", email, response.status_code
            )
            raise
        logger.info("Mailgun accepted %s message for %s", purpose.value, email)
