"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging one-time codes to stdout for development.
This logger is the delivery channel itself; nothing else in the service
ever logs a plaintext code.
"""

import logging

from src.domain.models import CodePurpose

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For development only - prints codes to stdout.
    """

    def send_code(self, email: str, code: str, purpose: CodePurpose) -> None:
        """
        Log a one-time code to console (simulates email delivery).

        Args:
            email: Recipient email address (normalized by domain layer)
            code: 6-digit one-time code
            purpose: What the code authorizes
        """
        logger.info("[ONE-TIME CODE] Purpose: %s Email: %s Code: %s", purpose.value, email, code)
