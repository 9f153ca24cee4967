"""Email adapters - One-time-code delivery."""

from .console import ConsoleEmailSender
from .mailgun import MailgunEmailSender

__all__ = ["ConsoleEmailSender", "MailgunEmailSender"]
