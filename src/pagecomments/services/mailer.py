"""Outbound mail transport.

The queue worker and the admin diagnostic action are the only callers. The
transport is a small protocol so tests can substitute an in-memory fake.
"""

from __future__ import annotations

import logging
import smtplib
import socket
from email.message import EmailMessage
from email.utils import formataddr, format_datetime
from typing import Protocol

from pagecomments.core.errors import ValidationError
from pagecomments.core.settings import settings
from pagecomments.db.time import utcnow
from pagecomments.services.notifications import sanitize_email_content
from pagecomments.utils.validators import is_valid_email

logger = logging.getLogger(__name__)

TEST_EMAIL_SUBJECT = "Test Email from Comment System"


class MailTransport(Protocol):
    """Anything that can deliver a plain-text message."""

    def send(self, to: str, subject: str, body: str, to_name: str | None = None) -> bool:
        """Deliver one message; return False (or raise) on failure."""


class SmtpMailTransport:
    """Deliver mail through the SMTP relay configured in settings."""

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        starttls: bool | None = None,
        sender: str | None = None,
    ) -> None:
        self.host = host or settings.smtp_host
        self.port = port or settings.smtp_port
        self.username = username if username is not None else settings.smtp_username
        self.password = password if password is not None else settings.smtp_password
        self.starttls = settings.smtp_starttls if starttls is None else starttls
        self.sender = sender or settings.mail_from

    def build_message(
        self, to: str, subject: str, body: str, to_name: str | None = None
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = formataddr((to_name, to)) if to_name else to
        message["Subject"] = subject
        message["Date"] = format_datetime(utcnow())
        message.set_content(body)
        return message

    def send(self, to: str, subject: str, body: str, to_name: str | None = None) -> bool:
        message = self.build_message(to, subject, body, to_name)
        with smtplib.SMTP(self.host, self.port, timeout=settings.smtp_timeout_seconds) as smtp:
            if self.starttls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password or "")
            smtp.send_message(message)
        return True


class _MailTransportSingleton:
    """Singleton wrapper for the default SMTP transport."""

    _instance: MailTransport | None = None

    @classmethod
    def get_instance(cls) -> MailTransport:
        if cls._instance is None:
            cls._instance = SmtpMailTransport()
        return cls._instance


def get_mail_transport() -> MailTransport:
    """Return the process-wide mail transport."""
    return _MailTransportSingleton.get_instance()


def build_test_email(page_url: str) -> tuple[str, str]:
    """Return (subject, body) of the admin diagnostic email."""
    body = (
        "This is a test email from your comment notification system.\n\n"
        "If you receive this, email notifications are working correctly!\n\n"
        "Test details:\n"
        f"- Page URL: {page_url}\n"
        f"- Sent at: {utcnow().strftime('%Y-%m-%d %H:%M:%S')} UTC\n"
        f"- Server: {socket.gethostname()}\n\n"
        "---\n"
        "This was a test email sent from the admin panel.\n"
    )
    return TEST_EMAIL_SUBJECT, body


def send_test_email(transport: MailTransport, to: str, page_url: str = "/") -> bool:
    """Send the diagnostic email synchronously, bypassing the queue.

    Returns True on success. Transport errors are logged and reported as
    False rather than raised.

    Raises:
        ValidationError: If ``to`` is not a valid address.
    """
    if not to or not is_valid_email(to):
        raise ValidationError(["Invalid email address"])

    subject, body = build_test_email(sanitize_email_content(page_url))
    try:
        delivered = bool(transport.send(to, subject, body))
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning("Test email to %s failed: %s", to, exc)
        return False
    if delivered:
        logger.info("Test email sent to %s", to)
    else:
        logger.warning("Test email to %s was rejected by the transport", to)
    return delivered
