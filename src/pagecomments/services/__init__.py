"""Business logic services for the comment system."""

from .email_queue import EmailQueueWorker
from .mailer import MailTransport, SmtpMailTransport
from .moderation import ModerationService

__all__ = [
    "EmailQueueWorker",
    "MailTransport",
    "ModerationService",
    "SmtpMailTransport",
]
