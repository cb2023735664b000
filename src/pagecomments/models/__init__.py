"""SQLAlchemy models for the comment service."""

from .auth import AdminSession, LoginAttempt
from .comment import Comment
from .email_queue import EmailQueueItem
from .setting import SettingRow
from .subscription import Subscription

__all__ = [
    "AdminSession", "LoginAttempt",
    "Comment",
    "EmailQueueItem",
    "SettingRow",
    "Subscription",
]
