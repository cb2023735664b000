"""Admission control for new comments.

Decides whether a submission is accepted and with which moderation status:
honeypot, field validation, rate limiting, spam scoring, parent lookup and the
trusted-commenter shortcut, in that order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pagecomments.core.errors import (
    Forbidden,
    InvalidSubmission,
    ParentNotFound,
    RateLimited,
    ValidationError,
)
from pagecomments.core.settings import settings
from pagecomments.db.time import utcnow
from pagecomments.models import Comment
from pagecomments.models.comment import STATUS_APPROVED, STATUS_PENDING, STATUS_SPAM
from pagecomments.schemas.comment import CommentCreate
from pagecomments.services.notifications import enqueue_notifications
from pagecomments.services.site_config import SiteConfig
from pagecomments.services.spam import SpamScore, score_spam
from pagecomments.services.subscriptions import subscribe
from pagecomments.utils.validators import is_valid_email, sanitize_url

logger = logging.getLogger(__name__)

IP_RATE_MESSAGE = "Too many comments from your IP address. Please try again later."
EMAIL_RATE_MESSAGE = "Too many comments in a short time. Please wait a few minutes."


@dataclass(frozen=True)
class CleanSubmission:
    """A submission that passed field validation, with values normalized."""

    page_url: str
    parent_id: int | None
    author_name: str
    author_email: str
    author_url: str | None
    content: str
    subscribe: bool


@dataclass
class AdmissionResult:
    status: str
    submission: CleanSubmission
    trusted: bool = False
    spam: SpamScore = field(default_factory=SpamScore)
    reason: str | None = None


@dataclass
class SubmitOutcome:
    comment: Comment
    trusted: bool
    message: str


def validate_submission(payload: CommentCreate, config: SiteConfig) -> CleanSubmission:
    """Return a normalized submission or raise with every violated rule."""
    page_url = payload.page_url.strip()
    author_name = payload.author_name.strip()
    author_email = payload.author_email.strip()
    content = payload.content.strip()

    errors: list[str] = []
    if not page_url:
        errors.append("URL is required")
    if not author_name:
        errors.append("Name is required")
    if not author_email or not is_valid_email(author_email):
        errors.append("Valid email is required")
    if not content:
        errors.append("Comment content is required")
    if len(content) > config.max_comment_length:
        errors.append("Comment is too long")
    if errors:
        raise ValidationError(errors)

    return CleanSubmission(
        page_url=page_url,
        parent_id=payload.parent_id,
        author_name=author_name,
        author_email=author_email,
        author_url=sanitize_url(payload.author_url),
        content=content,
        subscribe=bool(payload.subscribe),
    )


def _count_since(db: Session, column, value: str, since: datetime) -> int:
    return db.scalar(
        select(func.count(Comment.id)).where(column == value, Comment.created_at > since)
    ) or 0


def check_rate_limit(
    db: Session,
    client_ip: str | None,
    author_email: str,
    *,
    now: datetime | None = None,
) -> None:
    """Raise :class:`RateLimited` when the IP or email has posted too often.

    Windows are global across pages and read from the comment history.
    """
    now = now or utcnow()

    if client_ip:
        ip_since = now - timedelta(seconds=settings.comment_ip_window_seconds)
        if _count_since(db, Comment.ip_address, client_ip, ip_since) >= settings.comment_ip_limit:
            logger.warning("Rate limited comment from IP %s", client_ip)
            raise RateLimited(IP_RATE_MESSAGE)

    email_since = now - timedelta(seconds=settings.comment_email_window_seconds)
    email_count = _count_since(db, Comment.author_email, author_email, email_since)
    if email_count >= settings.comment_email_limit:
        logger.warning("Rate limited comment from email %s", author_email)
        raise RateLimited(EMAIL_RATE_MESSAGE)


def is_trusted_commenter(db: Session, author_email: str) -> bool:
    """An address with at least one approved comment is trusted."""
    count = db.scalar(
        select(func.count(Comment.id)).where(
            Comment.author_email == author_email,
            Comment.status == STATUS_APPROVED,
        )
    )
    return bool(count)


def resolve_status(*, is_spam: bool, trusted: bool, require_moderation: bool) -> str:
    """Apply precedence: spam, then trusted, then moderation policy."""
    if is_spam:
        return STATUS_SPAM
    if trusted:
        return STATUS_APPROVED
    if require_moderation:
        return STATUS_PENDING
    return STATUS_APPROVED


def evaluate_submission(
    db: Session,
    payload: CommentCreate,
    client_ip: str | None,
    *,
    is_admin: bool,
    config: SiteConfig,
    now: datetime | None = None,
) -> AdmissionResult:
    """Run every admission check without writing anything."""
    if payload.website:
        raise InvalidSubmission()

    if not config.allow_guest_comments and not is_admin:
        raise Forbidden("Guest comments are disabled")

    submission = validate_submission(payload, config)

    if not is_admin:
        check_rate_limit(db, client_ip, submission.author_email, now=now)

    spam = score_spam(submission.content, submission.author_name, submission.author_email)

    if submission.parent_id is not None and db.get(Comment, submission.parent_id) is None:
        raise ParentNotFound()

    trusted = is_trusted_commenter(db, submission.author_email)
    status = resolve_status(
        is_spam=spam.is_spam,
        trusted=trusted,
        require_moderation=config.require_moderation,
    )
    reason = ", ".join(spam.reasons) if spam.is_spam else None
    return AdmissionResult(
        status=status, submission=submission, trusted=trusted, spam=spam, reason=reason
    )


def _outcome_message(status: str, trusted: bool) -> str:
    if status == STATUS_SPAM:
        return "Comment marked as spam"
    if status == STATUS_PENDING:
        return "Comment submitted for moderation"
    if trusted:
        return "Comment posted successfully (auto-approved)"
    return "Comment posted successfully"


def submit_comment(
    db: Session,
    payload: CommentCreate,
    client_ip: str | None,
    user_agent: str | None,
    *,
    is_admin: bool,
    config: SiteConfig,
    now: datetime | None = None,
) -> SubmitOutcome:
    """Admit and store a new comment, then subscribe and notify.

    The comment row is committed first. Subscription and notification writes
    follow in their own transactions, so a crash in between loses at most the
    notification.
    """
    result = evaluate_submission(
        db, payload, client_ip, is_admin=is_admin, config=config, now=now
    )
    submission = result.submission
    timestamp = now or utcnow()

    comment = Comment(
        page_url=submission.page_url,
        parent_id=submission.parent_id,
        author_name=submission.author_name,
        author_email=submission.author_email,
        author_url=submission.author_url,
        content=submission.content,
        status=result.status,
        ip_address=client_ip,
        user_agent=user_agent,
        created_at=timestamp,
        updated_at=timestamp,
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)
    logger.info(
        "Stored comment %s on %s with status %s (spam score %d)",
        comment.id,
        comment.page_url,
        comment.status,
        result.spam.score,
    )

    if result.status != STATUS_SPAM:
        if submission.subscribe:
            subscribe(db, submission.page_url, submission.author_email)
        try:
            enqueue_notifications(db, comment, submission.parent_id, config)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to queue notifications for comment %s", comment.id)

    return SubmitOutcome(
        comment=comment,
        trusted=result.trusted,
        message=_outcome_message(result.status, result.trusted),
    )
