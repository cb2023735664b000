"""Builds and queues notification emails for a newly stored comment."""

from __future__ import annotations

import logging
import re
from urllib.parse import urlencode, urlsplit

from sqlalchemy import select
from sqlalchemy.orm import Session

from pagecomments.core.settings import settings
from pagecomments.models import Comment, EmailQueueItem, Subscription
from pagecomments.models.email_queue import (
    EMAIL_TYPE_ADMIN,
    EMAIL_TYPE_PARENT_REPLY,
    EMAIL_TYPE_SUBSCRIBER,
)
from pagecomments.services.site_config import SiteConfig
from pagecomments.services.subscriptions import latest_token_for
from pagecomments.utils.validators import is_valid_email

logger = logging.getLogger(__name__)

_HEADER_BREAKS = re.compile(r"\r|\n|%0a|%0d", re.IGNORECASE)


def sanitize_email_content(value: str | None) -> str:
    """Strip CR/LF and their URL-encoded forms to block header injection."""
    return _HEADER_BREAKS.sub("", value or "")


def unsubscribe_url(token: str) -> str:
    return settings.public_url(settings.unsubscribe_path) + "?" + urlencode({"token": token})


def _page_path(page_url: str) -> str:
    return urlsplit(page_url).path or page_url


def _parent_reply_body(parent_name: str, author: str, page: str, content: str,
                       comment_id: int, token: str | None) -> str:
    lines = [
        f"Hello {parent_name},",
        "",
        f"{author} replied to your comment on {page}:",
        "",
        content,
        "",
        f"View and reply: {page}#comment-{comment_id}",
        "",
    ]
    if token:
        lines += ["---", f"To unsubscribe from notifications: {unsubscribe_url(token)}"]
    return "\n".join(lines) + "\n"


def _subscriber_body(author: str, page: str, content: str, comment_id: int, token: str) -> str:
    return "\n".join([
        "Hello,",
        "",
        f"{author} posted a new comment on {page}:",
        "",
        content,
        "",
        f"View and reply: {page}#comment-{comment_id}",
        "",
        "---",
        f"To unsubscribe from notifications for this page: {unsubscribe_url(token)}",
    ]) + "\n"


def _admin_body(author: str, page: str, content: str) -> str:
    return "\n".join([
        f"New comment from {author} on {page}:",
        "",
        content,
        "",
        f"Manage comments: {settings.public_url(settings.admin_page_path)}",
    ]) + "\n"


def _queue(db: Session, comment: Comment, recipient: str, name: str | None,
           email_type: str, subject: str, body: str) -> EmailQueueItem | None:
    if not is_valid_email(recipient):
        logger.warning("Skipping %s notification to malformed address %r", email_type, recipient)
        return None
    item = EmailQueueItem(
        comment_id=comment.id,
        recipient_email=recipient,
        recipient_name=name,
        email_type=email_type,
        subject=subject,
        body=body,
    )
    db.add(item)
    return item


def enqueue_notifications(
    db: Session,
    comment: Comment,
    parent_id: int | None,
    config: SiteConfig,
) -> list[EmailQueueItem]:
    """Queue parent-reply, subscriber and admin emails for ``comment``.

    Does nothing when notifications are disabled. The parent author is only
    told once even if they also subscribe to the page, and the comment's own
    author never receives a copy.
    """
    if not config.enable_notifications:
        return []

    author = sanitize_email_content(comment.author_name)
    content = sanitize_email_content(comment.content)
    page = sanitize_email_content(comment.page_url)

    queued: list[EmailQueueItem] = []
    notified: set[str] = set()

    if parent_id is not None:
        parent = db.get(Comment, parent_id)
        if parent and parent.author_email and parent.author_email != comment.author_email:
            parent_name = sanitize_email_content(parent.author_name)
            token = latest_token_for(db, comment.page_url, parent.author_email)
            item = _queue(
                db,
                comment,
                parent.author_email,
                parent_name,
                EMAIL_TYPE_PARENT_REPLY,
                "New reply to your comment",
                _parent_reply_body(
                    parent_name,
                    author,
                    page,
                    content,
                    comment.id,
                    token,
                ),
            )
            if item is not None:
                queued.append(item)
                notified.add(parent.author_email)

    subscribers = db.scalars(
        select(Subscription)
        .where(
            Subscription.page_url == comment.page_url,
            Subscription.active == 1,
            Subscription.email != comment.author_email,
        )
        .order_by(Subscription.id)
    ).all()
    subject = sanitize_email_content(f"New comment on {_page_path(comment.page_url)}")
    for subscription in subscribers:
        if subscription.email in notified:
            continue
        item = _queue(
            db,
            comment,
            subscription.email,
            None,
            EMAIL_TYPE_SUBSCRIBER,
            subject,
            _subscriber_body(author, page, content, comment.id, subscription.token),
        )
        if item is not None:
            queued.append(item)
            notified.add(subscription.email)

    if config.admin_email:
        item = _queue(
            db,
            comment,
            config.admin_email,
            None,
            EMAIL_TYPE_ADMIN,
            "New comment on your site",
            _admin_body(author, page, content),
        )
        if item is not None:
            queued.append(item)

    db.commit()
    logger.info("Queued %d notification(s) for comment %s", len(queued), comment.id)
    return queued
