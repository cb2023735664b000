"""Read a TalkYard JSON export into :class:`ImportedComment` records."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from pagecomments.adapters.importing import (
    DEFAULT_AUTHOR_EMAIL,
    DEFAULT_AUTHOR_NAME,
    ImportedComment,
    strip_html,
)
from pagecomments.db.time import utcnow

logger = logging.getLogger(__name__)

# Post numbers 0 and 1 are the page title and body, not comments.
TITLE_POST_NR = 0
BODY_POST_NR = 1

_EMBEDDED_URL_RE = re.compile(r"comments-for-https?(.+)")
_EMBEDDED_SLUG_RE = re.compile(r"comments-for-(.+)")


def page_url_from_path(path: str) -> str:
    """Turn a TalkYard embedded-comments path back into the page URL.

    ``/-4/comments-for-https-example-org-post`` becomes
    ``http/example/org/post``. Dots were lost when TalkYard built the slug,
    so :mod:`pagecomments.adapters.url_repair` cleans these up afterwards.
    """
    match = _EMBEDDED_URL_RE.search(path)
    if match:
        return "http" + match.group(1).replace("-", "/")
    match = _EMBEDDED_SLUG_RE.search(path)
    if match:
        return "/" + match.group(1)
    return path


def _users(data: Mapping[str, Any]) -> dict[Any, dict[str, Any]]:
    users: dict[Any, dict[str, Any]] = {}
    for member in data.get("members") or []:
        user_id = member.get("id")
        if user_id:
            users[user_id] = {
                "name": member.get("fullName") or member.get("username") or DEFAULT_AUTHOR_NAME,
                "email": member.get("primaryEmailAddress") or "noreply@example.com",
                "url": member.get("websiteUrl"),
            }
    # Guests have negative ids.
    for guest in data.get("guests") or []:
        user_id = guest.get("id")
        if user_id:
            users[user_id] = {
                "name": guest.get("fullName") or guest.get("guestName") or DEFAULT_AUTHOR_NAME,
                "email": guest.get("emailAddress") or "guest@example.com",
                "url": guest.get("websiteUrl"),
            }
    return users


def _created_at(millis: Any) -> datetime:
    if millis is None:
        return utcnow()
    return datetime.fromtimestamp(int(millis) / 1000, tz=timezone.utc)


def parse_talkyard_export(data: Mapping[str, Any] | str | bytes) -> list[ImportedComment]:
    """Parse a TalkYard site export.

    Accepts the decoded JSON object or its raw text. Title/body posts,
    deleted posts, empty posts and posts on unknown pages are skipped.

    Raises:
        ValueError: If raw text is not valid JSON.
    """
    if isinstance(data, (str, bytes)):
        data = json.loads(data)

    page_urls: dict[Any, str] = {}
    for path in data.get("pagePaths") or []:
        if path.get("canonical"):
            page_urls[path.get("pageId")] = page_url_from_path(path.get("value", ""))

    users = _users(data)
    posts = data.get("posts") or []
    logger.info("Found %d TalkYard posts across %d pages", len(posts), len(page_urls))

    post_ids_by_nr = {(post.get("pageId"), post.get("nr")): post.get("id") for post in posts}

    records: list[ImportedComment] = []
    for post in posts:
        post_id = post.get("id")
        page_id = post.get("pageId")
        post_nr = post.get("nr")

        if post_nr in (TITLE_POST_NR, BODY_POST_NR):
            continue
        if (post.get("deletedStatus") or 0) > 0:
            logger.debug("Skipping deleted TalkYard post %s", post_id)
            continue

        page_url = page_urls.get(page_id)
        if not page_url:
            logger.warning("Could not find URL for page %s, post %s", page_id, post_id)
            continue

        content = strip_html(post.get("approvedSource") or "")
        if not content:
            logger.debug("Skipping empty TalkYard post %s", post_id)
            continue

        author = users.get(post.get("createdById", 1)) or {
            "name": DEFAULT_AUTHOR_NAME,
            "email": DEFAULT_AUTHOR_EMAIL,
            "url": None,
        }

        parent_nr = post.get("parentNr")
        parent_id = None
        if parent_nr is not None and parent_nr > BODY_POST_NR:
            parent_id = post_ids_by_nr.get((page_id, parent_nr))

        records.append(
            ImportedComment(
                source_id=str(post_id),
                source_parent_id=str(parent_id) if parent_id is not None else None,
                page_url=page_url,
                author_name=author["name"],
                author_email=author["email"],
                author_url=author["url"],
                content=content,
                created_at=_created_at(post.get("createdAt")),
            )
        )

    records.sort(key=lambda record: record.created_at)
    logger.info("Prepared %d TalkYard comments to import", len(records))
    return records
