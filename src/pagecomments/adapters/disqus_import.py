"""Read a Disqus XML export into :class:`ImportedComment` records."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from xml.etree import ElementTree

from pagecomments.adapters.importing import (
    DEFAULT_AUTHOR_EMAIL,
    DEFAULT_AUTHOR_NAME,
    ImportedComment,
    strip_html,
)
from pagecomments.db.time import utcnow

logger = logging.getLogger(__name__)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(element: ElementTree.Element | None, name: str) -> ElementTree.Element | None:
    if element is None:
        return None
    for child in element:
        if _local(child.tag) == name:
            return child
    return None


def _text(element: ElementTree.Element | None, name: str) -> str:
    child = _child(element, name)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


def _dsq_id(element: ElementTree.Element | None) -> str:
    """Return the ``dsq:id`` attribute, falling back to an ``<id>`` child."""
    if element is None:
        return ""
    for key, value in element.attrib.items():
        if _local(key) == "id":
            return value
    return _text(element, "id")


def _parse_date(value: str) -> datetime:
    if not value:
        return utcnow()
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparseable Disqus date %r; using current time", value)
        return utcnow()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_disqus_export(source: str | bytes) -> list[ImportedComment]:
    """Parse Disqus export XML.

    Deleted and spam posts, and posts whose thread is unknown, are skipped.
    The result is ordered by creation time so parents precede replies.

    Raises:
        ValueError: If ``source`` is not well-formed XML.
    """
    try:
        root = ElementTree.fromstring(source)
    except ElementTree.ParseError as exc:
        raise ValueError(f"Invalid Disqus XML: {exc}") from exc

    threads: dict[str, str] = {}
    for element in root:
        if _local(element.tag) == "thread":
            link = _text(element, "link")
            if link:
                threads[_dsq_id(element)] = link
    logger.info("Found %d Disqus threads", len(threads))

    records: list[ImportedComment] = []
    for element in root:
        if _local(element.tag) != "post":
            continue

        post_id = _dsq_id(element)
        if _text(element, "isDeleted") == "true" or _text(element, "isSpam") == "true":
            logger.debug("Skipping deleted/spam Disqus post %s", post_id)
            continue

        page_url = threads.get(_dsq_id(_child(element, "thread")))
        if not page_url:
            logger.warning("Could not find thread for Disqus post %s", post_id)
            continue

        author = _child(element, "author")
        records.append(
            ImportedComment(
                source_id=post_id,
                source_parent_id=_dsq_id(_child(element, "parent")) or None,
                page_url=page_url,
                author_name=_text(author, "name") or DEFAULT_AUTHOR_NAME,
                author_email=_text(author, "email") or DEFAULT_AUTHOR_EMAIL,
                author_url=_text(author, "link") or None,
                content=strip_html(_text(element, "message")),
                created_at=_parse_date(_text(element, "createdAt")),
            )
        )

    records.sort(key=lambda record: record.created_at)
    logger.info("Found %d Disqus comments to import", len(records))
    return records
