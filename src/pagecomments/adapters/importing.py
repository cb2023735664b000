"""Shared record type and database writer for comment importers."""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pagecomments.models import Comment
from pagecomments.models.comment import STATUS_APPROVED

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR_NAME = "Anonymous"
DEFAULT_AUTHOR_EMAIL = "anonymous@example.com"

_TAG_RE = re.compile(r"<[^>]*>")


def strip_html(markup: str) -> str:
    """Drop tags and decode entities, leaving plain text."""
    return html.unescape(_TAG_RE.sub("", markup or "")).strip()


@dataclass
class ImportedComment:
    """One comment read from a foreign export, before it has a local id."""

    source_id: str
    page_url: str
    content: str
    created_at: datetime
    source_parent_id: str | None = None
    author_name: str = DEFAULT_AUTHOR_NAME
    author_email: str = DEFAULT_AUTHOR_EMAIL
    author_url: str | None = None


@dataclass
class ImportReport:
    imported: int = 0
    # Replies whose parent was not imported; stored as top-level comments.
    orphaned: list[str] = field(default_factory=list)
    pages: set[str] = field(default_factory=set)


def import_comments(
    db: Session, records: Iterable[ImportedComment], progress_every: int = 100
) -> ImportReport:
    """Insert ``records`` as approved comments in a single transaction.

    Records must be ordered oldest first so that parents are inserted before
    their replies; foreign parent ids are translated to the new local ids.
    """
    report = ImportReport()
    id_map: dict[str, int] = {}

    try:
        for record in records:
            parent_id = None
            if record.source_parent_id:
                parent_id = id_map.get(record.source_parent_id)
                if parent_id is None:
                    report.orphaned.append(record.source_id)
                    logger.warning(
                        "Could not find parent comment for imported id %s", record.source_id
                    )

            comment = Comment(
                page_url=record.page_url,
                parent_id=parent_id,
                author_name=record.author_name,
                author_email=record.author_email,
                author_url=record.author_url,
                content=record.content,
                status=STATUS_APPROVED,
                created_at=record.created_at,
                updated_at=record.created_at,
            )
            db.add(comment)
            db.flush()
            id_map[record.source_id] = comment.id

            report.imported += 1
            report.pages.add(record.page_url)
            if progress_every and report.imported % progress_every == 0:
                logger.info("Imported %d comments...", report.imported)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(
        "Imported %d comments across %d pages", report.imported, len(report.pages)
    )
    return report
