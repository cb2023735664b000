"""Repair page URLs mangled by the TalkYard importer.

TalkYard drops the dots and turns slashes into dashes when it builds the
embedded-comments slug, so a post at ``https://blog.example.org/2012/03/04/my-post/``
can come back as ``httpblogexampleorg20120304my/post``. These are rewritten
to the site-relative ``/2012/03/04/my-post/`` form.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from sqlalchemy import distinct, select, update
from sqlalchemy.orm import Session

from pagecomments.models import Comment

logger = logging.getLogger(__name__)

_DATED_PATH_RE = re.compile(r"^/*(\d{4})/*(\d{2})/*(\d{2})(.+)")
_TALKYARD_INTERNAL_RE = re.compile(r"^/-\d+/imported-from-disqus$")


@dataclass
class UrlRepairReport:
    comments_updated: int = 0
    rewrites: dict[str, str] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)


def host_slug(host: str) -> str:
    """``blog.example.org`` -> ``blogexampleorg``."""
    return re.sub(r"[^a-z0-9]", "", host.lower())


def _mangled_prefix(host: str) -> re.Pattern[str]:
    slug = host_slug(host)
    return re.compile(r"^https?/*" + "/*".join(re.escape(ch) for ch in slug) + r"(.+)")


def repair_url(url: str, host: str) -> str | None:
    """Return the repaired URL, or None if ``url`` does not look mangled."""
    match = _mangled_prefix(host).match(url)
    if not match:
        return None
    dated = _DATED_PATH_RE.match(match.group(1))
    if not dated:
        return None
    year, month, day, slug = dated.groups()
    slug = slug.strip("/").replace("/", "-")
    return f"/{year}/{month}/{day}/{slug}/"


def fix_imported_urls(db: Session, host: str, *, dry_run: bool = False) -> UrlRepairReport:
    """Rewrite every mangled ``page_url`` for ``host`` in place."""
    report = UrlRepairReport()
    urls = db.scalars(select(distinct(Comment.page_url)).order_by(Comment.page_url)).all()

    for url in urls:
        if _TALKYARD_INTERNAL_RE.match(url):
            report.skipped.append(url)
            continue
        repaired = repair_url(url, host)
        if repaired is None or repaired == url:
            continue

        report.rewrites[url] = repaired
        logger.info("Fix: %s -> %s", url, repaired)
        if not dry_run:
            result = db.execute(
                update(Comment)
                .where(Comment.page_url == url)
                .values(page_url=repaired)
                .execution_options(synchronize_session=False)
            )
            report.comments_updated += result.rowcount

    if not dry_run:
        db.commit()
    logger.info(
        "URL repair: %d comments updated, %d TalkYard internal pages skipped",
        report.comments_updated,
        len(report.skipped),
    )
    return report
