"""Stream comments as a Disqus-importable WXR document.

Disqus accepts the WordPress eXtended RSS format: one ``<item>`` per page and
one ``<wp:comment>`` per comment inside it.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import datetime
from itertools import groupby
from xml.sax.saxutils import escape

from sqlalchemy import select
from sqlalchemy.orm import Session

from pagecomments.db.time import as_utc
from pagecomments.models import Comment
from pagecomments.models.comment import STATUS_APPROVED, STATUS_PENDING

EXPORTABLE_STATUSES = (STATUS_APPROVED, STATUS_PENDING)

WXR_HEADER = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<rss version="2.0"\n'
    '  xmlns:content="http://purl.org/rss/1.0/modules/content/"\n'
    '  xmlns:dsq="http://www.disqus.com/"\n'
    '  xmlns:dc="http://purl.org/dc/elements/1.1/"\n'
    '  xmlns:wp="http://wordpress.org/export/1.0/">\n'
    "  <channel>\n"
)
WXR_FOOTER = "  </channel>\n</rss>\n"


def cdata(text: str | None) -> str:
    """Wrap ``text`` in CDATA, splitting any embedded terminator."""
    return "<![CDATA[" + (text or "").replace("]]>", "]]]]><![CDATA[>") + "]]>"


def format_date(value: datetime) -> str:
    return as_utc(value).strftime("%Y-%m-%d %H:%M:%S")


def _comment_xml(comment: Comment) -> str:
    approved = 1 if comment.status == STATUS_APPROVED else 0
    return (
        "      <wp:comment>\n"
        f"        <wp:comment_id>{comment.id}</wp:comment_id>\n"
        f"        <wp:comment_author>{escape(comment.author_name or '')}</wp:comment_author>\n"
        "        <wp:comment_author_email>"
        f"{escape(comment.author_email or '')}</wp:comment_author_email>\n"
        "        <wp:comment_author_url>"
        f"{escape(comment.author_url or '')}</wp:comment_author_url>\n"
        "        <wp:comment_author_IP>"
        f"{escape(comment.ip_address or '')}</wp:comment_author_IP>\n"
        "        <wp:comment_date_gmt>"
        f"{format_date(comment.created_at)}</wp:comment_date_gmt>\n"
        f"        <wp:comment_content>{cdata(comment.content)}</wp:comment_content>\n"
        f"        <wp:comment_approved>{approved}</wp:comment_approved>\n"
        f"        <wp:comment_parent>{comment.parent_id or 0}</wp:comment_parent>\n"
        "      </wp:comment>\n"
    )


def _item_xml(page_url: str, comments: list[Comment]) -> str:
    page = escape(page_url)
    parts = [
        "    <item>\n",
        f"      <title>{page}</title>\n",
        f"      <link>{page}</link>\n",
        f"      <content:encoded>{cdata('')}</content:encoded>\n",
        f"      <dsq:thread_identifier>{page}</dsq:thread_identifier>\n",
        f"      <wp:post_date_gmt>{format_date(comments[0].created_at)}</wp:post_date_gmt>\n",
        "      <wp:comment_status>open</wp:comment_status>\n",
    ]
    parts.extend(_comment_xml(comment) for comment in comments)
    parts.append("    </item>\n")
    return "".join(parts)


def build_disqus_export(comments: Iterable[Comment]) -> Iterator[str]:
    """Yield the export document in chunks, one page per chunk.

    ``comments`` must be ordered by page URL, then creation time. Spam and
    deleted comments are skipped.
    """
    yield WXR_HEADER
    visible = (c for c in comments if c.status in EXPORTABLE_STATUSES)
    for page_url, group in groupby(visible, key=lambda c: c.page_url):
        yield _item_xml(page_url, list(group))
    yield WXR_FOOTER


def exportable_comments(db: Session, chunk_size: int = 500) -> Iterator[Comment]:
    """Stream exportable comments in the order :func:`build_disqus_export` needs."""
    statement = (
        select(Comment)
        .where(Comment.status.in_(EXPORTABLE_STATUSES))
        .order_by(Comment.page_url, Comment.created_at, Comment.id)
        .execution_options(yield_per=chunk_size)
    )
    yield from db.scalars(statement)
