"""Read side: threaded comment trees and the recent-comments feed."""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pagecomments.core.errors import ValidationError
from pagecomments.models import Comment
from pagecomments.models.comment import STATUS_APPROVED, STATUS_PENDING
from pagecomments.schemas.comment import CommentNode, RecentComment

DEFAULT_THREAD_LIMIT = 100
MAX_THREAD_LIMIT = 1000
DEFAULT_RECENT_LIMIT = 10
MAX_RECENT_LIMIT = 100
EXCERPT_LENGTH = 150


@dataclass
class ThreadPage:
    tree: list[CommentNode] = field(default_factory=list)
    total: int = 0
    has_more: bool = False
    limit: int = DEFAULT_THREAD_LIMIT
    offset: int = 0


def visible_statuses(viewer_is_admin: bool) -> tuple[str, ...]:
    if viewer_is_admin:
        return (STATUS_APPROVED, STATUS_PENDING)
    return (STATUS_APPROVED,)


def clamp(value: int | None, default: int, lower: int, upper: int) -> int:
    if value is None:
        return default
    return min(max(lower, value), upper)


def build_tree(rows: list[Comment], *, include_email: bool) -> list[CommentNode]:
    """Nest ``rows`` under their parents.

    Rows whose parent is not among ``rows`` are dropped, so a paginated
    window can lose replies to comments on an earlier page.
    """
    nodes: dict[int, CommentNode] = {}
    for row in rows:
        node = CommentNode.model_validate(row)
        if not include_email:
            node.author_email = None
        nodes[node.id] = node

    roots: list[CommentNode] = []
    for node in nodes.values():
        if node.parent_id is None:
            roots.append(node)
        elif node.parent_id in nodes:
            nodes[node.parent_id].replies.append(node)
    return roots


def assemble_thread(
    db: Session,
    page_url: str,
    *,
    viewer_is_admin: bool,
    limit: int | None = None,
    offset: int | None = None,
) -> ThreadPage:
    """Return one page of a thread, oldest first, as a reply tree.

    Raises:
        ValidationError: If ``page_url`` is empty.
    """
    if not page_url:
        raise ValidationError(["URL is required"])

    limit = clamp(limit, DEFAULT_THREAD_LIMIT, 1, MAX_THREAD_LIMIT)
    offset = max(0, offset or 0)
    statuses = visible_statuses(viewer_is_admin)
    criteria = (Comment.page_url == page_url, Comment.status.in_(statuses))

    total = db.scalar(select(func.count(Comment.id)).where(*criteria)) or 0
    rows = db.scalars(
        select(Comment)
        .where(*criteria)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .limit(limit)
        .offset(offset)
    ).all()

    return ThreadPage(
        tree=build_tree(list(rows), include_email=viewer_is_admin),
        total=total,
        has_more=offset + limit < total,
        limit=limit,
        offset=offset,
    )


def excerpt(content: str, length: int = EXCERPT_LENGTH) -> str:
    if len(content) > length:
        return content[:length] + "..."
    return content


def recent_comments(db: Session, limit: int | None = None) -> list[RecentComment]:
    """Latest approved comments across all pages, newest first."""
    limit = clamp(limit, DEFAULT_RECENT_LIMIT, 1, MAX_RECENT_LIMIT)
    rows = db.scalars(
        select(Comment)
        .where(Comment.status == STATUS_APPROVED)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .limit(limit)
    ).all()
    return [
        RecentComment(
            id=row.id,
            page_url=row.page_url,
            author_name=row.author_name,
            author_url=row.author_url,
            content=row.content,
            excerpt=excerpt(row.content),
            created_at=row.created_at,
        )
        for row in rows
    ]
