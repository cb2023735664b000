"""SQLAlchemy model for page comments."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pagecomments.db.session import Base
from pagecomments.db.time import utcnow

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_SPAM = "spam"
STATUS_DELETED = "deleted"

COMMENT_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_SPAM, STATUS_DELETED)
# Statuses an admin may assign through moderation.
MODERATION_STATUSES = (STATUS_APPROVED, STATUS_SPAM, STATUS_DELETED)


class Comment(Base):
    """A single comment attached to a page URL.

    Replies point at their parent through ``parent_id``; top-level comments
    have ``parent_id = NULL``. Deleting a comment removes its replies.
    """

    __tablename__ = "comments"
    __table_args__ = (
        Index("idx_page_url_status", "page_url", "status"),
        Index("idx_rate_limit_ip", "ip_address", "created_at"),
        Index("idx_rate_limit_email", "author_email", "created_at"),
        Index("idx_author_email_status", "author_email", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    page_url: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    author_name: Mapped[str] = mapped_column(Text, nullable=False)
    author_email: Mapped[str] = mapped_column(Text, nullable=False)
    author_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # One of COMMENT_STATUSES.
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=STATUS_PENDING, index=True
    )
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
