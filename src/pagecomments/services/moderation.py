"""Moderation services for admins."""

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from pagecomments.core.errors import NotFound, ValidationError
from pagecomments.models import Comment
from pagecomments.models.comment import MODERATION_STATUSES, STATUS_PENDING

logger = logging.getLogger(__name__)

# Admin listings cap.
MAX_ADMIN_PAGE = 10000
DEFAULT_ADMIN_PAGE = 100


class ModerationService:
    """Status changes, hard deletes and admin listings of comments."""

    @staticmethod
    def set_status(comment_id: int, status: str, db: Session) -> Comment:
        """Move a comment to ``approved``, ``spam`` or ``deleted``.

        Args:
            comment_id: ID of the comment to update
            status: New moderation status
            db: Database session

        Returns:
            The updated comment

        Raises:
            ValidationError: If ``status`` is not a moderation status.
            NotFound: If the comment does not exist.
        """
        if status not in MODERATION_STATUSES:
            raise ValidationError(["Invalid status"])

        comment = db.get(Comment, comment_id)
        if comment is None:
            raise NotFound("Comment not found")

        comment.status = status
        db.commit()
        db.refresh(comment)
        logger.info("Comment %s marked %s", comment_id, status)
        return comment

    @staticmethod
    def delete(comment_id: int, db: Session) -> None:
        """Hard-delete a comment; replies and queued emails go with it."""
        comment = db.get(Comment, comment_id)
        if comment is None:
            raise NotFound("Comment not found")

        db.delete(comment)
        db.commit()
        logger.info("Comment %s deleted", comment_id)

    @staticmethod
    def list_comments(
        db: Session,
        *,
        pending_only: bool = False,
        limit: int = DEFAULT_ADMIN_PAGE,
        offset: int = 0,
    ) -> tuple[list[Comment], int]:
        """Return a page of comments (newest first) and the total count."""
        limit = min(max(1, limit), MAX_ADMIN_PAGE)
        offset = max(0, offset)

        query = db.query(Comment)
        count_query = db.query(func.count(Comment.id))
        if pending_only:
            query = query.filter(Comment.status == STATUS_PENDING)
            count_query = count_query.filter(Comment.status == STATUS_PENDING)

        total = count_query.scalar() or 0
        rows = (
            query.order_by(Comment.created_at.desc(), Comment.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return rows, total
