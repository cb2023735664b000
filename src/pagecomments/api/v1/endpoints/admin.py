"""Admin-only comment management endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from pagecomments.adapters.disqus_export import build_disqus_export, exportable_comments
from pagecomments.api.v1.dependencies import AdminDep, SessionDep, check_csrf
from pagecomments.core.errors import InternalError
from pagecomments.db.time import utcnow
from pagecomments.schemas.comment import AdminComment, AdminCommentList, ModerateRequest
from pagecomments.schemas.common import MessageResponse
from pagecomments.schemas.subscription import DiagnosticEmailRequest
from pagecomments.services.mailer import get_mail_transport, send_test_email
from pagecomments.services.moderation import (
    DEFAULT_ADMIN_PAGE,
    MAX_ADMIN_PAGE,
    ModerationService,
)

router = APIRouter(prefix="/api", tags=["admin"], dependencies=[AdminDep])
moderation_service = ModerationService()


@router.put("/moderate", response_model=MessageResponse)
async def moderate_comment(
    payload: ModerateRequest,
    request: Request,
    db: SessionDep,
    id: int = Query(...),
) -> MessageResponse:
    """Set a comment's status to approved, spam or deleted."""
    check_csrf(request, payload.csrf_token)
    moderation_service.set_status(id, payload.status, db)
    return MessageResponse(message="Comment updated")


@router.delete("/delete", response_model=MessageResponse)
async def delete_comment(
    request: Request,
    db: SessionDep,
    id: int = Query(...),
) -> MessageResponse:
    """Permanently delete a comment and its replies."""
    check_csrf(request)
    moderation_service.delete(id, db)
    return MessageResponse(message="Comment deleted")


def _comment_page(
    db: Session, *, pending_only: bool, limit: int, offset: int
) -> AdminCommentList:
    rows, total = moderation_service.list_comments(
        db, pending_only=pending_only, limit=limit, offset=offset
    )
    return AdminCommentList(
        comments=[AdminComment.model_validate(row) for row in rows],
        total=total,
        limit=min(max(1, limit), MAX_ADMIN_PAGE),
        offset=max(0, offset),
    )


@router.get("/pending", response_model=AdminCommentList)
async def list_pending(
    db: SessionDep,
    limit: int = Query(DEFAULT_ADMIN_PAGE),
    offset: int = Query(0),
) -> AdminCommentList:
    """Comments awaiting moderation, newest first."""
    return _comment_page(db, pending_only=True, limit=limit, offset=offset)


@router.get("/all", response_model=AdminCommentList)
async def list_all(
    db: SessionDep,
    limit: int = Query(DEFAULT_ADMIN_PAGE),
    offset: int = Query(0),
) -> AdminCommentList:
    """Every comment regardless of status, newest first."""
    return _comment_page(db, pending_only=False, limit=limit, offset=offset)


@router.post("/test_email", response_model=MessageResponse)
def send_diagnostic_email(
    payload: DiagnosticEmailRequest,
    request: Request,
) -> MessageResponse:
    """Send a diagnostic email right away, bypassing the queue."""
    check_csrf(request, payload.csrf_token)
    if not send_test_email(get_mail_transport(), payload.email, payload.page_url):
        raise InternalError("Failed to send email. Check server mail configuration.")
    return MessageResponse(
        message="Test email sent successfully! Check your inbox (and spam folder)."
    )


@router.get("/export_disqus")
async def export_disqus(db: SessionDep) -> StreamingResponse:
    """Download approved and pending comments as a Disqus import file."""
    comments = list(exportable_comments(db))
    filename = f"comments-disqus-export-{utcnow():%Y-%m-%d}.xml"
    return StreamingResponse(
        build_disqus_export(comments),
        media_type="application/xml; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
