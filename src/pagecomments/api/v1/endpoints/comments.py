"""Public comment endpoints used by the embedded widget."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, status

from pagecomments.api.v1.dependencies import ClientIpDep, ConfigDep, IsAdminDep, SessionDep
from pagecomments.schemas.comment import (
    CommentCreate,
    CommentCreated,
    RecentResponse,
    ThreadResponse,
)
from pagecomments.services.admission import submit_comment
from pagecomments.services.threads import assemble_thread, recent_comments

router = APIRouter(prefix="/api", tags=["comments"])


@router.get("/comments", response_model=ThreadResponse)
async def get_comments(
    db: SessionDep,
    admin: IsAdminDep,
    url: str = Query(""),
    limit: int | None = Query(None),
    offset: int | None = Query(None),
) -> ThreadResponse:
    """Return the approved (or, for admins, approved and pending) thread for a page."""
    page = assemble_thread(db, url, viewer_is_admin=admin, limit=limit, offset=offset)
    return ThreadResponse(
        comments=page.tree,
        total=page.total,
        has_more=page.has_more,
        limit=page.limit,
        offset=page.offset,
    )


@router.get("/recent", response_model=RecentResponse)
async def get_recent(db: SessionDep, limit: int | None = Query(None)) -> RecentResponse:
    """Latest approved comments across the whole site."""
    return RecentResponse(comments=recent_comments(db, limit))


@router.post("/post", response_model=CommentCreated, status_code=status.HTTP_201_CREATED)
async def post_comment(
    payload: CommentCreate,
    request: Request,
    db: SessionDep,
    config: ConfigDep,
    admin: IsAdminDep,
    client_ip: ClientIpDep,
) -> CommentCreated:
    """Submit a new comment or reply."""
    outcome = submit_comment(
        db,
        payload,
        client_ip,
        request.headers.get("user-agent"),
        is_admin=admin,
        config=config,
    )
    return CommentCreated(
        id=outcome.comment.id,
        status=outcome.comment.status,
        message=outcome.message,
        trusted=outcome.trusted,
    )
