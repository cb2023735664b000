"""Admin endpoints for page subscriptions."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request

from pagecomments.api.v1.dependencies import AdminDep, SessionDep, check_csrf
from pagecomments.schemas.common import MessageResponse
from pagecomments.schemas.subscription import (
    SubscriptionList,
    SubscriptionResponse,
    ToggleSubscriptionRequest,
)
from pagecomments.services import subscriptions as subscription_service
from pagecomments.services.moderation import DEFAULT_ADMIN_PAGE, MAX_ADMIN_PAGE

router = APIRouter(prefix="/api", tags=["subscriptions"], dependencies=[AdminDep])


@router.get("/subscriptions", response_model=SubscriptionList)
async def list_subscriptions(
    db: SessionDep,
    limit: int = Query(DEFAULT_ADMIN_PAGE),
    offset: int = Query(0),
) -> SubscriptionList:
    """All subscriptions, most recently (re)subscribed first."""
    limit = min(max(1, limit), MAX_ADMIN_PAGE)
    offset = max(0, offset)
    rows, total = subscription_service.list_subscriptions(db, limit=limit, offset=offset)
    return SubscriptionList(
        subscriptions=[SubscriptionResponse.model_validate(row) for row in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("/toggle_subscription", response_model=MessageResponse)
async def toggle_subscription(
    payload: ToggleSubscriptionRequest,
    request: Request,
    db: SessionDep,
) -> MessageResponse:
    check_csrf(request, payload.csrf_token)
    subscription_service.set_active(db, payload.token, bool(payload.active))
    return MessageResponse(message="Subscription updated")


@router.delete("/delete_subscription", response_model=MessageResponse)
async def delete_subscription(
    request: Request,
    db: SessionDep,
    token: str = Query(""),
) -> MessageResponse:
    check_csrf(request)
    subscription_service.delete_subscription(db, token)
    return MessageResponse(message="Subscription deleted")
