"""Page subscription management: subscribe, unsubscribe and admin toggles."""

from __future__ import annotations

import enum
import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from pagecomments.core.errors import NotFound
from pagecomments.core.security import generate_token
from pagecomments.db.time import utcnow
from pagecomments.models import Subscription

logger = logging.getLogger(__name__)


class UnsubscribeResult(enum.Enum):
    UNSUBSCRIBED = "unsubscribed"
    ALREADY_INACTIVE = "already_inactive"


def subscribe(db: Session, page_url: str, email: str) -> Subscription:
    """Create or overwrite the (page, email) subscription with a fresh token."""
    subscription = db.scalar(
        select(Subscription).where(Subscription.page_url == page_url, Subscription.email == email)
    )
    if subscription is None:
        subscription = Subscription(page_url=page_url, email=email)
        db.add(subscription)
    subscription.token = generate_token()
    subscription.subscribed_at = utcnow()
    subscription.active = 1
    db.commit()
    db.refresh(subscription)
    logger.info("Subscribed %s to %s", email, page_url)
    return subscription


def get_by_token(db: Session, token: str) -> Subscription | None:
    if not token:
        return None
    return db.scalar(select(Subscription).where(Subscription.token == token))


def latest_token_for(db: Session, page_url: str, email: str) -> str | None:
    """Return the newest subscription token for an address on a page, if any."""
    return db.scalar(
        select(Subscription.token)
        .where(Subscription.page_url == page_url, Subscription.email == email)
        .order_by(Subscription.subscribed_at.desc(), Subscription.id.desc())
        .limit(1)
    )


def unsubscribe(db: Session, token: str) -> UnsubscribeResult:
    """Deactivate the subscription owning ``token``.

    Repeating the call for an inactive subscription is not an error.

    Raises:
        NotFound: If no subscription carries the token.
    """
    subscription = get_by_token(db, token)
    if subscription is None:
        raise NotFound("Subscription not found")

    result = db.execute(
        update(Subscription)
        .where(Subscription.id == subscription.id, Subscription.active == 1)
        .values(active=0)
    )
    db.commit()
    if result.rowcount:
        logger.info("Unsubscribed %s from %s", subscription.email, subscription.page_url)
        return UnsubscribeResult.UNSUBSCRIBED
    return UnsubscribeResult.ALREADY_INACTIVE


def set_active(db: Session, token: str, active: bool) -> Subscription:
    subscription = get_by_token(db, token)
    if subscription is None:
        raise NotFound("Subscription not found")
    subscription.active = 1 if active else 0
    db.commit()
    db.refresh(subscription)
    return subscription


def delete_subscription(db: Session, token: str) -> None:
    result = db.execute(delete(Subscription).where(Subscription.token == token))
    db.commit()
    if not result.rowcount:
        raise NotFound("Subscription not found")


def list_subscriptions(
    db: Session, *, limit: int, offset: int
) -> tuple[list[Subscription], int]:
    """Return one page of subscriptions (newest first) and the total count."""
    total = db.scalar(select(func.count(Subscription.id))) or 0
    rows = db.scalars(
        select(Subscription)
        .order_by(Subscription.subscribed_at.desc(), Subscription.id.desc())
        .limit(limit)
        .offset(offset)
    ).all()
    return list(rows), total
