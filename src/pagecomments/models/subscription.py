"""SQLAlchemy model for per-page email subscriptions."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pagecomments.db.session import Base
from pagecomments.db.time import utcnow


class Subscription(Base):
    """An email address following new comments on one page."""

    __tablename__ = "subscriptions"
    __table_args__ = (UniqueConstraint("page_url", "email", name="uq_subscription_page_email"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    page_url: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    email: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    subscribed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    # 1 = receives notifications, 0 = unsubscribed.
    active: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
