"""Version 1 API endpoints."""

from .endpoints import (
    admin_router,
    auth_router,
    comments_router,
    subscriptions_router,
    unsubscribe_router,
)

__all__ = [
    "admin_router",
    "auth_router",
    "comments_router",
    "subscriptions_router",
    "unsubscribe_router",
]
