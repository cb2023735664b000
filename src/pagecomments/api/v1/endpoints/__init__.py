"""API endpoint modules for version 1."""

from .admin import router as admin_router
from .auth import router as auth_router
from .comments import router as comments_router
from .subscriptions import router as subscriptions_router
from .unsubscribe import router as unsubscribe_router

__all__ = [
    "admin_router",
    "auth_router",
    "comments_router",
    "subscriptions_router",
    "unsubscribe_router",
]
