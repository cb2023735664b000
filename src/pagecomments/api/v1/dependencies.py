"""Shared API dependencies: database session, site config and admin guards."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from pagecomments.core.errors import Unauthorized
from pagecomments.core.settings import settings
from pagecomments.db.session import get_db
from pagecomments.services.auth import is_admin, maybe_prune, validate_csrf
from pagecomments.services.site_config import SiteConfig, load_site_config

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]

CSRF_HEADER = "X-CSRF-Token"


def get_site_config(db: SessionDep) -> SiteConfig:
    """Load the runtime policy snapshot for this request."""
    return load_site_config(db)


ConfigDep = Annotated[SiteConfig, Depends(get_site_config)]


def get_client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


ClientIpDep = Annotated[str | None, Depends(get_client_ip)]


def get_admin_token(request: Request) -> str | None:
    return request.cookies.get(settings.admin_cookie_name)


def get_is_admin(request: Request, db: SessionDep, config: ConfigDep) -> bool:
    """True when the request carries a valid admin credential cookie."""
    return is_admin(db, get_admin_token(request), config)


IsAdminDep = Annotated[bool, Depends(get_is_admin)]


def require_admin(admin: IsAdminDep) -> None:
    """Reject the request with 401 unless it comes from an admin."""
    if not admin:
        raise Unauthorized()


AdminDep = Depends(require_admin)


def check_csrf(request: Request, body_token: str | None = None) -> None:
    """Validate the CSRF token presented in the body, query string or header.

    Raises:
        Forbidden: If it does not match the token bound to the CSRF cookie.
    """
    presented = (
        body_token
        or request.query_params.get("csrf_token")
        or request.headers.get(CSRF_HEADER)
    )
    validate_csrf(request.cookies.get(settings.csrf_cookie_name), presented)


def prune_sometimes(db: SessionDep) -> None:
    """Occasionally drop expired sessions and old login attempts."""
    maybe_prune(db)
