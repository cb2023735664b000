"""Admin login, logout and CSRF token endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from pagecomments.api.v1.dependencies import (
    ClientIpDep,
    ConfigDep,
    SessionDep,
    get_admin_token,
)
from pagecomments.core.settings import settings
from pagecomments.schemas.auth import CsrfTokenResponse, LoginRequest, LoginResponse
from pagecomments.schemas.common import MessageResponse
from pagecomments.services import auth as auth_service

router = APIRouter(prefix="/api", tags=["auth"])


def set_csrf_cookie(response: Response, token: str) -> None:
    # Readable by script so the admin page can echo it back.
    response.set_cookie(
        settings.csrf_cookie_name,
        token,
        max_age=settings.session_lifetime_seconds,
        path=settings.cookie_path,
        secure=settings.cookie_secure,
        httponly=False,
        samesite="lax",
    )


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.admin_cookie_name,
        token,
        max_age=settings.session_lifetime_seconds,
        path=settings.cookie_path,
        secure=settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )


@router.get("/csrf_token", response_model=CsrfTokenResponse)
async def get_csrf_token(request: Request, response: Response) -> CsrfTokenResponse:
    """Return the browser's CSRF token, issuing a cookie if it has none."""
    existing = request.cookies.get(settings.csrf_cookie_name)
    token = auth_service.issue_csrf_token(existing)
    if token != existing:
        set_csrf_cookie(response, token)
    return CsrfTokenResponse(token=token)


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: SessionDep,
    config: ConfigDep,
    client_ip: ClientIpDep,
) -> LoginResponse:
    """Exchange the admin password for a session cookie and CSRF token."""
    result = auth_service.login(
        db,
        payload.password,
        client_ip,
        request.headers.get("user-agent"),
        config,
        csrf_cookie=request.cookies.get(settings.csrf_cookie_name),
    )
    set_session_cookie(response, result.session_token)
    set_csrf_cookie(response, result.csrf_token)
    return LoginResponse(
        success=True,
        message="Logged in successfully",
        csrf_token=result.csrf_token,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request, response: Response, db: SessionDep) -> MessageResponse:
    """End the current admin session and clear its cookie."""
    auth_service.logout(db, get_admin_token(request))
    response.delete_cookie(settings.admin_cookie_name, path=settings.cookie_path)
    return MessageResponse(success=True, message="Logged out")
