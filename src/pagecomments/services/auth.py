"""Admin authentication: password login, session credentials and CSRF tokens."""

from __future__ import annotations

import logging
import random
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from pagecomments.core.errors import Forbidden, RateLimited, Unauthorized
from pagecomments.core.security import generate_token, tokens_match, verify_password
from pagecomments.core.settings import settings
from pagecomments.db.time import utcnow
from pagecomments.models import AdminSession, LoginAttempt
from pagecomments.services.site_config import SiteConfig

logger = logging.getLogger(__name__)

LOGIN_RATE_MESSAGE = "Too many login attempts. Please try again later."
INVALID_CSRF_MESSAGE = "Invalid CSRF token"

_TOKEN_RE = re.compile(r"[0-9a-f]{64}")


@dataclass(frozen=True)
class LoginResult:
    session_token: str
    csrf_token: str
    expires_at: datetime


class AdminCredential(Protocol):
    """A presented token that may grant admin capability."""

    def is_valid(self, db: Session, config: SiteConfig, now: datetime) -> bool:
        ...


@dataclass(frozen=True)
class SessionCredential:
    """Token issued by :func:`login` and stored in the sessions table."""

    token: str

    def is_valid(self, db: Session, config: SiteConfig, now: datetime) -> bool:
        session = db.scalar(
            select(AdminSession).where(
                AdminSession.token == self.token,
                AdminSession.expires_at > now,
            )
        )
        if session is None:
            return False
        session.last_activity = now
        db.commit()
        return True


@dataclass(frozen=True)
class LegacyTokenCredential:
    """Single token kept in the ``admin_token`` setting by older installs."""

    token: str

    def is_valid(self, db: Session, config: SiteConfig, now: datetime) -> bool:
        return tokens_match(config.admin_token, self.token)


def credentials_for(token: str) -> tuple[AdminCredential, ...]:
    return (SessionCredential(token), LegacyTokenCredential(token))


def is_admin(
    db: Session, token: str | None, config: SiteConfig, now: datetime | None = None
) -> bool:
    """Return True if ``token`` is a live session or the legacy admin token."""
    if not token:
        return False
    now = now or utcnow()
    return any(credential.is_valid(db, config, now) for credential in credentials_for(token))


def recent_failed_logins(db: Session, client_ip: str, now: datetime) -> int:
    since = now - timedelta(seconds=settings.login_window_seconds)
    return db.scalar(
        select(func.count(LoginAttempt.id)).where(
            LoginAttempt.ip_address == client_ip,
            LoginAttempt.success.is_(False),
            LoginAttempt.attempted_at > since,
        )
    ) or 0


def issue_csrf_token(existing: str | None = None) -> str:
    """Return the browser's current CSRF token, or a new one if it has none."""
    if existing and _TOKEN_RE.fullmatch(existing):
        return existing
    return generate_token()


def validate_csrf(cookie_token: str | None, presented: str | None) -> None:
    """Raise :class:`Forbidden` unless ``presented`` equals the cookie-bound token."""
    if not tokens_match(cookie_token, presented):
        logger.warning("Rejected admin action with missing or mismatched CSRF token")
        raise Forbidden(INVALID_CSRF_MESSAGE)


def login(
    db: Session,
    password: str,
    client_ip: str | None,
    user_agent: str | None,
    config: SiteConfig,
    *,
    csrf_cookie: str | None = None,
    now: datetime | None = None,
) -> LoginResult:
    """Verify the admin password and open a session.

    Failed attempts from the same IP are throttled before the password is
    looked at. Every attempt is recorded.

    Raises:
        RateLimited: Too many failed attempts in the trailing window.
        Unauthorized: Wrong password, or no password configured.
    """
    now = now or utcnow()
    ip = client_ip or "unknown"

    if recent_failed_logins(db, ip, now) >= settings.login_max_failures:
        logger.warning("Login throttled for %s", ip)
        raise RateLimited(LOGIN_RATE_MESSAGE)

    ok = verify_password(password or "", config.admin_password_hash or "")
    db.add(LoginAttempt(ip_address=ip, attempted_at=now, success=ok))

    if not ok:
        db.commit()
        logger.warning("Failed admin login from %s", ip)
        raise Unauthorized("Invalid password")

    expires_at = now + timedelta(seconds=settings.session_lifetime_seconds)
    session_token = generate_token()
    db.add(
        AdminSession(
            token=session_token,
            created_at=now,
            expires_at=expires_at,
            last_activity=now,
            ip_address=client_ip,
            user_agent=user_agent,
        )
    )
    db.commit()
    logger.info("Admin logged in from %s", ip)
    return LoginResult(
        session_token=session_token,
        csrf_token=issue_csrf_token(csrf_cookie),
        expires_at=expires_at,
    )


def logout(db: Session, token: str | None) -> bool:
    """End the session owning ``token``; False if there was none."""
    if not token:
        return False
    result = db.execute(delete(AdminSession).where(AdminSession.token == token))
    db.commit()
    return bool(result.rowcount)


def prune_expired(db: Session, now: datetime | None = None) -> tuple[int, int]:
    """Delete expired sessions and stale login attempts.

    Returns:
        ``(sessions_deleted, attempts_deleted)``
    """
    now = now or utcnow()
    attempt_cutoff = now - timedelta(days=settings.login_attempt_retention_days)

    sessions_deleted = db.execute(
        delete(AdminSession).where(AdminSession.expires_at < now)
    ).rowcount
    attempts_deleted = db.execute(
        delete(LoginAttempt).where(LoginAttempt.attempted_at < attempt_cutoff)
    ).rowcount
    db.commit()

    if sessions_deleted or attempts_deleted:
        logger.info(
            "Pruned %d expired sessions and %d old login attempts",
            sessions_deleted,
            attempts_deleted,
        )
    return sessions_deleted, attempts_deleted


def maybe_prune(
    db: Session,
    rate: float | None = None,
    chance: Callable[[], float] = random.random,
) -> tuple[int, int] | None:
    """Prune with probability ``rate``; a rate of 0 turns this off."""
    rate = settings.maintenance_sample_rate if rate is None else rate
    if rate <= 0 or chance() >= rate:
        return None
    return prune_expired(db)
