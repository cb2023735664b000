# tests/test_auth.py
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from pagecomments.core.errors import Forbidden, RateLimited, Unauthorized
from pagecomments.core.security import generate_token, hash_password, verify_password
from pagecomments.core.settings import settings
from pagecomments.db.time import as_utc, utcnow
from pagecomments.models import AdminSession, LoginAttempt
from pagecomments.services import auth as auth_service
from pagecomments.services.site_config import SiteConfig
from tests.conftest import ADMIN_PASSWORD


@pytest.fixture()
def config(admin_password_hash) -> SiteConfig:
    return SiteConfig(admin_password_hash=admin_password_hash)


def _count(db_session, model) -> int:
    return db_session.scalar(select(func.count(model.id)))


def test_password_hashing_round_trip() -> None:
    hashed = hash_password("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("anything", "")
    assert not verify_password("anything", "not-a-hash")


def test_login_opens_session(db_session, config) -> None:
    result = auth_service.login(db_session, ADMIN_PASSWORD, "10.0.0.1", "pytest", config)

    session = db_session.scalar(select(AdminSession))
    assert session.token == result.session_token
    assert session.user_agent == "pytest"
    assert as_utc(session.expires_at) - utcnow() > timedelta(
        seconds=settings.session_lifetime_seconds - 60
    )
    assert len(result.csrf_token) == 64
    assert auth_service.is_admin(db_session, result.session_token, config)

    attempt = db_session.scalar(select(LoginAttempt))
    assert attempt.success is True


def test_login_keeps_existing_csrf_cookie(db_session, config) -> None:
    existing = generate_token()
    result = auth_service.login(
        db_session, ADMIN_PASSWORD, "10.0.0.1", None, config, csrf_cookie=existing
    )
    assert result.csrf_token == existing


def test_wrong_password(db_session, config) -> None:
    with pytest.raises(Unauthorized) as excinfo:
        auth_service.login(db_session, "nope", "10.0.0.1", None, config)
    assert excinfo.value.message == "Invalid password"
    assert _count(db_session, AdminSession) == 0
    assert _count(db_session, LoginAttempt) == 1


def test_no_password_configured_never_logs_in(db_session) -> None:
    with pytest.raises(Unauthorized):
        auth_service.login(db_session, "", "10.0.0.1", None, SiteConfig())


def test_failed_logins_are_throttled_per_ip(db_session, config) -> None:
    for _ in range(settings.login_max_failures):
        with pytest.raises(Unauthorized):
            auth_service.login(db_session, "nope", "10.0.0.1", None, config)

    with pytest.raises(RateLimited) as excinfo:
        auth_service.login(db_session, ADMIN_PASSWORD, "10.0.0.1", None, config)
    assert excinfo.value.message == "Too many login attempts. Please try again later."

    # Another address is unaffected.
    auth_service.login(db_session, ADMIN_PASSWORD, "10.0.0.2", None, config)


def test_successful_logins_do_not_count_toward_throttle(db_session, config) -> None:
    for _ in range(settings.login_max_failures + 1):
        auth_service.login(db_session, ADMIN_PASSWORD, "10.0.0.1", None, config)
    assert _count(db_session, AdminSession) == settings.login_max_failures + 1


def test_old_failures_fall_out_of_the_window(db_session, config) -> None:
    old = utcnow() - timedelta(seconds=settings.login_window_seconds + 10)
    for _ in range(settings.login_max_failures):
        db_session.add(LoginAttempt(ip_address="10.0.0.1", attempted_at=old, success=False))
    db_session.commit()

    auth_service.login(db_session, ADMIN_PASSWORD, "10.0.0.1", None, config)


def test_expired_session_is_not_admin(db_session, make_admin_session, config) -> None:
    session = make_admin_session(lifetime=timedelta(seconds=-1))
    assert not auth_service.is_admin(db_session, session.token, config)


def test_session_check_touches_last_activity(db_session, make_admin_session, config) -> None:
    earlier = utcnow() - timedelta(hours=2)
    session = make_admin_session(last_activity=earlier)

    assert auth_service.is_admin(db_session, session.token, config)

    db_session.refresh(session)
    assert as_utc(session.last_activity) > earlier


def test_legacy_admin_token(db_session, config) -> None:
    legacy = config.model_copy(update={"admin_token": generate_token()})
    assert auth_service.is_admin(db_session, legacy.admin_token, legacy)
    assert not auth_service.is_admin(db_session, generate_token(), legacy)
    assert not auth_service.is_admin(db_session, None, legacy)
    # An unset legacy token never matches an empty credential.
    assert not auth_service.is_admin(db_session, "", config)


def test_issue_csrf_token() -> None:
    existing = generate_token()
    assert auth_service.issue_csrf_token(existing) == existing
    fresh = auth_service.issue_csrf_token("garbage")
    assert fresh != "garbage"
    assert len(fresh) == 64
    assert auth_service.issue_csrf_token(None) != auth_service.issue_csrf_token(None)


def test_validate_csrf() -> None:
    token = generate_token()
    auth_service.validate_csrf(token, token)
    for cookie, presented in ((token, generate_token()), (token, None), (None, token), ("", "")):
        with pytest.raises(Forbidden) as excinfo:
            auth_service.validate_csrf(cookie, presented)
        assert excinfo.value.message == "Invalid CSRF token"


def test_logout(db_session, make_admin_session, config) -> None:
    session = make_admin_session()
    assert auth_service.logout(db_session, session.token)
    assert not auth_service.is_admin(db_session, session.token, config)
    assert not auth_service.logout(db_session, session.token)
    assert not auth_service.logout(db_session, None)


def test_prune_expired(db_session, make_admin_session) -> None:
    make_admin_session(lifetime=timedelta(seconds=-5))
    make_admin_session()
    now = utcnow()
    db_session.add_all(
        [
            LoginAttempt(ip_address="10.0.0.1", attempted_at=now - timedelta(days=8)),
            LoginAttempt(ip_address="10.0.0.1", attempted_at=now - timedelta(days=1)),
        ]
    )
    db_session.commit()

    assert auth_service.prune_expired(db_session) == (1, 1)
    assert _count(db_session, AdminSession) == 1
    assert _count(db_session, LoginAttempt) == 1


def test_maybe_prune_samples(db_session, make_admin_session) -> None:
    make_admin_session(lifetime=timedelta(seconds=-5))

    assert auth_service.maybe_prune(db_session, rate=0) is None
    assert auth_service.maybe_prune(db_session, rate=0.5, chance=lambda: 0.9) is None
    assert auth_service.maybe_prune(db_session, rate=0.5, chance=lambda: 0.1) == (1, 0)
