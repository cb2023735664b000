# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MAINTENANCE_SAMPLE_RATE", "0")
os.environ.setdefault("EMAIL_WORKER_ENABLED", "false")
os.environ.setdefault("PUBLIC_BASE_URL", "https://comments.example.org")

from pagecomments.core.security import generate_token, hash_password
from pagecomments.core.settings import Settings, settings
from pagecomments.db.session import Base, enable_sqlite_foreign_keys
from pagecomments.db.session import get_db as app_get_session
from pagecomments.db.time import utcnow
from pagecomments.main import app as fastapi_app
from pagecomments.models import AdminSession, Comment, EmailQueueItem, Subscription
from pagecomments.models.comment import STATUS_APPROVED
from pagecomments.models.email_queue import EMAIL_STATUS_PENDING, EMAIL_TYPE_SUBSCRIBER
from pagecomments.services.site_config import SiteConfig, update_site_config

TEST_DB_URL = "sqlite://"
ADMIN_PASSWORD = "correct horse battery"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Services commit, so every test wipes the tables afterwards.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    # https so the Secure session and CSRF cookies round-trip.
    with TestClient(app, base_url="https://test") as test_client:
        yield test_client


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Provide the Settings instance the application was built with."""
    return settings


@pytest.fixture(scope="session")
def admin_password_hash() -> str:
    return hash_password(ADMIN_PASSWORD)


@pytest.fixture()
def configure(db_session: Session) -> Callable[..., SiteConfig]:
    """Write settings-table rows and return the resulting snapshot."""

    def _configure(**changes: Any) -> SiteConfig:
        return update_site_config(db_session, **changes)

    return _configure


@dataclass
class SentMail:
    to: str
    subject: str
    body: str
    to_name: str | None = None


class FakeMailTransport:
    """In-memory mail transport that records deliveries."""

    def __init__(self, fail: bool = False, error: Exception | None = None) -> None:
        self.fail = fail
        self.error = error
        self.sent: list[SentMail] = []
        self.calls = 0

    def send(self, to: str, subject: str, body: str, to_name: str | None = None) -> bool:
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.fail:
            return False
        self.sent.append(SentMail(to, subject, body, to_name))
        return True


@pytest.fixture()
def mail_transport() -> FakeMailTransport:
    return FakeMailTransport()


@pytest.fixture()
def make_comment(db_session: Session) -> Callable[..., Comment]:
    """Insert a comment; approved by default."""

    def _make(**overrides: Any) -> Comment:
        values: dict[str, Any] = {
            "page_url": "/blog/hello/",
            "author_name": "Alice",
            "author_email": "alice@example.org",
            "content": "A perfectly ordinary comment.",
            "status": STATUS_APPROVED,
            "ip_address": "10.0.0.1",
        }
        values.update(overrides)
        comment = Comment(**values)
        db_session.add(comment)
        db_session.commit()
        db_session.refresh(comment)
        return comment

    return _make


@pytest.fixture()
def make_subscription(db_session: Session) -> Callable[..., Subscription]:
    def _make(**overrides: Any) -> Subscription:
        values: dict[str, Any] = {
            "page_url": "/blog/hello/",
            "email": "reader@example.org",
            "token": generate_token(),
            "active": 1,
        }
        values.update(overrides)
        subscription = Subscription(**values)
        db_session.add(subscription)
        db_session.commit()
        db_session.refresh(subscription)
        return subscription

    return _make


@pytest.fixture()
def make_email(db_session: Session) -> Callable[..., EmailQueueItem]:
    def _make(**overrides: Any) -> EmailQueueItem:
        values: dict[str, Any] = {
            "recipient_email": "reader@example.org",
            "email_type": EMAIL_TYPE_SUBSCRIBER,
            "subject": "New comment on /blog/hello/",
            "body": "Hello,\n",
            "status": EMAIL_STATUS_PENDING,
        }
        values.update(overrides)
        item = EmailQueueItem(**values)
        db_session.add(item)
        db_session.commit()
        db_session.refresh(item)
        return item

    return _make


@pytest.fixture()
def make_admin_session(db_session: Session) -> Callable[..., AdminSession]:
    def _make(lifetime: timedelta = timedelta(days=1), **overrides: Any) -> AdminSession:
        now = utcnow()
        values: dict[str, Any] = {
            "token": generate_token(),
            "created_at": now,
            "expires_at": now + lifetime,
            "last_activity": now,
        }
        values.update(overrides)
        session = AdminSession(**values)
        db_session.add(session)
        db_session.commit()
        db_session.refresh(session)
        return session

    return _make


@dataclass
class AdminAuth:
    session_token: str
    csrf_token: str


@pytest.fixture()
def admin_auth(
    client: TestClient, make_admin_session: Callable[..., AdminSession]
) -> AdminAuth:
    """Put a live admin session and a CSRF cookie on ``client``."""
    session = make_admin_session()
    csrf = generate_token()
    client.cookies.set(settings.admin_cookie_name, session.token)
    client.cookies.set(settings.csrf_cookie_name, csrf)
    return AdminAuth(session_token=session.token, csrf_token=csrf)


def minutes_ago(minutes: float) -> datetime:
    return utcnow() - timedelta(minutes=minutes)
