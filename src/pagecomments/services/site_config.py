"""Typed snapshot of the admin-mutable ``settings`` table.

Handlers load one :class:`SiteConfig` per request instead of looking up
individual keys, and write changes back through :func:`update_site_config`.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import select
from sqlalchemy.orm import Session

from pagecomments.core.settings import settings
from pagecomments.models import SettingRow

logger = logging.getLogger(__name__)

# Rows seeded by setup tooling; values are stored as text.
DEFAULT_SETTINGS: dict[str, str] = {
    "admin_password_hash": "",
    "require_moderation": "true",
    "allow_guest_comments": "true",
    "max_comment_length": str(settings.max_comment_length),
    "enable_notifications": "false",
    "admin_email": "",
}

_BOOL_KEYS = {"require_moderation", "allow_guest_comments", "enable_notifications"}


class SiteConfig(BaseModel):
    """Runtime policy read from the settings table."""

    admin_password_hash: str = ""
    require_moderation: bool = True
    allow_guest_comments: bool = True
    max_comment_length: int = Field(default=settings.max_comment_length, ge=1)
    enable_notifications: bool = False
    admin_email: str = ""
    # Legacy single admin credential issued before per-browser sessions existed.
    admin_token: str = ""

    @field_validator("require_moderation", "allow_guest_comments", "enable_notifications",
                     mode="before")
    @classmethod
    def _parse_flag(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("1", "true", "yes", "on")

    @field_validator("max_comment_length", mode="before")
    @classmethod
    def _parse_length(cls, value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return settings.max_comment_length


def load_site_config(db: Session) -> SiteConfig:
    """Read every known key from the settings table into a snapshot."""
    rows = db.execute(select(SettingRow.key, SettingRow.value)).all()
    values = {key: value for key, value in rows if key in SiteConfig.model_fields}
    return SiteConfig.model_validate(values)


def _serialize(key: str, value: Any) -> str:
    if key in _BOOL_KEYS:
        return "true" if value else "false"
    return "" if value is None else str(value)


def update_site_config(db: Session, **changes: Any) -> SiteConfig:
    """Persist ``changes`` (insert-or-replace per key) and return a fresh snapshot."""
    for key, value in changes.items():
        if key not in SiteConfig.model_fields:
            raise KeyError(f"Unknown setting: {key}")
        row = db.get(SettingRow, key)
        if row is None:
            db.add(SettingRow(key=key, value=_serialize(key, value)))
        else:
            row.value = _serialize(key, value)
    db.commit()
    logger.info("Updated settings: %s", ", ".join(sorted(changes)))
    return load_site_config(db)


def delete_setting(db: Session, key: str) -> None:
    row = db.get(SettingRow, key)
    if row is not None:
        db.delete(row)
        db.commit()


def seed_default_settings(db: Session) -> int:
    """Insert missing default rows without touching existing ones."""
    created = 0
    for key, value in DEFAULT_SETTINGS.items():
        if db.get(SettingRow, key) is None:
            db.add(SettingRow(key=key, value=value))
            created += 1
    db.commit()
    return created
