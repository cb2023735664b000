"""Print a health report: comment, queue and subscription counts, settings."""
from __future__ import annotations

import argparse

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pagecomments.core.settings import settings
from pagecomments.db.session import SessionLocal
from pagecomments.models import Comment, EmailQueueItem, Subscription
from pagecomments.services.site_config import load_site_config

# Never printed.
SECRET_SETTINGS = {"admin_password_hash", "admin_token"}


def top_pages(db: Session, limit: int = 10) -> list[tuple[str, int]]:
    count = func.count(Comment.id)
    rows = db.execute(
        select(Comment.page_url, count)
        .group_by(Comment.page_url)
        .order_by(count.desc())
        .limit(limit)
    ).all()
    return [(page_url, total) for page_url, total in rows]


def counts_by_status(db: Session, column) -> dict[str, int]:
    rows = db.execute(select(column, func.count()).group_by(column)).all()
    return {status: total for status, total in rows}


def build_report(db: Session) -> dict[str, object]:
    config = load_site_config(db)
    return {
        "database": settings.effective_database_url,
        "comments": counts_by_status(db, Comment.status),
        "email_queue": counts_by_status(db, EmailQueueItem.status),
        "subscriptions": {
            "active": db.scalar(
                select(func.count(Subscription.id)).where(Subscription.active == 1)
            ) or 0,
            "total": db.scalar(select(func.count(Subscription.id))) or 0,
        },
        "settings": {
            key: value
            for key, value in config.model_dump().items()
            if key not in SECRET_SETTINGS
        },
        "admin_password_set": bool(config.admin_password_hash),
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Show comment system status")
    parser.parse_args(argv)

    with SessionLocal() as db:
        report = build_report(db)

    for section, value in report.items():
        if isinstance(value, dict):
            print(f"{section}:")
            for key, item in value.items():
                print(f"  {key}: {item}")
        else:
            print(f"{section}: {value}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
