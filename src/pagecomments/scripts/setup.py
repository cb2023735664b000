"""First-run setup: create tables, seed settings and a default password.

Usage:
    python -m pagecomments.scripts.setup
"""
from __future__ import annotations

import argparse

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pagecomments.core.logging import configure_logging
from pagecomments.core.security import hash_password
from pagecomments.core.settings import settings
from pagecomments.db.session import SessionLocal, create_tables
from pagecomments.models import Comment
from pagecomments.services.site_config import (
    load_site_config,
    seed_default_settings,
    update_site_config,
)

DEFAULT_PASSWORD = "admin"


def run_setup(db: Session, default_password: str = DEFAULT_PASSWORD) -> list[str]:
    """Seed settings and set a password if none exists; return report lines."""
    lines: list[str] = []

    created = seed_default_settings(db)
    lines.append(f"  Seeded {created} default settings")

    config = load_site_config(db)
    if config.admin_password_hash:
        lines.append("  Admin password already set")
        lines.append("  To change it, run: python -m pagecomments.scripts.set_password")
    else:
        update_site_config(db, admin_password_hash=hash_password(default_password))
        lines.append("  Default admin password set")
        lines.append(f"  Default password: {default_password}")
        lines.append("  IMPORTANT: Change this password immediately!")

    count = db.scalar(select(func.count(Comment.id))) or 0
    lines.append(f"  Current comment count: {count}")
    return lines


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Initialize the comment database")
    parser.add_argument(
        "--skip-create",
        action="store_true",
        help="Assume tables exist (e.g. created by alembic upgrade head).",
    )
    args = parser.parse_args(argv)
    configure_logging()

    print("=== Comment System Setup ===\n")
    print(f"Database: {settings.effective_database_url}")
    try:
        if not args.skip_create:
            create_tables()
            print("  Tables created")
        with SessionLocal() as db:
            for line in run_setup(db):
                print(line)
    except SQLAlchemyError as exc:
        print(f"  Setup failed: {exc}")
        return 1

    print(f"  Allowed origins: {', '.join(settings.cors_origins)}")
    print("\n=== Setup Complete ===")
    print("Next steps:")
    print("1. Change the admin password")
    print("2. Set CORS_ORIGINS to the sites that embed the widget")
    print("3. Run process_email_queue from cron or with --daemon")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
