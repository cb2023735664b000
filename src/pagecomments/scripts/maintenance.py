"""Run scheduled housekeeping.

Usage:
    Cron (hourly): python -m pagecomments.scripts.maintenance

Prunes expired admin sessions, old login attempts and aged email queue rows.
"""
from __future__ import annotations

import argparse

from pagecomments.core.logging import configure_logging
from pagecomments.db.session import SessionLocal
from pagecomments.services.maintenance import run_maintenance


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Prune expired sessions and old queue rows")
    parser.parse_args(argv)
    configure_logging()

    with SessionLocal() as db:
        report = run_maintenance(db)

    print(f"Expired sessions deleted: {report.sessions_deleted}")
    print(f"Login attempts deleted: {report.attempts_deleted}")
    print(f"Sent emails deleted: {report.sent_emails_deleted}")
    print(f"Failed emails deleted: {report.failed_emails_deleted}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
