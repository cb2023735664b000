"""Turn on email notifications and optionally set the admin address."""
from __future__ import annotations

import argparse

from pagecomments.db.session import SessionLocal
from pagecomments.services.site_config import update_site_config
from pagecomments.utils.validators import is_valid_email


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Enable comment notification emails")
    parser.add_argument("--admin-email", default=None, help="Address that gets every new comment")
    parser.add_argument("--disable", action="store_true", help="Turn notifications off instead")
    args = parser.parse_args(argv)

    changes: dict[str, object] = {"enable_notifications": not args.disable}
    if args.admin_email is not None:
        if args.admin_email and not is_valid_email(args.admin_email):
            print(f"Error: invalid email address {args.admin_email!r}")
            return 1
        changes["admin_email"] = args.admin_email

    with SessionLocal() as db:
        config = update_site_config(db, **changes)

    state = "ENABLED" if config.enable_notifications else "DISABLED"
    print(f"Email notifications {state}")
    print(f"  admin_email: {config.admin_email or '(not set)'}")
    print("\nNotes:")
    print("1. Notifications are only sent for new comments")
    print("2. Authors never receive notifications for their own comments")
    print("3. The process_email_queue worker must be running to deliver them")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
