"""Set the admin password interactively.

Also removes the legacy ``admin_token`` so older cookies stop working.
"""
from __future__ import annotations

import argparse
import getpass

from sqlalchemy.orm import Session

from pagecomments.core.security import hash_password
from pagecomments.db.session import SessionLocal
from pagecomments.services.site_config import delete_setting, update_site_config

MIN_PASSWORD_LENGTH = 8


def set_admin_password(db: Session, password: str) -> None:
    if not password:
        raise ValueError("Password cannot be empty")
    update_site_config(db, admin_password_hash=hash_password(password))
    delete_setting(db, "admin_token")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Set the admin password")
    parser.parse_args(argv)

    print("=== Set Admin Password ===\n")
    password = getpass.getpass("Enter new admin password: ")
    if not password:
        print("Error: Password cannot be empty")
        return 1
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"Warning: Password should be at least {MIN_PASSWORD_LENGTH} characters")
        if input("Continue anyway? (y/n): ").strip().lower() != "y":
            print("Cancelled")
            return 1
    if getpass.getpass("Confirm password: ") != password:
        print("Error: Passwords do not match")
        return 1

    with SessionLocal() as db:
        set_admin_password(db, password)
    print("\nPassword updated successfully!")
    print("You can now log in to the admin panel with your new password.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
