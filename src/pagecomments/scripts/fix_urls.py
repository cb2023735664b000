"""Rewrite page URLs mangled by the TalkYard import."""
from __future__ import annotations

import argparse

from pagecomments.adapters import fix_imported_urls
from pagecomments.core.logging import configure_logging
from pagecomments.db.session import SessionLocal


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Fix TalkYard URL mapping")
    parser.add_argument("--host", required=True, help="Site host, e.g. blog.example.org")
    parser.add_argument("--dry-run", action="store_true", help="Only print the rewrites")
    args = parser.parse_args(argv)
    configure_logging()

    with SessionLocal() as db:
        report = fix_imported_urls(db, args.host, dry_run=args.dry_run)

    for old, new in report.rewrites.items():
        print(f"Fix: {old}\n ->  {new}\n")
    for url in report.skipped:
        print(f"Skip (TalkYard internal): {url}")
    print("\n=== Summary ===")
    print(f"URLs fixed: {report.comments_updated} comments updated")
    print(f"Skipped: {len(report.skipped)} TalkYard internal pages")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
