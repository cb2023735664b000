"""Import comments from a TalkYard JSON export.

Usage:
    python -m pagecomments.scripts.import_talkyard path/to/talkyard-export.json
"""
from __future__ import annotations

import argparse
import json
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from pagecomments.adapters import import_comments, parse_talkyard_export
from pagecomments.core.logging import configure_logging
from pagecomments.db.session import SessionLocal
from pagecomments.scripts.status import top_pages


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Import a TalkYard JSON export")
    parser.add_argument("path", type=Path, help="TalkYard export file")
    args = parser.parse_args(argv)
    configure_logging()

    if not args.path.exists():
        print(f"Error: File not found: {args.path}")
        return 1

    try:
        records = parse_talkyard_export(args.path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        print(f"Error parsing JSON file: {exc}")
        return 1
    print(f"Prepared {len(records)} comments to import")

    with SessionLocal() as db:
        try:
            report = import_comments(db, records, progress_every=50)
        except SQLAlchemyError as exc:
            print(f"Error importing comments: {exc}")
            return 1
        print(f"\nImported {report.imported} comments across {len(report.pages)} pages")
        print("\nTop 10 pages by comment count:")
        for page_url, count in top_pages(db):
            print(f"  {page_url}: {count} comments")

    print("\nTalkYard 'comments-for-https...' paths were converted back to URLs.")
    print("If any look wrong, run: python -m pagecomments.scripts.fix_urls --host <your-host>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
