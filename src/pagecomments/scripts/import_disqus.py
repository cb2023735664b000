"""Import comments from a Disqus XML export.

Usage:
    python -m pagecomments.scripts.import_disqus path/to/disqus-export.xml
"""
from __future__ import annotations

import argparse
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from pagecomments.adapters import import_comments, parse_disqus_export
from pagecomments.core.logging import configure_logging
from pagecomments.db.session import SessionLocal
from pagecomments.scripts.status import top_pages


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Import a Disqus XML export")
    parser.add_argument("path", type=Path, help="Disqus export file")
    args = parser.parse_args(argv)
    configure_logging()

    if not args.path.exists():
        print(f"Error: File not found: {args.path}")
        return 1

    try:
        records = parse_disqus_export(args.path.read_bytes())
    except ValueError as exc:
        print(f"Error parsing XML file: {exc}")
        return 1
    print(f"Found {len(records)} comments to import")

    with SessionLocal() as db:
        try:
            report = import_comments(db, records)
        except SQLAlchemyError as exc:
            print(f"Error importing comments: {exc}")
            return 1
        print(f"\nImported {report.imported} comments across {len(report.pages)} pages")
        if report.orphaned:
            print(f"  {len(report.orphaned)} replies had no parent and were imported top-level")
        print("\nTop 10 pages by comment count:")
        for page_url, count in top_pages(db):
            print(f"  {page_url}: {count} comments")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
