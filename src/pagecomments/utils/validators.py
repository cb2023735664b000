"""Input validation helpers shared by admission control and notifications."""

from __future__ import annotations

from urllib.parse import urlsplit

from email_validator import EmailNotValidError, validate_email


def is_valid_email(address: str | None) -> bool:
    """Return True for a syntactically valid address; no DNS lookups."""
    if not address:
        return False
    try:
        validate_email(address, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def sanitize_url(url: str | None) -> str | None:
    """Keep absolute http(s) URLs with a host; anything else becomes None."""
    if not url:
        return None
    url = url.strip()
    parts = urlsplit(url)
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        return None
    return url
