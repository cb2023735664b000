"""Deterministic, additive spam heuristics for new comments."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from pagecomments.core.settings import settings

SPAM_KEYWORDS: tuple[str, ...] = (
    "viagra",
    "cialis",
    "pharmacy",
    "poker",
    "casino",
    "loan",
    "mortgage",
    "seo services",
    "buy now",
)
SUSPICIOUS_EMAIL_DOMAINS: tuple[str, ...] = ("example.com", "test.com", "tempmail", "disposable")

_LINK_RE = re.compile(r"(https?://|www\.)", re.IGNORECASE)
_SHOUTING_RE = re.compile(r"[A-Z]{10,}")

MAX_LINKS = 3
MIN_CONTENT_LENGTH = 10
MAX_CONTENT_LENGTH = 4000


@dataclass
class SpamScore:
    """Total score plus the rules that contributed to it."""

    score: int = 0
    reasons: list[str] = field(default_factory=list)

    def add(self, points: int, reason: str) -> None:
        self.score += points
        self.reasons.append(reason)

    @property
    def is_spam(self) -> bool:
        return self.score >= settings.spam_threshold


def score_spam(content: str, author_name: str, author_email: str) -> SpamScore:
    """Score a submission.

    Rules:
        +2 when content holds more than three URL-like substrings
        +3 per spam keyword found in the content or the author name
        +1 for a run of ten or more capital letters
        +1 per suspicious domain fragment in the email
        +1 when the content is shorter than 10 or longer than 4000 characters
    """
    result = SpamScore()

    link_count = len(_LINK_RE.findall(content))
    if link_count > MAX_LINKS:
        result.add(2, f"{link_count} links")

    lowered_content = content.lower()
    lowered_name = author_name.lower()
    for keyword in SPAM_KEYWORDS:
        if keyword in lowered_content or keyword in lowered_name:
            result.add(3, f"keyword '{keyword}'")

    if _SHOUTING_RE.search(content):
        result.add(1, "excessive capitals")

    lowered_email = author_email.lower()
    for domain in SUSPICIOUS_EMAIL_DOMAINS:
        if domain in lowered_email:
            result.add(1, f"suspicious email '{domain}'")

    if len(content) < MIN_CONTENT_LENGTH:
        result.add(1, "content too short")
    if len(content) > MAX_CONTENT_LENGTH:
        result.add(1, "content too long")

    return result
