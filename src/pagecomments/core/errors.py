"""Error taxonomy shared by services and HTTP handlers.

Every error carries the HTTP status it maps to; ``main.py`` serializes all of
them as ``{"error": message}``.
"""

from __future__ import annotations

from collections.abc import Iterable


class CommentServiceError(Exception):
    """Base class for all recognized failure paths."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(CommentServiceError):
    """One or more field rules were violated."""

    status_code = 400
    default_message = "Invalid request"

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors = list(errors)
        super().__init__(", ".join(self.errors) or None)


class InvalidSubmission(CommentServiceError):
    """Submission rejected outright (honeypot field filled in)."""

    status_code = 400
    default_message = "Invalid submission"


class RateLimited(CommentServiceError):
    status_code = 429
    default_message = "Too many requests. Please try again later."


class Unauthorized(CommentServiceError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(CommentServiceError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(CommentServiceError):
    status_code = 404
    default_message = "Not found"


class ParentNotFound(NotFound):
    default_message = "Parent comment not found"


class InternalError(CommentServiceError):
    status_code = 500
