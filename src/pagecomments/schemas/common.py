"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Generic acknowledgement returned by mutating endpoints."""

    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Shape of every error body."""

    error: str = Field(..., description="Human-readable failure reason.")
