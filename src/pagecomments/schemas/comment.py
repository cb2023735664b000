"""Comment-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    field_validator,
    model_serializer,
)


class CommentCreate(BaseModel):
    """Body of ``POST /api/post``.

    Fields are deliberately lenient; admission control reports every
    violated rule at once instead of failing on the first.
    """

    page_url: str = ""
    parent_id: int | None = None
    author_name: str = ""
    author_email: str = ""
    author_url: str | None = None
    content: str = ""
    subscribe: bool = False
    # Honeypot: hidden from humans, bots tend to fill it in.
    website: str = ""

    model_config = ConfigDict(extra="ignore")

    @field_validator("page_url", "author_name", "author_email", "content", "website",
                     mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("parent_id", mode="before")
    @classmethod
    def _blank_parent(cls, value: object) -> object:
        if value in ("", 0, "0"):
            return None
        return value


class CommentCreated(BaseModel):
    success: bool = True
    id: int
    status: str
    message: str
    trusted: bool


class CommentNode(BaseModel):
    """A comment as delivered to the widget, with nested replies."""

    id: int
    page_url: str
    parent_id: int | None
    author_name: str
    author_email: str | None = None
    author_url: str | None
    content: str
    created_at: datetime
    status: str
    replies: list[CommentNode] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    @model_serializer(mode="wrap")
    def _omit_hidden_email(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        # Anonymous viewers get no author_email key at all, at every depth.
        data = handler(self)
        if self.author_email is None:
            data.pop("author_email", None)
        return data


class ThreadResponse(BaseModel):
    comments: list[CommentNode]
    total: int
    has_more: bool
    limit: int
    offset: int


class RecentComment(BaseModel):
    id: int
    page_url: str
    author_name: str
    author_url: str | None
    content: str
    excerpt: str
    created_at: datetime


class RecentResponse(BaseModel):
    comments: list[RecentComment]


class AdminComment(BaseModel):
    """Flat comment row for admin listings."""

    id: int
    page_url: str
    parent_id: int | None
    author_name: str
    author_email: str
    author_url: str | None
    content: str
    created_at: datetime
    status: str
    ip_address: str | None

    model_config = ConfigDict(from_attributes=True)


class AdminCommentList(BaseModel):
    comments: list[AdminComment]
    total: int
    limit: int
    offset: int


class ModerateRequest(BaseModel):
    status: str = ""
    csrf_token: str | None = None

    model_config = ConfigDict(extra="ignore")


CommentNode.model_rebuild()
