"""Subscription-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SubscriptionResponse(BaseModel):
    id: int
    page_url: str
    email: str
    token: str
    subscribed_at: datetime
    active: int

    model_config = ConfigDict(from_attributes=True)


class SubscriptionList(BaseModel):
    subscriptions: list[SubscriptionResponse]
    total: int
    limit: int
    offset: int


class ToggleSubscriptionRequest(BaseModel):
    token: str = ""
    active: int = 1
    csrf_token: str | None = None

    model_config = ConfigDict(extra="ignore")


class DiagnosticEmailRequest(BaseModel):
    email: str = ""
    page_url: str = "/"
    csrf_token: str | None = None

    model_config = ConfigDict(extra="ignore")
