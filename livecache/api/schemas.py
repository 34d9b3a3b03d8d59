"""Pydantic response models for the livecache REST API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error envelope returned by every failing endpoint."""

    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    subscriptions: int


class SubscriptionStatus(BaseModel):
    """Summary of one registered subscription."""

    name: str
    state: str
    size: int
    version: int
    last_error: str | None = None


class SubscriptionList(BaseModel):
    subscriptions: list[SubscriptionStatus] = Field(default_factory=list)


class ResultsResponse(BaseModel):
    """Current result sequence of a subscription.

    ``documents`` is omitted (null) when the caller already holds the
    current version.
    """

    name: str
    version: int
    changed: bool
    size: int
    documents: list[Any] | None = None
