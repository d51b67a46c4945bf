"""Pydantic models for feed and stats endpoints."""

from typing import Any

from pydantic import BaseModel


class FeedEvent(BaseModel):
    id: str
    ts: str
    type: str
    agent: str | None = None
    targetAgentId: str | None = None  # noqa: N815
    payload: dict[str, Any]


class FeedResponse(BaseModel):
    success: bool = True
    events: list[FeedEvent]
    next_cursor: str | None = None


class StatsResponse(BaseModel):
    success: bool = True
    totals: dict[str, int]
    top_agent: dict[str, Any] | None = None
    last_event_at: str | None = None


class OkResponse(BaseModel):
    success: bool = True
    redacted: bool | None = None
