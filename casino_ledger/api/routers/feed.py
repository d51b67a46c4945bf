"""Router for the public feed, its SSE stream and aggregate stats."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool

from casino_ledger.api.dependencies import get_service
from casino_ledger.api.models import FeedResponse, StatsResponse
from casino_ledger.core.events import Event
from casino_ledger.service import CasinoService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["feed"])


def format_sse(event: Event) -> str:
    """One Server-Sent Events frame; the id is the event's cursor."""
    data = json.dumps(event.to_feed_dict(), separators=(",", ":"))
    return f"id: {event.cursor}\nevent: feed\ndata: {data}\n\n"


@router.get("/feed", response_model=FeedResponse)
def feed(
    before: str | None = Query(None, description="Cursor: only events older than this timestamp"),
    limit: int = Query(50, ge=1),
    agent: str | None = Query(None, description="Agent name filter"),
    type: list[str] | None = Query(None, description="Event type filter (repeatable)"),
    service: CasinoService = Depends(get_service),
) -> FeedResponse:
    """Newest-first page of public events. ``limit`` is capped at the
    configured page size; pass ``next_cursor`` as ``before`` to page back."""
    events = service.list_events(before=before, limit=limit, agent=agent, types=type)
    return FeedResponse(
        events=[e.to_feed_dict() for e in events],
        next_cursor=events[-1].cursor if events else None,
    )


@router.get("/feed/stream")
async def feed_stream(
    request: Request,
    since: str | None = Query(None, description="Cursor: only events newer than this timestamp"),
    service: CasinoService = Depends(get_service),
) -> StreamingResponse:
    """Follow the feed as Server-Sent Events until the client disconnects."""
    poll_interval = service.config.feed.poll_interval_seconds
    # Validate the cursor before the stream starts so errors get a JSON body.
    await run_in_threadpool(service.events_since, since, 1)

    async def frames() -> AsyncIterator[str]:
        cursor = since
        yield ":ok\n\n"
        while not await request.is_disconnected():
            batch = await run_in_threadpool(service.events_since, cursor)
            for event in batch:
                cursor = event.cursor
                yield format_sse(event)
            if not batch:
                await asyncio.sleep(poll_interval)
        logger.debug("Feed stream closed at cursor=%s", cursor)

    return StreamingResponse(
        frames(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache, no-transform", "Connection": "keep-alive"},
    )


@router.get("/stats", response_model=StatsResponse)
def stats(service: CasinoService = Depends(get_service)) -> StatsResponse:
    return StatsResponse(**service.stats())
