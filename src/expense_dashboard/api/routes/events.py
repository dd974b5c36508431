import asyncio
from collections.abc import AsyncGenerator
from functools import partial
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from expense_dashboard.api.dependencies import get_broadcaster
from expense_dashboard.core import settings
from expense_dashboard.logger import get_logger
from expense_dashboard.models import InvalidationEvent, MonthScope
from expense_dashboard.services.broadcaster import InvalidationBroadcaster

logger = get_logger(__name__)

router = APIRouter()


def format_sse(event: InvalidationEvent) -> str:
    return f"event: invalidate\ndata: {event.model_dump_json()}\n\n"


def _enqueue_latest(queue: "asyncio.Queue[InvalidationEvent]", event: InvalidationEvent) -> None:
    if queue.full():
        # Client is not reading; keep the newest invalidations
        dropped = queue.get_nowait()
        logger.warning("[EVENTS] Stream queue full, dropped event for item %s.", dropped.item_id)
    queue.put_nowait(event)


async def stream_events(
    request: Request,
    broadcaster: InvalidationBroadcaster,
    scope: MonthScope | None,
    keepalive: float = settings.SSE_KEEPALIVE_SECONDS,
    queue_size: int = settings.SSE_QUEUE_SIZE,
) -> AsyncGenerator[str, None]:
    queue: asyncio.Queue[InvalidationEvent] = asyncio.Queue(maxsize=queue_size)
    # One subscription per connection, released when the client goes away
    with broadcaster.subscribe(partial(_enqueue_latest, queue), scope=scope):
        yield ": connected\n\n"
        while True:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                if await request.is_disconnected():
                    logger.debug("[EVENTS] Stream client disconnected.")
                    break
                yield ": keepalive\n\n"
                continue
            yield format_sse(event)


@router.get("/api/events")
async def events(
    request: Request,
    broadcaster: Annotated[InvalidationBroadcaster, Depends(get_broadcaster)],
    month: Annotated[int | None, Query(ge=0, le=11)] = None,
    year: Annotated[int | None, Query(ge=1900, le=9999)] = None,
) -> StreamingResponse:
    scope = MonthScope(month=month, year=year) if month is not None and year is not None else None
    return StreamingResponse(
        stream_events(request, broadcaster, scope),
        media_type="text/event-stream",
        headers=settings.SSE_HEADERS,
    )
