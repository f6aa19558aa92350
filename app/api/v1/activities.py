"""Stored activity feed and live update stream."""

import asyncio
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Query, Request
from fastapi.responses import StreamingResponse

from app.api.deps import Broker, CurrentUserId, DbSession
from app.config import settings
from app.domain import activity_ops
from app.models import ActivityRead, ActivitySource
from app.services.notifications import (
    CONNECTED,
    HEARTBEAT,
    NotificationEvent,
    UserEventBroker,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/activities", tags=["activities"])


@router.get("", response_model=list[ActivityRead])
async def list_activities(
    current_user_id: CurrentUserId,
    db: DbSession,
    limit: int = Query(20, ge=1, le=100),
    source: ActivitySource | None = Query(None, description="Only activities from this provider"),
) -> list[ActivityRead]:
    """Stored activities, most recent event first. Never calls GitHub."""
    activities = await activity_ops.get_recent(
        db,
        current_user_id,
        source=source.value if source else None,
        limit=limit,
    )
    return [ActivityRead.from_activity(a) for a in activities]


async def live_event_stream(
    broker: UserEventBroker,
    user_id: str,
    heartbeat_seconds: float,
    request: Request | None = None,
) -> AsyncIterator[str]:
    """
    Yield SSE frames for one subscriber until the client goes away.

    Starts with a `connected` frame; sends a `heartbeat` whenever nothing
    was published for heartbeat_seconds.
    """
    async with broker.subscribe(user_id) as queue:
        yield NotificationEvent(CONNECTED, {"message": "Live updates connected"}).to_sse()

        while True:
            try:
                async with asyncio.timeout(heartbeat_seconds):
                    event = await queue.get()
            except TimeoutError:
                if request is not None and await request.is_disconnected():
                    logger.debug(f"Live stream client for user {user_id} disconnected")
                    return
                yield NotificationEvent(HEARTBEAT).to_sse()
                continue

            yield event.to_sse()


@router.get("/live")
async def stream_activity_updates(
    request: Request,
    current_user_id: CurrentUserId,
    broker: Broker,
) -> StreamingResponse:
    """Server-Sent Events stream of sync and repository-selection notifications."""
    return StreamingResponse(
        live_event_stream(broker, current_user_id, settings.sse_heartbeat_seconds, request),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
