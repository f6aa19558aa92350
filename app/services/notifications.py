"""
Per-user notification sink for live dashboard updates.

The sync orchestrator and the selection filter publish events here; the
live SSE endpoint subscribes. Delivery is fire-and-forget and at-most-once:
publish() never blocks and never raises, and a subscriber whose queue is
full simply misses events.
"""

import asyncio
import json
import logging
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

logger = logging.getLogger(__name__)

# Event types
SYNC_COMPLETED = "sync_completed"
SYNC_FAILED = "sync_failed"
REPOSITORY_UPDATE = "repository_update"
CONNECTED = "connected"
HEARTBEAT = "heartbeat"


@dataclass
class NotificationEvent:
    type: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_sse(self) -> str:
        """Encode as a Server-Sent Events `data:` frame."""
        message = json.dumps(
            {
                "type": self.type,
                "data": self.payload,
                "timestamp": self.timestamp.isoformat(),
            },
            default=str,
        )
        return f"data: {message}\n\n"


class NotificationSink(Protocol):
    async def publish(self, user_id: str, event: NotificationEvent) -> None: ...


class UserEventBroker:
    """In-process fan-out of events to each user's live subscribers."""

    def __init__(self, queue_size: int = 100):
        self._queue_size = queue_size
        self._subscribers: dict[str, set[asyncio.Queue[NotificationEvent]]] = defaultdict(set)

    def subscriber_count(self, user_id: str) -> int:
        return len(self._subscribers.get(user_id, ()))

    async def publish(self, user_id: str, event: NotificationEvent) -> None:
        """Deliver to every current subscriber of the user; drop if nobody listens."""
        for queue in list(self._subscribers.get(user_id, ())):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"Dropping {event.type} for user {user_id}: subscriber queue full")

    @asynccontextmanager
    async def subscribe(self, user_id: str) -> AsyncIterator[asyncio.Queue[NotificationEvent]]:
        """Register a subscriber queue for the lifetime of the context."""
        queue: asyncio.Queue[NotificationEvent] = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers[user_id].add(queue)
        logger.debug(f"Live subscriber added for user {user_id}")
        try:
            yield queue
        finally:
            subscribers = self._subscribers.get(user_id)
            if subscribers is not None:
                subscribers.discard(queue)
                if not subscribers:
                    del self._subscribers[user_id]
            logger.debug(f"Live subscriber removed for user {user_id}")


async def safe_publish(
    sink: NotificationSink,
    user_id: str,
    event_type: str,
    payload: dict[str, Any],
) -> None:
    """Publish through any sink, logging and swallowing failures."""
    try:
        await sink.publish(user_id, NotificationEvent(type=event_type, payload=payload))
    except Exception as e:
        logger.warning(f"Failed to publish {event_type} for user {user_id}: {e}")
