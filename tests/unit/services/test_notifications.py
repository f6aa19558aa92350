"""Unit tests for UserEventBroker and safe_publish."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from app.services.notifications import (
    SYNC_COMPLETED,
    NotificationEvent,
    UserEventBroker,
    safe_publish,
)


class TestNotificationEvent:
    def test_to_sse_frame(self):
        frame = NotificationEvent(SYNC_COMPLETED, {"message": "done"}).to_sse()

        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        body = json.loads(frame.removeprefix("data: "))
        assert body["type"] == SYNC_COMPLETED
        assert body["data"] == {"message": "done"}
        assert "timestamp" in body


class TestUserEventBroker:
    @pytest.mark.asyncio
    async def test_delivers_to_subscriber(self):
        broker = UserEventBroker()

        async with broker.subscribe("u1") as queue:
            await broker.publish("u1", NotificationEvent(SYNC_COMPLETED))

            assert queue.get_nowait().type == SYNC_COMPLETED

    @pytest.mark.asyncio
    async def test_fans_out_to_every_subscriber_of_user(self):
        broker = UserEventBroker()

        async with broker.subscribe("u1") as q1, broker.subscribe("u1") as q2:
            await broker.publish("u1", NotificationEvent(SYNC_COMPLETED))

            assert q1.qsize() == 1
            assert q2.qsize() == 1

    @pytest.mark.asyncio
    async def test_other_users_do_not_receive(self):
        broker = UserEventBroker()

        async with broker.subscribe("u2") as queue:
            await broker.publish("u1", NotificationEvent(SYNC_COMPLETED))

            assert queue.empty()

    @pytest.mark.asyncio
    async def test_publish_without_subscribers_is_dropped(self):
        broker = UserEventBroker()

        await broker.publish("u1", NotificationEvent(SYNC_COMPLETED))

        assert broker.subscriber_count("u1") == 0

    @pytest.mark.asyncio
    async def test_full_queue_drops_instead_of_blocking(self):
        broker = UserEventBroker(queue_size=1)

        async with broker.subscribe("u1") as queue:
            await broker.publish("u1", NotificationEvent("first"))
            await broker.publish("u1", NotificationEvent("second"))

            assert queue.qsize() == 1
            assert queue.get_nowait().type == "first"

    @pytest.mark.asyncio
    async def test_unsubscribes_on_exit(self):
        broker = UserEventBroker()

        async with broker.subscribe("u1"):
            assert broker.subscriber_count("u1") == 1

        assert broker.subscriber_count("u1") == 0


class TestSafePublish:
    @pytest.mark.asyncio
    async def test_wraps_payload_in_event(self):
        sink = AsyncMock()

        await safe_publish(sink, "u1", SYNC_COMPLETED, {"n": 1})

        user_id, event = sink.publish.call_args.args
        assert user_id == "u1"
        assert event.type == SYNC_COMPLETED
        assert event.payload == {"n": 1}

    @pytest.mark.asyncio
    async def test_swallows_and_logs_failures(self, caplog):
        sink = AsyncMock()
        sink.publish.side_effect = RuntimeError("boom")

        with caplog.at_level("WARNING"):
            await safe_publish(sink, "u1", SYNC_COMPLETED, {})

        assert "Failed to publish sync_completed" in caplog.text
