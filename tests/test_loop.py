"""Tests for the dispatch loop."""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from loguru import logger

from relaybot.bus.queue import MessageBus
from relaybot.dispatcher.loop import DispatchLoop


@pytest.fixture
def dispatcher(composer):
    dispatcher = MagicMock()
    dispatcher.composer = composer
    dispatcher.on_message = AsyncMock()
    return dispatcher


@pytest.fixture
def log_messages():
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record), level="DEBUG")
    yield messages
    logger.remove(handler_id)


class TestHandle:
    """Test handling of a single event."""

    @pytest.mark.asyncio
    async def test_forwards_to_dispatcher(self, dispatcher, event_factory):
        loop = DispatchLoop(MessageBus(), dispatcher)
        event = event_factory("hello")

        await loop.handle(event)

        dispatcher.on_message.assert_awaited_once_with(event)

    @pytest.mark.asyncio
    async def test_stale_message_skipped(self, dispatcher, event_factory):
        started = datetime.now()
        loop = DispatchLoop(MessageBus(), dispatcher, started_at=started)

        await loop.handle(event_factory("hello", timestamp=started - timedelta(minutes=5)))

        dispatcher.on_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ping(self, dispatcher, sent, event_factory):
        loop = DispatchLoop(MessageBus(), dispatcher)

        await loop.handle(event_factory("/ping"))

        assert sent.texts == ["pong"]
        dispatcher.on_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ping_in_group_replies_to_room(self, dispatcher, sent, event_factory):
        loop = DispatchLoop(MessageBus(), dispatcher)
        await loop.handle(event_factory("/ping", room="Room"))
        assert sent[0].chat_id == "@@room"

    @pytest.mark.asyncio
    async def test_exception_logged_not_raised(self, dispatcher, event_factory, log_messages):
        dispatcher.on_message.side_effect = RuntimeError("send failed")
        loop = DispatchLoop(MessageBus(), dispatcher)

        await loop.handle(event_factory("hello"))

        errors = [r for r in log_messages if r["level"].name == "ERROR"]
        assert len(errors) == 1
        assert "Alice" in errors[0]["message"]
        assert errors[0]["exception"] is not None

    @pytest.mark.asyncio
    async def test_locks_released(self, dispatcher, event_factory):
        loop = DispatchLoop(MessageBus(), dispatcher)
        await loop.handle(event_factory("hello"))
        assert loop._locks == {}
        assert loop._pending == {}


class TestOrdering:
    """Test per-conversation ordering."""

    @staticmethod
    def recording_dispatcher(composer, delays):
        order = []

        async def on_message(event):
            order.append(("start", event.raw_text))
            await asyncio.sleep(delays.get(event.raw_text, 0))
            order.append(("end", event.raw_text))

        dispatcher = MagicMock()
        dispatcher.composer = composer
        dispatcher.on_message = on_message
        return dispatcher, order

    @pytest.mark.asyncio
    async def test_same_conversation_serialized(self, composer, event_factory):
        dispatcher, order = self.recording_dispatcher(composer, {"first": 0.05})
        loop = DispatchLoop(MessageBus(), dispatcher)

        loop._schedule(event_factory("first"))
        loop._schedule(event_factory("second"))
        await loop.drain()

        assert order == [
            ("start", "first"), ("end", "first"),
            ("start", "second"), ("end", "second"),
        ]

    @pytest.mark.asyncio
    async def test_other_conversations_not_blocked(self, composer, event_factory):
        dispatcher, order = self.recording_dispatcher(composer, {"slow": 0.05})
        loop = DispatchLoop(MessageBus(), dispatcher)

        loop._schedule(event_factory("slow", sender="Alice"))
        loop._schedule(event_factory("fast", sender="Bob"))
        await loop.drain()

        assert order.index(("end", "fast")) < order.index(("end", "slow"))

    @pytest.mark.asyncio
    async def test_unserialized_runs_concurrently(self, composer, event_factory):
        dispatcher, order = self.recording_dispatcher(composer, {"first": 0.05})
        loop = DispatchLoop(MessageBus(), dispatcher, serialize_per_conversation=False)

        loop._schedule(event_factory("first"))
        loop._schedule(event_factory("second"))
        await loop.drain()

        assert order.index(("end", "second")) < order.index(("end", "first"))


class TestRun:
    """Test consuming events from the bus."""

    @pytest.mark.asyncio
    async def test_consumes_published_events(self, dispatcher, event_factory):
        bus = MessageBus()
        loop = DispatchLoop(bus, dispatcher)
        event = event_factory("hello")

        runner = asyncio.create_task(loop.run())
        await bus.publish_inbound(event)
        for _ in range(50):
            if dispatcher.on_message.await_count:
                break
            await asyncio.sleep(0.01)
        loop.stop()
        await asyncio.wait_for(runner, timeout=2)
        await loop.drain()

        dispatcher.on_message.assert_awaited_once_with(event)
