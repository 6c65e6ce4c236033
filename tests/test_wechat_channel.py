"""Tests for the WeChat bridge channel."""

import base64
import json
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from relaybot.bus.events import ConversationKind, MessageType, OutboundMessage
from relaybot.bus.queue import MessageBus
from relaybot.channels.manager import ChannelManager
from relaybot.channels.wechat import WeChatChannel, parse_message
from relaybot.config.schema import Config, WeChatConfig
from relaybot.dispatcher.identity import BotIdentity
from relaybot.errors import TransportError


def message_frame(text="hello", room=None, **extra) -> dict:
    frame = {
        "type": "message",
        "id": extra.pop("id", "m1"),
        "talker": {"id": "@alice", "name": "Alice", "self": False},
        "room": room,
        "text": text,
        "messageType": 7,
        "timestamp": 1700000000000,
    }
    frame.update(extra)
    return frame


@pytest.fixture
def bus():
    return MessageBus()


@pytest.fixture
def channel(bus):
    return WeChatChannel(WeChatConfig(), bus, BotIdentity("Bot"))


class TestParseMessage:
    """Test conversion of bridge frames into inbound events."""

    def test_private(self):
        event = parse_message(message_frame())

        assert event.conversation_kind is ConversationKind.DIRECT
        assert event.conversation_key == "Alice"
        assert event.chat_id == "@alice"
        assert event.raw_text == "hello"
        assert event.message_type is MessageType.TEXT
        assert event.timestamp == datetime.fromtimestamp(1700000000)

    def test_group(self):
        event = parse_message(message_frame(room={"id": "@@room", "topic": "Room"}))

        assert event.conversation_kind is ConversationKind.GROUP
        assert event.conversation_key == "Room"
        assert event.chat_id == "@@room"
        assert event.sender_name == "Alice"
        assert event.speaker.is_room is True

    def test_audio(self):
        frame = message_frame(
            text="",
            messageType=2,
            audio={"name": "voice.mp3", "data": base64.b64encode(b"ID3").decode()},
        )

        event = parse_message(frame)

        assert event.message_type is MessageType.AUDIO
        assert event.audio.name == "voice.mp3"
        assert event.audio.data == b"ID3"

    @pytest.mark.parametrize("timestamp", [1e20, float("inf"), None, -5, "soon"])
    def test_unusable_timestamp_falls_back_to_now(self, timestamp):
        before = datetime.now()

        event = parse_message(message_frame(timestamp=timestamp))

        assert before <= event.timestamp <= datetime.now()

    def test_invalid_audio_dropped(self):
        event = parse_message(message_frame(audio={"name": "v.mp3", "data": "%%%"}))
        assert event.audio is None

    def test_unknown_message_type(self):
        assert parse_message(message_frame(messageType=99)).message_type is MessageType.UNKNOWN

    def test_self_message(self):
        frame = message_frame()
        frame["talker"]["self"] = True
        assert parse_message(frame).is_from_self is True

    def test_missing_talker(self):
        assert parse_message({"type": "message", "text": "hi"}) is None


class TestBridgeFrames:
    """Test handling of frames received from the bridge."""

    @pytest.mark.asyncio
    async def test_message_published(self, channel, bus):
        await channel._handle_bridge_message(json.dumps(message_frame()))

        assert bus.inbound_size == 1
        event = await bus.consume_inbound()
        assert event.raw_text == "hello"

    @pytest.mark.asyncio
    async def test_duplicate_ignored(self, channel, bus):
        raw = json.dumps(message_frame())
        await channel._handle_bridge_message(raw)
        await channel._handle_bridge_message(raw)
        assert bus.inbound_size == 1

    @pytest.mark.asyncio
    async def test_message_before_login_dropped(self, bus):
        channel = WeChatChannel(WeChatConfig(), bus, BotIdentity())
        await channel._handle_bridge_message(json.dumps(message_frame()))
        assert bus.inbound_size == 0

    @pytest.mark.asyncio
    async def test_login_sets_identity(self, bus):
        identity = BotIdentity()
        on_login = MagicMock()
        channel = WeChatChannel(WeChatConfig(), bus, identity, on_login=on_login)

        await channel._handle_bridge_message(json.dumps({"type": "login", "name": "Bot"}))
        await channel._handle_bridge_message(json.dumps(message_frame()))

        assert identity.display_name == "Bot"
        on_login.assert_called_once_with("Bot")
        assert bus.inbound_size == 1

    @pytest.mark.asyncio
    async def test_login_as_other_account_ignored(self, channel):
        on_login = MagicMock()
        channel.on_login = on_login

        await channel._handle_bridge_message(json.dumps({"type": "login", "name": "Other"}))

        assert channel.identity.display_name == "Bot"
        on_login.assert_not_called()

    @pytest.mark.asyncio
    async def test_allow_list(self, bus):
        channel = WeChatChannel(WeChatConfig(allow_from=["Room"]), bus, BotIdentity("Bot"))

        await channel._handle_bridge_message(json.dumps(message_frame(id="a")))
        await channel._handle_bridge_message(
            json.dumps(message_frame(id="b", room={"id": "@@room", "topic": "Room"}))
        )

        assert bus.inbound_size == 1
        assert (await bus.consume_inbound()).conversation_key == "Room"

    @pytest.mark.asyncio
    async def test_invalid_json_ignored(self, channel, bus):
        await channel._handle_bridge_message("{oops")
        assert bus.inbound_size == 0

    @pytest.mark.asyncio
    async def test_status_frames(self, channel):
        await channel._handle_bridge_message(json.dumps({"type": "status", "status": "disconnected"}))
        assert channel._connected is False
        await channel._handle_bridge_message(json.dumps({"type": "status", "status": "connected"}))
        assert channel._connected is True


class TestSend:
    """Test frames sent to the bridge."""

    @pytest.mark.asyncio
    async def test_text(self, channel):
        channel._ws = AsyncMock()
        channel._connected = True

        await channel.send(OutboundMessage(channel="wechat", chat_id="@alice", content="hi"))

        frame = json.loads(channel._ws.send.await_args.args[0])
        assert frame == {"type": "send", "to": "@alice", "text": "hi"}

    @pytest.mark.asyncio
    async def test_image(self, channel):
        channel._ws = AsyncMock()
        channel._connected = True

        await channel.send(OutboundMessage(
            channel="wechat", chat_id="@@room", media=["https://example.com/cat.png"]
        ))

        frame = json.loads(channel._ws.send.await_args.args[0])
        assert frame == {"type": "send", "to": "@@room", "imageUrl": "https://example.com/cat.png"}

    @pytest.mark.asyncio
    async def test_not_connected(self, channel):
        with pytest.raises(TransportError):
            await channel.send(OutboundMessage(channel="wechat", chat_id="@alice", content="hi"))

    @pytest.mark.asyncio
    async def test_socket_error(self, channel):
        channel._ws = AsyncMock()
        channel._ws.send.side_effect = ConnectionError("closed")
        channel._connected = True

        with pytest.raises(TransportError):
            await channel.send(OutboundMessage(channel="wechat", chat_id="@alice", content="hi"))


class TestChannelManager:
    """Test routing of outbound messages."""

    @pytest.mark.asyncio
    async def test_routes_to_wechat(self, bus):
        manager = ChannelManager(Config(), bus, BotIdentity("Bot"))
        wechat = manager.channels["wechat"]
        wechat._ws = AsyncMock()
        wechat._connected = True

        await manager.send(OutboundMessage(channel="wechat", chat_id="@alice", content="hi"))

        wechat._ws.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_channel(self, bus):
        manager = ChannelManager(Config(), bus, BotIdentity("Bot"))
        with pytest.raises(TransportError):
            await manager.send(OutboundMessage(channel="telegram", chat_id="1", content="hi"))

    def test_disabled(self, bus):
        config = Config()
        config.channels.wechat.enabled = False
        manager = ChannelManager(config, bus, BotIdentity("Bot"))
        assert manager.enabled_channels == []
