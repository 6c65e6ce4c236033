"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta

import pytest

from relaybot.bus.events import ConversationKind, InboundEvent, MessageType
from relaybot.config.schema import ClassifierConfig, TriggerConfig
from relaybot.dispatcher.composer import ReplyComposer
from relaybot.dispatcher.identity import BotIdentity
from relaybot.session.manager import SessionManager


class SentMessages(list):
    """Records every OutboundMessage handed to the send callback."""

    async def __call__(self, msg):
        self.append(msg)

    @property
    def texts(self) -> list[str]:
        return [m.content for m in self if m.content]


@pytest.fixture
def sent():
    return SentMessages()


@pytest.fixture
def composer(sent):
    return ReplyComposer(sent)


@pytest.fixture
def sessions(tmp_path):
    return SessionManager(tmp_path / "sessions")


@pytest.fixture
def identity():
    return BotIdentity("Bot")


@pytest.fixture
def trigger_config():
    return TriggerConfig()


@pytest.fixture
def classifier_config():
    return ClassifierConfig()


def make_event(
    text: str = "hello",
    sender: str = "Alice",
    room: str | None = None,
    message_type: MessageType = MessageType.TEXT,
    is_from_self: bool = False,
    timestamp: datetime | None = None,
    audio=None,
) -> InboundEvent:
    """Build an inbound event for a private chat, or for a group when room is given."""
    if room is None:
        kind, key, chat_id = ConversationKind.DIRECT, sender, f"@{sender.lower()}"
    else:
        kind, key, chat_id = ConversationKind.GROUP, room, f"@@{room.lower()}"
    return InboundEvent(
        channel="wechat",
        sender_name=sender,
        conversation_kind=kind,
        conversation_key=key,
        chat_id=chat_id,
        raw_text=text,
        message_type=message_type,
        is_from_self=is_from_self,
        timestamp=timestamp or datetime.now() + timedelta(seconds=1),
        audio=audio,
    )


@pytest.fixture
def event_factory():
    return make_event
