"""消息总线模块，用于解耦渠道与分发器通信。

渠道把平台原生消息规范化为InboundEvent后推入总线，
分发循环按到达顺序逐条消费。
"""

from relaybot.bus.events import (
    AudioAttachment,
    ConversationKind,
    InboundEvent,
    MessageType,
    OutboundMessage,
    Speaker,
)
from relaybot.bus.queue import MessageBus

__all__ = [
    "MessageBus",
    "InboundEvent",
    "OutboundMessage",
    "Speaker",
    "MessageType",
    "ConversationKind",
    "AudioAttachment",
]
