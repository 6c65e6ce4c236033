"""消息总线的事件类型。

此模块定义了消息总线使用的数据结构：
- InboundEvent: 从聊天渠道接收并规范化后的消息
- OutboundMessage: 要发送到聊天渠道的消息
- Speaker: 回复对象（私聊联系人或群）
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any


class MessageType(IntEnum):
    """聊天平台的粗粒度消息类型，取值与微信网页版桥接保持一致。"""

    UNKNOWN = 0
    ATTACHMENT = 1
    AUDIO = 2
    CONTACT = 3
    CHAT_HISTORY = 4
    EMOTICON = 5
    IMAGE = 6
    TEXT = 7
    LOCATION = 8
    MINI_PROGRAM = 9
    GROUP_NOTE = 10
    TRANSFER = 11
    RED_ENVELOPE = 12
    RECALLED = 13
    URL = 14
    VIDEO = 15
    POST = 16

    @classmethod
    def parse(cls, value: Any) -> "MessageType":
        """把桥接传来的整数（或无法识别的值）转换为MessageType。"""
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return cls.UNKNOWN


class ConversationKind(str, Enum):
    """会话类型：私聊或群聊。"""

    DIRECT = "direct"
    GROUP = "group"


@dataclass(frozen=True)
class AudioAttachment:
    """随语音消息一起到达的音频数据。"""

    name: str  # 文件名（桥接提供，包含扩展名）
    data: bytes  # 音频原始字节


@dataclass(frozen=True)
class Speaker:
    """
    回复对象。

    私聊时是联系人，群聊时是群；是否为群由topic是否存在决定。
    """

    name: str  # 联系人名称（群聊时为群内发言人名称）
    chat_id: str  # 传输层地址，回复发往此处
    topic: str | None = None  # 群名称，私聊为None
    channel: str = "wechat"  # 所属渠道

    @property
    def is_room(self) -> bool:
        return self.topic is not None

    @property
    def conversation_key(self) -> str:
        """会话键：群聊用群名称，私聊用联系人名称。"""
        return self.topic if self.topic is not None else self.name


@dataclass(frozen=True)
class InboundEvent:
    """
    从聊天渠道接收的消息。

    由渠道适配器根据平台原生对象构造，构造后不可修改。
    """

    channel: str  # 渠道名称，例如wechat
    sender_name: str  # 发送者名称
    conversation_kind: ConversationKind  # 私聊或群聊
    conversation_key: str  # 联系人名称或群名称
    chat_id: str  # 回复地址（私聊为联系人ID，群聊为群ID）
    raw_text: str  # 原始消息文本
    message_type: MessageType = MessageType.TEXT  # 消息类型
    is_from_self: bool = False  # 是否为机器人自己发出的消息
    timestamp: datetime = field(default_factory=datetime.now)  # 消息时间戳
    audio: AudioAttachment | None = None  # 语音消息的音频数据
    metadata: dict[str, Any] = field(default_factory=dict)  # 渠道特定的元数据

    @property
    def is_private(self) -> bool:
        return self.conversation_kind is ConversationKind.DIRECT

    @property
    def speaker(self) -> Speaker:
        """
        获取本条消息的回复对象。

        群聊回复到群，私聊回复到联系人。

        Returns:
            Speaker对象
        """
        if self.is_private:
            return Speaker(name=self.sender_name, chat_id=self.chat_id, channel=self.channel)
        return Speaker(
            name=self.sender_name,
            chat_id=self.chat_id,
            topic=self.conversation_key,
            channel=self.channel,
        )


@dataclass
class OutboundMessage:
    """
    要发送到聊天渠道的消息。

    content为文本内容；media中的URL会作为图片附件发送。
    """

    channel: str  # 目标渠道名称
    chat_id: str  # 目标聊天/用户ID
    content: str = ""  # 消息内容
    media: list[str] = field(default_factory=list)  # 图片URL列表（可选）
    metadata: dict[str, Any] = field(default_factory=dict)  # 渠道特定的元数据
