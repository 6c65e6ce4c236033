"""无意义消息过滤。

在触发规则和命令处理之前丢弃不需要处理的消息：
机器人自己的消息、非文本/语音消息、系统账号消息、
平台占位提示以及包含屏蔽词的消息。
"""

from relaybot.bus.events import InboundEvent, MessageType
from relaybot.config.schema import ClassifierConfig, TriggerConfig

_HANDLED_TYPES = frozenset({MessageType.TEXT, MessageType.AUDIO})


class NonsenseFilter:
    """
    无意义消息过滤器（纯判断，无副作用）。

    系统账号和占位提示来自可配置的分类表，
    便于在不同聊天平台之间移植。
    """

    def __init__(self, classifier: ClassifierConfig, trigger: TriggerConfig):
        self.system_accounts = frozenset(classifier.system_accounts)
        self.placeholder_notices = tuple(classifier.placeholder_notices)
        self.block_words = tuple(word for word in trigger.block_words if word)

    def contains_block_word(self, text: str) -> bool:
        return any(word in text for word in self.block_words)

    def is_placeholder(self, text: str) -> bool:
        return any(notice in text for notice in self.placeholder_notices)

    def is_nonsense(self, event: InboundEvent) -> bool:
        """
        判断消息是否应被丢弃。

        Args:
            event: 入站事件

        Returns:
            需要丢弃时返回True
        """
        return (
            event.is_from_self
            or event.message_type not in _HANDLED_TYPES
            or event.sender_name in self.system_accounts
            or self.is_placeholder(event.raw_text)
            or self.contains_block_word(event.raw_text)
        )
