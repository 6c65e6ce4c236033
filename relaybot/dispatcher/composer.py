"""出站消息的组装与分段发送。"""

from typing import Awaitable, Callable

from loguru import logger

from relaybot.bus.events import OutboundMessage, Speaker
from relaybot.utils.helpers import split_text

SINGLE_MESSAGE_MAX_SIZE = 500

SendCallback = Callable[[OutboundMessage], Awaitable[None]]


class ReplyComposer:
    """
    把回复发送给Speaker。

    聊天平台限制单条消息长度，超长文本按固定长度切成连续片段依次发送。
    发送失败不在这里处理，异常直接抛给调用方。
    """

    def __init__(
        self,
        send_callback: SendCallback,
        chatgpt_block_words: list[str] | None = None,
        max_message_size: int = SINGLE_MESSAGE_MAX_SIZE,
    ):
        self.send_callback = send_callback
        self.chatgpt_block_words = tuple(w for w in (chatgpt_block_words or []) if w)
        self.max_message_size = max_message_size

    def is_blocked(self, message: str) -> bool:
        """回复中是否包含模型回复屏蔽词。"""
        return any(word in message for word in self.chatgpt_block_words)

    async def try_say(self, speaker: Speaker, message: str) -> None:
        """
        发送模型回复：命中屏蔽词时整条丢弃，否则分段发送。

        Args:
            speaker: 回复对象
            message: 回复文本
        """
        if self.is_blocked(message):
            logger.warning(f"Blocked reply to {speaker.conversation_key}: {message}")
            return
        await self.say(speaker, message)

    async def say(self, speaker: Speaker, message: str) -> None:
        """不经过屏蔽词检查，直接分段发送。"""
        for chunk in split_text(message, self.max_message_size):
            await self.send_callback(OutboundMessage(
                channel=speaker.channel,
                chat_id=speaker.chat_id,
                content=chunk,
            ))

    async def send_image(self, speaker: Speaker, url: str) -> None:
        """以图片附件的形式发送URL。"""
        await self.send_callback(OutboundMessage(
            channel=speaker.channel,
            chat_id=speaker.chat_id,
            media=[url],
        ))
