"""聊天平台的基础渠道接口。

此模块定义了所有聊天渠道实现必须继承的抽象基类。
渠道负责把平台原生消息规范化为InboundEvent并推入消息总线，
以及把OutboundMessage发送回平台。
"""

from abc import ABC, abstractmethod
from typing import Any

from loguru import logger

from relaybot.bus.events import InboundEvent, OutboundMessage
from relaybot.bus.queue import MessageBus


class BaseChannel(ABC):
    """
    聊天渠道实现的抽象基类。

    实现类需要：
    - 连接到聊天平台
    - 监听入站消息并通过_handle_event()转发到消息总线
    - 实现send()，发送失败时抛出TransportError
    """

    name: str = "base"  # 渠道名称

    def __init__(self, config: Any, bus: MessageBus):
        """
        初始化渠道。

        Args:
            config: 渠道特定的配置对象
            bus: 用于通信的消息总线
        """
        self.config = config
        self.bus = bus
        self._running = False

    @abstractmethod
    async def start(self) -> None:
        """
        启动渠道并开始监听消息。

        这应该是一个长期运行的异步任务。
        """
        pass

    @abstractmethod
    async def stop(self) -> None:
        """停止渠道并清理资源。"""
        pass

    @abstractmethod
    async def send(self, msg: OutboundMessage) -> None:
        """
        通过此渠道发送消息。

        Args:
            msg: 要发送的消息

        Raises:
            TransportError: 发送失败
        """
        pass

    def is_allowed(self, event: InboundEvent) -> bool:
        """
        检查消息是否被允许使用此机器人。

        如果配置了allow_from列表，则只允许列表中的联系人或群。
        如果列表为空，则允许所有人。

        Args:
            event: 入站事件

        Returns:
            如果允许返回True，否则返回False
        """
        allow_list = getattr(self.config, "allow_from", [])

        if not allow_list:
            return True

        return event.conversation_key in allow_list or event.sender_name in allow_list

    async def _handle_event(self, event: InboundEvent) -> None:
        """
        检查权限并将事件转发到消息总线。

        Args:
            event: 规范化后的入站事件
        """
        if not self.is_allowed(event):
            logger.debug(
                f"Ignoring {event.sender_name} in {event.conversation_key} on channel {self.name}: "
                f"not in allowFrom list"
            )
            return

        await self.bus.publish_inbound(event)
