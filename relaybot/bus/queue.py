"""用于解耦渠道与分发器的异步消息队列。

渠道把规范化后的入站事件推入队列，分发循环按到达顺序消费。
出站消息不经过队列：分发器直接调用渠道的发送方法，
这样发送失败能够传播回分发器所在的调用栈。
"""

import asyncio

from relaybot.bus.events import InboundEvent


class MessageBus:
    """
    异步消息总线，用于解耦聊天渠道和分发器。

    inbound队列：渠道推送事件到队列，分发循环从队列消费。
    """

    def __init__(self):
        """初始化消息总线，创建入站队列。"""
        self.inbound: asyncio.Queue[InboundEvent] = asyncio.Queue()  # 入站事件队列

    async def publish_inbound(self, event: InboundEvent) -> None:
        """
        发布来自渠道的事件到入站队列。

        Args:
            event: 入站事件
        """
        await self.inbound.put(event)

    async def consume_inbound(self) -> InboundEvent:
        """
        消费下一条入站事件（阻塞直到有事件可用）。

        Returns:
            下一条入站事件
        """
        return await self.inbound.get()

    @property
    def inbound_size(self) -> int:
        """
        获取待处理的入站事件数量。

        Returns:
            入站队列中的事件数量
        """
        return self.inbound.qsize()
