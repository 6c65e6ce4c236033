"""分发循环：从消息总线消费入站事件并交给分发器。

每条事件作为独立任务运行，慢的模型调用只阻塞它自己的后续处理。
开启serialize_per_conversation时，同一会话键的事件按到达顺序逐条处理，
保证同一会话的回复不会乱序。
"""

import asyncio
from datetime import datetime

from loguru import logger

from relaybot.bus.events import InboundEvent
from relaybot.bus.queue import MessageBus
from relaybot.dispatcher.router import Dispatcher

PING_COMMAND = "/ping"


class DispatchLoop:
    """
    分发主循环。

    - 丢弃启动之前的消息（网页版登录后会重放最近的聊天）
    - 回应 /ping
    - 捕获并记录单条消息处理中的所有异常，进程继续处理后续消息
    """

    def __init__(
        self,
        bus: MessageBus,
        dispatcher: Dispatcher,
        serialize_per_conversation: bool = True,
        started_at: datetime | None = None,
    ):
        self.bus = bus
        self.dispatcher = dispatcher
        self.serialize_per_conversation = serialize_per_conversation
        self.started_at = started_at or datetime.now()
        self._running = False
        self._tasks: set[asyncio.Task] = set()
        self._locks: dict[str, asyncio.Lock] = {}
        self._pending: dict[str, int] = {}

    async def run(self) -> None:
        """持续从消息总线接收事件，直到stop()被调用。"""
        self._running = True
        logger.info("Dispatch loop started")

        while self._running:
            try:
                event = await asyncio.wait_for(
                    self.bus.consume_inbound(),
                    timeout=1.0
                )
            except asyncio.TimeoutError:
                continue
            self._schedule(event)

    def stop(self) -> None:
        self._running = False
        logger.info("Dispatch loop stopping")

    async def drain(self) -> None:
        """等待所有进行中的事件处理完成。"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _schedule(self, event: InboundEvent) -> None:
        task = asyncio.create_task(self.handle(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def handle(self, event: InboundEvent) -> None:
        """
        处理单条事件，所有异常在这里记录后吞掉。

        Args:
            event: 入站事件
        """
        if event.timestamp < self.started_at:
            logger.debug(f"Skipping message sent before startup from {event.sender_name}")
            return

        try:
            if event.raw_text.startswith(PING_COMMAND):
                await self.dispatcher.composer.say(event.speaker, "pong")
                return

            if self.serialize_per_conversation:
                await self._handle_in_order(event)
            else:
                await self.dispatcher.on_message(event)
        except Exception:
            logger.exception(f"Error processing message from {event.sender_name} in {event.conversation_key}")

    async def _handle_in_order(self, event: InboundEvent) -> None:
        key = event.conversation_key
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._pending[key] = self._pending.get(key, 0) + 1
        try:
            async with lock:
                await self.dispatcher.on_message(event)
        finally:
            self._pending[key] -= 1
            if not self._pending[key]:
                del self._pending[key]
                del self._locks[key]
