"""渠道管理器，用于协调聊天渠道。

此模块实现了渠道管理器，负责：
- 根据配置初始化启用的渠道
- 启动和停止渠道
- 把出站消息路由到相应的渠道
"""

from __future__ import annotations

import asyncio
from typing import Callable

from loguru import logger

from relaybot.bus.events import OutboundMessage
from relaybot.bus.queue import MessageBus
from relaybot.channels.base import BaseChannel
from relaybot.config.schema import Config
from relaybot.dispatcher.identity import BotIdentity
from relaybot.errors import TransportError


class ChannelManager:
    """
    管理聊天渠道并路由出站消息。

    send()直接调用目标渠道的发送方法，发送失败的异常原样抛给调用方。
    """

    def __init__(
        self,
        config: Config,
        bus: MessageBus,
        identity: BotIdentity,
        on_login: Callable[[str], None] | None = None,
    ):
        """
        初始化渠道管理器。

        Args:
            config: 配置对象
            bus: 消息总线
            identity: 机器人身份（登录后由渠道设置）
            on_login: 登录成功后的回调（可选）
        """
        self.config = config
        self.bus = bus
        self.identity = identity
        self.on_login = on_login
        self.channels: dict[str, BaseChannel] = {}

        self._init_channels()

    def _init_channels(self) -> None:
        """根据配置创建启用的渠道实例。"""
        if self.config.channels.wechat.enabled:
            from relaybot.channels.wechat import WeChatChannel
            self.channels["wechat"] = WeChatChannel(
                self.config.channels.wechat,
                self.bus,
                self.identity,
                on_login=self.on_login,
            )
            logger.info("WeChat channel enabled")

    async def _start_channel(self, name: str, channel: BaseChannel) -> None:
        """启动一个渠道并记录任何异常。"""
        try:
            await channel.start()
        except Exception as e:
            logger.error(f"Failed to start channel {name}: {e}")

    async def start_all(self) -> None:
        """
        启动所有渠道。

        所有渠道任务并发运行，直到被停止。
        """
        if not self.channels:
            logger.warning("No channels enabled")
            return

        tasks = []
        for name, channel in self.channels.items():
            logger.info(f"Starting {name} channel...")
            tasks.append(asyncio.create_task(self._start_channel(name, channel)))

        await asyncio.gather(*tasks, return_exceptions=True)

    async def stop_all(self) -> None:
        """停止所有渠道。"""
        logger.info("Stopping all channels...")

        for name, channel in self.channels.items():
            try:
                await channel.stop()
                logger.info(f"Stopped {name} channel")
            except Exception as e:
                logger.error(f"Error stopping {name}: {e}")

    async def send(self, msg: OutboundMessage) -> None:
        """
        把出站消息交给对应渠道发送。

        Raises:
            TransportError: 渠道不存在或发送失败
        """
        channel = self.channels.get(msg.channel)
        if channel is None:
            raise TransportError(f"Unknown channel: {msg.channel}")
        await channel.send(msg)

    @property
    def enabled_channels(self) -> list[str]:
        """Get list of enabled channel names."""
        return list(self.channels.keys())
