"""聊天渠道模块。

此模块提供了聊天渠道的基础接口和管理器。
"""

from relaybot.channels.base import BaseChannel
from relaybot.channels.manager import ChannelManager

__all__ = ["BaseChannel", "ChannelManager"]
