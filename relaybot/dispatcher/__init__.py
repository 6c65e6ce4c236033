"""消息分类与分发模块。

- NonsenseFilter: 丢弃无需处理的消息
- TriggerRules: 私聊/群聊触发判断与文本清理
- CommandRegistry: /cmd 命令
- ReplyComposer: 屏蔽词检查与分段发送
- Dispatcher: 按优先级路由每条消息
- DispatchLoop: 从消息总线消费事件
"""

from relaybot.dispatcher.classifier import NonsenseFilter
from relaybot.dispatcher.commands import CommandRegistry
from relaybot.dispatcher.composer import ReplyComposer
from relaybot.dispatcher.identity import BotIdentity
from relaybot.dispatcher.loop import DispatchLoop
from relaybot.dispatcher.router import Dispatcher
from relaybot.dispatcher.trigger import TriggerRules

__all__ = [
    "BotIdentity",
    "NonsenseFilter",
    "TriggerRules",
    "CommandRegistry",
    "ReplyComposer",
    "Dispatcher",
    "DispatchLoop",
]
