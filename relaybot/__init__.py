"""relaybot - 把微信消息转发给大语言模型的聊天中继机器人。"""

__version__ = "0.1.0"
__logo__ = "🤖"
