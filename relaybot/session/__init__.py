"""会话管理模块。

此模块提供了按会话键存储prompt覆盖和对话历史的功能。
"""

from relaybot.session.manager import SessionManager, Session

__all__ = ["SessionManager", "Session"]
