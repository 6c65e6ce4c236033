"""relaybot的异常类型。

按请求过滤、协作方失败和传输失败三类划分；只有配置错误会在启动时终止进程，
其余异常都局限在单条消息的处理之内。
"""


class RelaybotError(Exception):
    """relaybot所有异常的基类。"""


class ConfigError(RelaybotError):
    """配置无效（例如触发正则无法编译）。"""


class IdentityError(RelaybotError):
    """机器人身份被重复设置。"""


class TransportError(RelaybotError):
    """向聊天平台发送消息失败。"""
