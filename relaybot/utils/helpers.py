"""relaybot的实用工具函数。

此模块提供了路径管理、字符串处理等常见操作。
"""

from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """
    确保目录存在，如果不存在则创建。

    Args:
        path: 目录路径

    Returns:
        目录路径（确保已存在）
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """
    获取relaybot数据目录路径（~/.relaybot）。

    Returns:
        数据目录路径
    """
    return ensure_dir(Path.home() / ".relaybot")


def get_sessions_path() -> Path:
    """获取会话存储目录路径。"""
    return ensure_dir(get_data_path() / "sessions")


def get_media_path() -> Path:
    """获取语音等媒体文件的存储目录路径。"""
    return ensure_dir(get_data_path() / "media")


def truncate_string(s: str, max_len: int = 100, suffix: str = "...") -> str:
    """
    截断字符串到最大长度，如果被截断则添加后缀。

    Args:
        s: 要截断的字符串
        max_len: 最大长度，默认为100
        suffix: 截断时添加的后缀，默认为"..."

    Returns:
        截断后的字符串
    """
    if len(s) <= max_len:
        return s
    return s[: max_len - len(suffix)] + suffix


def safe_filename(name: str) -> str:
    """
    将字符串转换为安全的文件名。

    替换文件名中的不安全字符（如 < > : " / \\ | ? *）为下划线。

    Args:
        name: 原始字符串

    Returns:
        安全的文件名
    """
    unsafe = '<>:"/\\|?*'
    for char in unsafe:
        name = name.replace(char, "_")
    return name.strip()


def split_text(text: str, size: int) -> list[str]:
    """
    把文本切分为连续的定长片段，最后一段可以更短。

    片段按顺序拼接后与原文完全一致；空字符串得到一个空片段。

    Args:
        text: 原文
        size: 每段最大字符数

    Returns:
        片段列表
    """
    if size <= 0:
        raise ValueError(f"size must be positive, got {size}")
    chunks: list[str] = []
    rest = text
    while len(rest) > size:
        chunks.append(rest[:size])
        rest = rest[size:]
    chunks.append(rest)
    return chunks
