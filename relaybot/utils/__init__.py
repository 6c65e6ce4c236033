"""relaybot工具函数模块。"""

from relaybot.utils.helpers import ensure_dir, get_data_path, split_text, truncate_string

__all__ = ["ensure_dir", "get_data_path", "split_text", "truncate_string"]
