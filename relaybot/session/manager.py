"""会话管理，用于管理每个会话的prompt和对话历史。

会话以会话键（私聊为联系人名称，群聊为群名称）标识，
以JSONL格式存储：第一行是元数据（包含prompt覆盖），后续行是消息。
"""

import hashlib
import json
from pathlib import Path
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from loguru import logger

from relaybot.utils.helpers import ensure_dir, get_sessions_path, safe_filename


@dataclass
class Session:
    """
    对话会话。

    一个会话代表一个联系人或一个群的对话状态：
    可选的prompt覆盖，以及只追加的对话历史。
    """

    key: str  # 会话键（联系人名称或群名称）
    messages: list[dict[str, Any]] = field(default_factory=list)  # 消息列表
    prompt: str | None = None  # 会话级prompt覆盖
    created_at: datetime = field(default_factory=datetime.now)  # 创建时间
    updated_at: datetime = field(default_factory=datetime.now)  # 更新时间

    def add_message(self, role: str, content: str, **kwargs: Any) -> None:
        """
        向会话添加消息。

        Args:
            role: 消息角色（user/assistant）
            content: 消息内容
            **kwargs: 其他消息属性
        """
        msg = {
            "role": role,
            "content": content,
            "timestamp": datetime.now().isoformat(),
            **kwargs
        }
        self.messages.append(msg)
        self.updated_at = datetime.now()

    def get_history(self, max_messages: int = 50) -> list[dict[str, Any]]:
        """
        获取用于LLM上下文的消息历史。

        返回最近的消息，只保留role和content字段。

        Args:
            max_messages: 要返回的最大消息数，默认为50

        Returns:
            LLM格式的消息列表
        """
        if max_messages <= 0:
            return []
        recent = self.messages[-max_messages:]
        return [{"role": m["role"], "content": m["content"]} for m in recent]

    def clear(self) -> None:
        """清空会话中的所有消息，prompt覆盖保持不变。"""
        self.messages = []
        self.updated_at = datetime.now()


class SessionManager:
    """
    管理对话会话。

    会话管理器负责创建、加载、保存和删除会话，
    并向分发器提供按会话键的设置prompt、清空历史、追加回复等操作。
    每次修改后立即落盘；使用内存缓存提高访问性能。
    """

    def __init__(self, sessions_dir: Path | None = None):
        """
        初始化会话管理器。

        Args:
            sessions_dir: 会话文件目录，默认为~/.relaybot/sessions
        """
        self.sessions_dir = ensure_dir(sessions_dir) if sessions_dir else get_sessions_path()
        self._cache: dict[str, Session] = {}

    def _get_session_path(self, key: str) -> Path:
        # 文件名带上会话键的哈希，替换过不安全字符的不同会话键不会落到同一个文件
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:12]
        return self.sessions_dir / f"{safe_filename(key)}-{digest}.jsonl"

    def get_or_create(self, key: str) -> Session:
        """
        获取现有会话或创建新会话。

        首先检查内存缓存，如果不存在则尝试从磁盘加载，
        如果磁盘上也不存在则创建新会话。

        Args:
            key: 会话键

        Returns:
            会话对象
        """
        if key in self._cache:
            return self._cache[key]

        session = self._load(key)
        if session is None:
            session = Session(key=key)

        self._cache[key] = session
        return session

    def _load(self, key: str) -> Session | None:
        """
        从磁盘加载会话。

        Args:
            key: 会话键

        Returns:
            会话对象，如果文件不存在或加载失败则返回None
        """
        path = self._get_session_path(key)

        if not path.exists():
            return None

        try:
            messages = []
            prompt = None
            created_at = None

            with open(path, encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue

                    data = json.loads(line)

                    if data.get("_type") == "metadata":
                        prompt = data.get("prompt")
                        created_at = datetime.fromisoformat(data["created_at"]) if data.get("created_at") else None
                    else:
                        messages.append(data)

            return Session(
                key=key,
                messages=messages,
                prompt=prompt,
                created_at=created_at or datetime.now(),
            )
        except Exception as e:
            logger.warning(f"Failed to load session {key}: {e}")
            return None

    def save(self, session: Session) -> None:
        """
        将会话保存到磁盘。

        第一行是元数据（包含prompt覆盖），后续行是消息。

        Args:
            session: 要保存的会话
        """
        path = self._get_session_path(session.key)

        with open(path, "w", encoding="utf-8") as f:
            metadata_line = {
                "_type": "metadata",
                "key": session.key,
                "prompt": session.prompt,
                "created_at": session.created_at.isoformat(),
                "updated_at": session.updated_at.isoformat(),
            }
            f.write(json.dumps(metadata_line, ensure_ascii=False) + "\n")

            for msg in session.messages:
                f.write(json.dumps(msg, ensure_ascii=False) + "\n")

        self._cache[session.key] = session

    def set_prompt_override(self, key: str, prompt: str) -> None:
        """设置会话的prompt覆盖。"""
        session = self.get_or_create(key)
        session.prompt = prompt
        session.updated_at = datetime.now()
        self.save(session)
        logger.info(f"Prompt set for {key}: {prompt[:80]}")

    def get_prompt_override(self, key: str) -> str | None:
        return self.get_or_create(key).prompt

    def clear_history(self, key: str) -> None:
        """清空会话的对话历史。"""
        session = self.get_or_create(key)
        count = len(session.messages)
        session.clear()
        self.save(session)
        logger.info(f"History cleared for {key} ({count} messages)")

    def append_user_turn(self, key: str, content: str) -> None:
        session = self.get_or_create(key)
        session.add_message("user", content)
        self.save(session)

    def append_assistant_turn(self, key: str, content: str) -> None:
        session = self.get_or_create(key)
        session.add_message("assistant", content)
        self.save(session)

    def list_sessions(self) -> list[dict[str, Any]]:
        """
        列出所有会话。

        扫描sessions目录，读取每个会话文件的元数据。

        Returns:
            会话信息字典列表，按更新时间降序排列
        """
        sessions = []

        for path in self.sessions_dir.glob("*.jsonl"):
            try:
                with open(path, encoding="utf-8") as f:
                    first_line = f.readline().strip()
                    if first_line:
                        data = json.loads(first_line)
                        if data.get("_type") == "metadata":
                            sessions.append({
                                "key": data.get("key") or path.stem,
                                "prompt": data.get("prompt"),
                                "created_at": data.get("created_at"),
                                "updated_at": data.get("updated_at"),
                                "path": str(path)
                            })
            except Exception:
                continue

        return sorted(sessions, key=lambda x: x.get("updated_at", ""), reverse=True)
