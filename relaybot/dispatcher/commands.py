"""斜杠命令（/cmd）的注册表与分发。

命令行按空白拆分为[名称, *参数]，按名称精确查找：
查找结果是Found或NotFound，未知命令默认静默忽略。
"""

import re
from dataclasses import dataclass
from typing import Awaitable, Callable

from loguru import logger

from relaybot.bus.events import Speaker
from relaybot.dispatcher.composer import ReplyComposer
from relaybot.session.manager import SessionManager

CommandHandler = Callable[[Speaker, str], Awaitable[None]]

HELP_TEXT = (
    "========\n"
    "/cmd help\n"
    "# 显示帮助信息\n"
    "/cmd prompt <PROMPT>\n"
    "# 设置当前会话的 prompt \n"
    "/img <PROMPT>\n"
    "# 根据 prompt 生成图片\n"
    "/cmd clear\n"
    "# 清除自上次启动以来的所有会话\n"
    "========"
)


@dataclass(frozen=True)
class Command:
    """一条斜杠命令。"""
    name: str
    description: str
    handler: CommandHandler


@dataclass(frozen=True)
class Found:
    command: Command
    args: str


@dataclass(frozen=True)
class NotFound:
    name: str


CommandLookup = Found | NotFound


class CommandRegistry:
    """
    固定的命令注册表：help、prompt、clear。

    命令只负责确定会话键和动作，状态修改交给会话管理器。
    """

    def __init__(
        self,
        composer: ReplyComposer,
        sessions: SessionManager,
        notify_unknown: bool = False,
    ):
        self.composer = composer
        self.sessions = sessions
        self.notify_unknown = notify_unknown
        commands = (
            Command("help", "显示帮助信息", self._help),
            Command("prompt", "设置当前会话的prompt", self._prompt),
            Command("clear", "清除自上次启动以来的所有会话", self._clear),
        )
        self._commands: dict[str, Command] = {c.name: c for c in commands}

    @property
    def commands(self) -> list[Command]:
        return list(self._commands.values())

    def lookup(self, command_line: str) -> CommandLookup:
        """
        解析命令行并查找命令。

        Args:
            command_line: 去掉"/cmd "前缀后的文本

        Returns:
            Found(命令, 参数文本) 或 NotFound(名称)
        """
        # 按任意空白切分，开头的空白产生空命令名
        name, *args = re.split(r"\s+", command_line)
        command = self._commands.get(name)
        if command is None:
            return NotFound(name)
        return Found(command, " ".join(args))

    async def run(self, speaker: Speaker, command_line: str) -> None:
        """
        执行命令。

        Args:
            speaker: 回复对象（群聊为群，私聊为联系人）
            command_line: 去掉"/cmd "前缀后的文本
        """
        result = self.lookup(command_line)
        if isinstance(result, Found):
            await result.command.handler(speaker, result.args)
            return

        logger.debug(f"Unknown command from {speaker.conversation_key}: {result.name!r}")
        if self.notify_unknown:
            await self.composer.try_say(
                speaker, f"Unknown command: {result.name}. Send /cmd help for usage."
            )

    async def _help(self, speaker: Speaker, _args: str) -> None:
        await self.composer.try_say(speaker, HELP_TEXT)

    async def _prompt(self, speaker: Speaker, args: str) -> None:
        self.sessions.set_prompt_override(speaker.conversation_key, args)

    async def _clear(self, speaker: Speaker, _args: str) -> None:
        self.sessions.clear_history(speaker.conversation_key)
