"""分发器：对每条入站消息决定如何响应。

按固定优先级依次判断，命中第一个分支后结束：
  1. 无意义消息 → 丢弃
  2. 语音消息 → 保存、转录、回复转录文本
  3. "/cmd " 前缀 → 执行命令
  4. "/img" 前缀 → 生成图片
  5. 触发规则命中 → 清理文本、调用模型、回复
  6. 其他 → 忽略
"""

from pathlib import Path
from typing import Protocol

from loguru import logger

from relaybot.bus.events import AudioAttachment, InboundEvent, MessageType, Speaker
from relaybot.config.schema import Config
from relaybot.dispatcher.classifier import NonsenseFilter
from relaybot.dispatcher.commands import CommandRegistry
from relaybot.dispatcher.composer import ReplyComposer, SendCallback
from relaybot.dispatcher.identity import BotIdentity
from relaybot.dispatcher.policy import CallOutcome, CollaboratorCall, OnFailure, invoke
from relaybot.dispatcher.trigger import TriggerRules
from relaybot.session.manager import SessionManager

COMMAND_PREFIX = "/cmd "
IMAGE_PREFIX = "/img"


class Backend(Protocol):
    async def complete(self, key: str, prompt: str) -> str: ...

    async def generate_image(self, key: str, prompt: str) -> str: ...

    async def transcribe(self, locale: str, file_path: str | Path) -> str: ...


class MediaSaver(Protocol):
    async def save_audio(self, attachment: AudioAttachment) -> Path: ...


class Dispatcher:
    """
    消息分类与分发管道。

    分发器本身不持有会话状态：prompt和历史的读写都交给会话管理器，
    模型调用交给后端，发送交给ReplyComposer。
    """

    def __init__(
        self,
        nonsense: NonsenseFilter,
        triggers: TriggerRules,
        commands: CommandRegistry,
        composer: ReplyComposer,
        backend: Backend,
        sessions: SessionManager,
        media: MediaSaver,
        disable_group_message: bool = False,
        fallback_message: str = "Sorry, please try again later. 😔",
    ):
        self.nonsense = nonsense
        self.triggers = triggers
        self.commands = commands
        self.composer = composer
        self.backend = backend
        self.sessions = sessions
        self.media = media
        self.disable_group_message = disable_group_message
        self.fallback_message = fallback_message

    @classmethod
    def from_config(
        cls,
        config: Config,
        identity: BotIdentity,
        backend: Backend,
        sessions: SessionManager,
        media: MediaSaver,
        send_callback: SendCallback,
    ) -> "Dispatcher":
        """
        根据配置组装分发器。

        Raises:
            ConfigError: 触发正则无效
        """
        composer = ReplyComposer(
            send_callback,
            chatgpt_block_words=config.trigger.chatgpt_block_words,
            max_message_size=config.reply.max_message_size,
        )
        return cls(
            nonsense=NonsenseFilter(config.classifier, config.trigger),
            triggers=TriggerRules(config.trigger, identity, config.classifier.history_separator),
            commands=CommandRegistry(composer, sessions, config.reply.notify_unknown_command),
            composer=composer,
            backend=backend,
            sessions=sessions,
            media=media,
            disable_group_message=config.trigger.disable_group_message,
            fallback_message=config.reply.fallback_message,
        )

    async def on_message(self, event: InboundEvent) -> None:
        """
        处理一条入站消息。

        发送失败的异常不在这里捕获，由调用方记录。

        Args:
            event: 入站事件
        """
        raw_text = event.raw_text
        if event.is_private:
            logger.info(f"Contact: {event.sender_name} Text: {raw_text}")
        else:
            logger.info(f"Room: {event.conversation_key} Contact: {event.sender_name} Text: {raw_text}")

        if self.nonsense.is_nonsense(event):
            logger.debug(f"Dropped message from {event.sender_name}")
            return

        speaker = event.speaker

        if event.message_type == MessageType.AUDIO:
            await self._on_audio(event, speaker)
            return

        if raw_text.startswith(COMMAND_PREFIX):
            logger.info(f"Command: {raw_text}")
            await self.commands.run(speaker, raw_text[len(COMMAND_PREFIX):])
            return

        if raw_text.startswith(IMAGE_PREFIX):
            logger.info(f"Image: {raw_text}")
            await self._on_image(speaker, raw_text[len(IMAGE_PREFIX):])
            return

        if not self.triggers.should_trigger(raw_text, event.is_private):
            return

        text = self.triggers.clean(raw_text, event.is_private)
        if event.is_private:
            await self._on_private_message(speaker, text)
        elif not self.disable_group_message:
            await self._on_group_message(event.sender_name, speaker, text)

    async def _on_audio(self, event: InboundEvent, speaker: Speaker) -> None:
        if event.audio is None:
            logger.warning(f"Audio message from {event.sender_name} carried no data")
            return

        saved = await invoke(CollaboratorCall.SAVE_AUDIO, self.media.save_audio, event.audio)
        if not saved.ok:
            await self._on_failure(saved, speaker)
            return

        transcript = await invoke(CollaboratorCall.TRANSCRIBE, self.backend.transcribe, "", saved.value)
        if not transcript.ok:
            await self._on_failure(transcript, speaker)
            return

        await self.composer.say(speaker, transcript.value)

    async def _on_image(self, speaker: Speaker, prompt: str) -> None:
        outcome = await invoke(
            CollaboratorCall.GENERATE_IMAGE,
            self.backend.generate_image,
            speaker.conversation_key,
            prompt,
        )
        if not outcome.ok:
            await self._on_failure(outcome, speaker)
            return
        await self.composer.send_image(speaker, outcome.value)

    async def _complete(self, speaker: Speaker, text: str) -> str | None:
        """调用模型并记录助手回复；失败时按策略回复兜底消息并返回None。"""
        key = speaker.conversation_key
        outcome = await invoke(CollaboratorCall.COMPLETE, self.backend.complete, key, text)
        if not outcome.ok:
            await self._on_failure(outcome, speaker)
            return None
        self.sessions.append_assistant_turn(key, outcome.value)
        return outcome.value

    async def _on_private_message(self, speaker: Speaker, text: str) -> None:
        reply = await self._complete(speaker, text)
        if reply is not None:
            await self.composer.try_say(speaker, reply)

    async def _on_group_message(self, sender_name: str, room: Speaker, text: str) -> None:
        reply = await self._complete(room, text)
        if reply is not None:
            await self.composer.try_say(room, f"@{sender_name} {text}\n\n------\n {reply}")

    async def _on_failure(self, outcome: CallOutcome, speaker: Speaker) -> None:
        if outcome.on_failure is OnFailure.FALLBACK_REPLY:
            await self.composer.try_say(speaker, self.fallback_message)
