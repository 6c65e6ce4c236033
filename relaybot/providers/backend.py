"""语言模型后端：分发器面向的对话、画图、转录三个调用。

LanguageModelBackend把LLM提供者、转录提供者和会话管理器组合在一起，
对外只暴露按会话键的简单接口。对话失败时返回空字符串，
由分发器的失败策略表决定如何回复。
"""

from pathlib import Path
from typing import Any

from loguru import logger

from relaybot.config.schema import AgentDefaults
from relaybot.providers.base import LLMProvider
from relaybot.providers.transcription import WhisperTranscriptionProvider
from relaybot.session.manager import SessionManager


class LanguageModelBackend:
    """
    语言模型后端。

    - complete: 带上会话prompt与历史调用对话模型
    - generate_image: 调用画图模型，返回图片URL
    - transcribe: 调用语音转录
    """

    def __init__(
        self,
        provider: LLMProvider,
        sessions: SessionManager,
        transcriber: WhisperTranscriptionProvider | None = None,
        defaults: AgentDefaults | None = None,
    ):
        self.provider = provider
        self.sessions = sessions
        self.transcriber = transcriber
        self.defaults = defaults or AgentDefaults()

    def build_messages(self, key: str, prompt: str) -> list[dict[str, Any]]:
        """
        构建发送给模型的消息列表。

        系统消息使用会话的prompt覆盖（未设置时用默认系统提示词），
        随后是最近的历史消息，最后是本次的用户消息。

        Args:
            key: 会话键
            prompt: 用户消息

        Returns:
            LLM格式的消息列表
        """
        session = self.sessions.get_or_create(key)
        system_prompt = session.prompt or self.defaults.system_prompt
        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.extend(session.get_history(self.defaults.max_history_messages))
        messages.append({"role": "user", "content": prompt})
        return messages

    async def complete(self, key: str, prompt: str) -> str:
        """
        获取模型对本条消息的回复。

        用户消息在调用模型前写入历史；助手回复由调用方写入。

        Args:
            key: 会话键（联系人名称或群名称）
            prompt: 清理后的用户消息

        Returns:
            模型回复，失败时返回空字符串
        """
        messages = self.build_messages(key, prompt)
        self.sessions.append_user_turn(key, prompt)

        response = await self.provider.chat(
            messages=messages,
            model=self.defaults.model,
            max_tokens=self.defaults.max_tokens,
            temperature=self.defaults.temperature,
        )
        if response.is_error:
            logger.error(f"Completion failed for {key}: {response.content}")
            return ""
        return (response.content or "").strip()

    async def generate_image(self, key: str, prompt: str) -> str:
        """
        根据prompt生成图片。

        Returns:
            图片URL，失败时返回空字符串
        """
        logger.info(f"Generating image for {key}: {prompt[:80]}")
        result = await self.provider.generate_image(
            prompt,
            model=self.defaults.image_model,
            size=self.defaults.image_size,
        )
        if result.error:
            logger.error(f"Image generation failed for {key}: {result.error}")
            return ""
        return result.url

    async def transcribe(self, locale: str, file_path: str | Path) -> str:
        """
        转录音频文件。

        Args:
            locale: 语言代码，空字符串表示使用配置的默认值
            file_path: 音频文件路径

        Returns:
            转录文本，失败时返回空字符串
        """
        if self.transcriber is None:
            logger.warning("No transcription provider configured")
            return ""
        language = locale or self.defaults.transcription_language
        return await self.transcriber.transcribe(file_path, language=language)
