"""LLM提供者抽象模块。

此模块导出LLM提供者的核心类和实现。
"""

from relaybot.providers.backend import LanguageModelBackend
from relaybot.providers.base import ImageResponse, LLMProvider, LLMResponse
from relaybot.providers.litellm_provider import LiteLLMProvider
from relaybot.providers.transcription import WhisperTranscriptionProvider

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "ImageResponse",
    "LiteLLMProvider",
    "WhisperTranscriptionProvider",
    "LanguageModelBackend",
]
