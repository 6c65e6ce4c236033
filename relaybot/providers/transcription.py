"""使用Whisper兼容接口的语音转录提供者。

此模块通过OpenAI兼容的/audio/transcriptions接口进行语音转录，
OpenAI和Groq都提供这一接口（端点由providers/registry.py给出）。
"""

import os
from pathlib import Path

import httpx
from loguru import logger

from relaybot.providers.registry import find_by_name


class WhisperTranscriptionProvider:
    """
    使用Whisper兼容API进行语音转录的提供者。

    上传音频文件，返回转录文本；出错时返回空字符串。
    """

    def __init__(
        self,
        api_key: str | None = None,
        provider_name: str = "openai",
        api_url: str | None = None,
        model: str | None = None,
    ):
        """
        初始化转录提供者。

        Args:
            api_key: API密钥，如果未提供则从提供者的环境变量获取
            provider_name: 注册表中的提供者名称（openai或groq）
            api_url: 覆盖转录端点URL
            model: 覆盖转录模型
        """
        spec = find_by_name(provider_name)
        self.provider_name = provider_name
        self.api_key = api_key or (os.environ.get(spec.env_key) if spec else None)
        self.api_url = api_url or (spec.transcription_url if spec else "")
        self.model = model or (spec.transcription_model if spec else "whisper-1")

    async def transcribe(self, file_path: str | Path, language: str = "") -> str:
        """
        转录音频文件。

        Args:
            file_path: 音频文件路径
            language: ISO-639-1语言代码，空字符串表示自动识别

        Returns:
            转录的文本，如果出错则返回空字符串
        """
        if not self.api_key or not self.api_url:
            logger.warning(f"Transcription not configured for provider {self.provider_name}")
            return ""

        path = Path(file_path)
        if not path.exists():
            logger.error(f"Audio file not found: {file_path}")
            return ""

        try:
            async with httpx.AsyncClient() as client:
                with open(path, "rb") as f:
                    files = {
                        "file": (path.name, f),
                        "model": (None, self.model),
                    }
                    if language:
                        files["language"] = (None, language)
                    headers = {
                        "Authorization": f"Bearer {self.api_key}",
                    }

                    response = await client.post(
                        self.api_url,
                        headers=headers,
                        files=files,
                        timeout=60.0
                    )

                    response.raise_for_status()
                    data = response.json()
                    return data.get("text", "")

        except Exception as e:
            logger.error(f"{self.provider_name} transcription error: {e}")
            return ""
