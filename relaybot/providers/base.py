"""LLM提供者的基础接口。

此模块定义了LLM提供者的抽象基类和数据结构。
所有LLM提供者实现都必须继承自LLMProvider类，并实现其抽象方法。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class LLMResponse:
    """
    LLM提供者的响应。

    出错时content携带错误描述，finish_reason为"error"。
    """
    content: str | None  # 响应文本内容
    finish_reason: str = "stop"  # 完成原因（stop、length、error等）
    usage: dict[str, int] = field(default_factory=dict)  # Token使用统计

    @property
    def is_error(self) -> bool:
        return self.finish_reason == "error"


@dataclass
class ImageResponse:
    """画图请求的结果：成功时url非空，出错时error非空。"""
    url: str = ""
    revised_prompt: str | None = None
    error: str | None = None


class LLMProvider(ABC):
    """
    LLM提供者的抽象基类。

    实现类应该处理每个提供者API的特定细节，同时保持一致的接口，
    并且不抛出异常：错误以LLMResponse/ImageResponse的形式返回。
    """

    def __init__(self, api_key: str | None = None, api_base: str | None = None):
        """
        初始化LLM提供者。

        Args:
            api_key: API密钥
            api_base: API基础URL（可选）
        """
        self.api_key = api_key
        self.api_base = api_base

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """
        发送聊天完成请求。

        Args:
            messages: 消息列表，每个消息包含'role'和'content'字段
            model: 模型标识符（提供者特定）
            max_tokens: 响应的最大token数
            temperature: 采样温度

        Returns:
            LLMResponse
        """
        pass

    @abstractmethod
    async def generate_image(
        self,
        prompt: str,
        model: str | None = None,
        size: str = "1024x1024",
    ) -> ImageResponse:
        """
        根据prompt生成一张图片。

        Args:
            prompt: 图片描述
            model: 画图模型
            size: 图片尺寸，例如"1024x1024"

        Returns:
            ImageResponse
        """
        pass
