"""使用LiteLLM实现的多提供者支持。

此模块实现了基于LiteLLM的LLM提供者，支持通过统一接口
访问多个LLM提供者（OpenAI、OpenRouter、DeepSeek、通义千问等）。
提供者特定的逻辑由注册表驱动（参见providers/registry.py）。
"""

import os
from typing import Any

import litellm
from litellm import acompletion, aimage_generation

from relaybot.providers.base import ImageResponse, LLMProvider, LLMResponse
from relaybot.providers.registry import find_by_model, find_gateway


class LiteLLMProvider(LLMProvider):
    """
    使用LiteLLM实现的多提供者LLM提供者。

    支持的功能：
    - 自动检测网关
    - 自动添加模型前缀
    - 模型特定的参数覆盖
    - 对话补全与图片生成
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "gpt-4o-mini",
        extra_headers: dict[str, str] | None = None,
        provider_name: str | None = None,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.extra_headers = extra_headers or {}

        # provider_name（来自配置键）是主要信号；api_key / api_base用于自动检测
        self._gateway = find_gateway(provider_name, api_key, api_base)

        if api_key:
            self._setup_env(api_key, api_base, default_model)

        if api_base:
            litellm.api_base = api_base

        # Disable LiteLLM logging noise
        litellm.suppress_debug_info = True
        # Drop unsupported parameters for providers
        litellm.drop_params = True

    def _setup_env(self, api_key: str, api_base: str | None, model: str) -> None:
        """
        根据检测到的提供者设置环境变量。

        对于网关会覆盖现有环境变量；对于标准提供者只设置默认值。

        Args:
            api_key: API密钥
            api_base: API基础URL
            model: 模型名称
        """
        spec = self._gateway or find_by_model(model)
        if not spec:
            return

        if self._gateway:
            os.environ[spec.env_key] = api_key
        else:
            os.environ.setdefault(spec.env_key, api_key)

        # 解析env_extras占位符：{api_key}、{api_base}
        effective_base = api_base or spec.default_api_base
        for env_name, env_val in spec.env_extras:
            resolved = env_val.replace("{api_key}", api_key)
            resolved = resolved.replace("{api_base}", effective_base)
            os.environ.setdefault(env_name, resolved)

    def _resolve_model(self, model: str) -> str:
        """
        通过应用提供者/网关前缀来解析模型名称。

        例如：deepseek-chat → deepseek/deepseek-chat（标准提供者）
             或 gpt-4o → openrouter/gpt-4o（OpenRouter网关）

        Args:
            model: 原始模型名称

        Returns:
            解析后的模型名称（带前缀）
        """
        if self._gateway:
            prefix = self._gateway.litellm_prefix
            if prefix and not model.startswith(f"{prefix}/"):
                model = f"{prefix}/{model}"
            return model

        spec = find_by_model(model)
        if spec and spec.litellm_prefix:
            if not any(model.startswith(s) for s in spec.skip_prefixes):
                model = f"{spec.litellm_prefix}/{model}"

        return model

    def _apply_model_overrides(self, model: str, kwargs: dict[str, Any]) -> None:
        """应用注册表中的模型特定参数覆盖（例如kimi-k2.5要求temperature >= 1.0）。"""
        model_lower = model.lower()
        spec = find_by_model(model)
        if spec:
            for pattern, overrides in spec.model_overrides:
                if pattern in model_lower:
                    kwargs.update(overrides)
                    return

    def _auth_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        # Pass api_key directly, more reliable than env vars alone
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.extra_headers:
            kwargs["extra_headers"] = self.extra_headers
        return kwargs

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """
        Send a chat completion request via LiteLLM.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            model: Model identifier (e.g., 'gpt-4o-mini', 'deepseek-chat').
            max_tokens: Maximum tokens in response.
            temperature: Sampling temperature.

        Returns:
            LLMResponse with content, or an error-shaped response.
        """
        model = self._resolve_model(model or self.default_model)

        kwargs: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        self._apply_model_overrides(model, kwargs)
        kwargs.update(self._auth_kwargs())

        try:
            response = await acompletion(**kwargs)
            return self._parse_response(response)
        except Exception as e:
            # Return error as content for graceful handling
            return LLMResponse(
                content=f"Error calling LLM: {str(e)}",
                finish_reason="error",
            )

    def _parse_response(self, response: Any) -> LLMResponse:
        """将LiteLLM响应解析为标准的LLMResponse。"""
        choice = response.choices[0]
        message = choice.message

        usage = {}
        if hasattr(response, "usage") and response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=message.content,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
        )

    async def generate_image(
        self,
        prompt: str,
        model: str | None = None,
        size: str = "1024x1024",
    ) -> ImageResponse:
        """
        Generate one image via LiteLLM and return its URL.

        Args:
            prompt: Image description.
            model: Image model (e.g., 'dall-e-3').
            size: Image size such as '1024x1024'.

        Returns:
            ImageResponse with the URL, or an error-shaped response.
        """
        kwargs: dict[str, Any] = {
            "model": self._resolve_model(model or "dall-e-3"),
            "prompt": prompt,
            "n": 1,
            "size": size,
        }
        kwargs.update(self._auth_kwargs())

        try:
            response = await aimage_generation(**kwargs)
            return self._parse_image_response(response)
        except Exception as e:
            return ImageResponse(error=f"Error generating image: {str(e)}")

    def _parse_image_response(self, response: Any) -> ImageResponse:
        data = getattr(response, "data", None) or []
        if not data:
            return ImageResponse(error="Image response contained no data")

        item = data[0]
        if isinstance(item, dict):
            url = item.get("url") or ""
            revised = item.get("revised_prompt")
        else:
            url = getattr(item, "url", None) or ""
            revised = getattr(item, "revised_prompt", None)
        if not url:
            return ImageResponse(error="Image response contained no URL")
        return ImageResponse(url=url, revised_prompt=revised)
