"""
提供者注册表：LLM提供者元数据的单一真实来源。

添加新提供者的步骤：
  1. 在下面的PROVIDERS中添加一个ProviderSpec。
  2. 在config/schema.py的ProvidersConfig中添加一个字段。
  完成。环境变量、前缀、配置匹配、语音转录端点都从这里派生。

顺序很重要，它控制匹配优先级和回退顺序。网关优先。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ProviderSpec:
    """
    一个LLM提供者的元数据。参见下面的PROVIDERS了解真实示例。

    env_extras值中的占位符：
      {api_key}  : 用户的API密钥
      {api_base} : 来自配置的api_base，或此规范的default_api_base
    """

    # 身份信息
    name: str  # 配置字段名称，例如"dashscope"
    keywords: tuple[str, ...]  # 用于匹配的模型名称关键词（小写）
    env_key: str  # LiteLLM环境变量，例如"DASHSCOPE_API_KEY"
    display_name: str = ""  # 在`relaybot status`中显示的名称

    # 模型前缀
    litellm_prefix: str = ""  # "dashscope" → 模型变为"dashscope/{model}"
    skip_prefixes: tuple[str, ...] = ()  # 如果模型已以这些前缀开头，则不添加前缀

    # 额外的环境变量，例如(("ZHIPUAI_API_KEY", "{api_key}"),)
    env_extras: tuple[tuple[str, str], ...] = ()

    # 网关检测
    is_gateway: bool = False  # 路由任何模型（OpenRouter）
    detect_by_key_prefix: str = ""  # 匹配api_key前缀，例如"sk-or-"
    detect_by_base_keyword: str = ""  # 匹配api_base URL中的子字符串
    default_api_base: str = ""  # 回退基础URL

    # 每个模型的参数覆盖，例如(("kimi-k2.5", {"temperature": 1.0}),)
    model_overrides: tuple[tuple[str, dict[str, Any]], ...] = ()

    # OpenAI兼容的语音转录端点（为空表示不提供转录）
    transcription_url: str = ""
    transcription_model: str = ""

    @property
    def label(self) -> str:
        return self.display_name or self.name.title()


# ---------------------------------------------------------------------------
# PROVIDERS：注册表。顺序 = 优先级。
# ---------------------------------------------------------------------------

PROVIDERS: tuple[ProviderSpec, ...] = (

    # OpenRouter: global gateway, keys start with "sk-or-"
    ProviderSpec(
        name="openrouter",
        keywords=("openrouter",),
        env_key="OPENROUTER_API_KEY",
        display_name="OpenRouter",
        litellm_prefix="openrouter",        # gpt-4o → openrouter/gpt-4o
        is_gateway=True,
        detect_by_key_prefix="sk-or-",
        detect_by_base_keyword="openrouter",
        default_api_base="https://openrouter.ai/api/v1",
    ),

    # OpenAI: chat, DALL·E and Whisper. LiteLLM recognizes "gpt-*" / "dall-e-*" natively.
    ProviderSpec(
        name="openai",
        keywords=("openai", "gpt", "dall-e", "whisper"),
        env_key="OPENAI_API_KEY",
        display_name="OpenAI",
        transcription_url="https://api.openai.com/v1/audio/transcriptions",
        transcription_model="whisper-1",
    ),

    # DeepSeek: needs "deepseek/" prefix for LiteLLM routing.
    ProviderSpec(
        name="deepseek",
        keywords=("deepseek",),
        env_key="DEEPSEEK_API_KEY",
        display_name="DeepSeek",
        litellm_prefix="deepseek",          # deepseek-chat → deepseek/deepseek-chat
        skip_prefixes=("deepseek/",),
    ),

    # Zhipu: LiteLLM uses "zai/" prefix; mirrors key to ZHIPUAI_API_KEY.
    ProviderSpec(
        name="zhipu",
        keywords=("zhipu", "glm", "zai"),
        env_key="ZAI_API_KEY",
        display_name="Zhipu AI",
        litellm_prefix="zai",               # glm-4 → zai/glm-4
        skip_prefixes=("zhipu/", "zai/", "openrouter/"),
        env_extras=(
            ("ZHIPUAI_API_KEY", "{api_key}"),
        ),
    ),

    # DashScope: Qwen models, needs "dashscope/" prefix.
    ProviderSpec(
        name="dashscope",
        keywords=("qwen", "dashscope"),
        env_key="DASHSCOPE_API_KEY",
        display_name="DashScope",
        litellm_prefix="dashscope",         # qwen-max → dashscope/qwen-max
        skip_prefixes=("dashscope/", "openrouter/"),
    ),

    # Moonshot: Kimi models. Kimi K2.5 API enforces temperature >= 1.0.
    ProviderSpec(
        name="moonshot",
        keywords=("moonshot", "kimi"),
        env_key="MOONSHOT_API_KEY",
        display_name="Moonshot",
        litellm_prefix="moonshot",          # kimi-k2.5 → moonshot/kimi-k2.5
        skip_prefixes=("moonshot/", "openrouter/"),
        env_extras=(
            ("MOONSHOT_API_BASE", "{api_base}"),
        ),
        default_api_base="https://api.moonshot.cn/v1",
        model_overrides=(
            ("kimi-k2.5", {"temperature": 1.0}),
        ),
    ),

    # Groq: mainly used for Whisper voice transcription. Placed last, it rarely wins fallback.
    ProviderSpec(
        name="groq",
        keywords=("groq",),
        env_key="GROQ_API_KEY",
        display_name="Groq",
        litellm_prefix="groq",              # llama3-8b-8192 → groq/llama3-8b-8192
        skip_prefixes=("groq/",),
        transcription_url="https://api.groq.com/openai/v1/audio/transcriptions",
        transcription_model="whisper-large-v3",
    ),
)


# ---------------------------------------------------------------------------
# 查找辅助函数
# ---------------------------------------------------------------------------

def find_by_model(model: str) -> ProviderSpec | None:
    """
    通过模型名称关键词匹配标准提供者（不区分大小写）。

    跳过网关，网关通过api_key/api_base匹配。

    Args:
        model: 模型名称

    Returns:
        匹配的ProviderSpec，如果未找到则返回None
    """
    model_lower = model.lower()
    for spec in PROVIDERS:
        if spec.is_gateway:
            continue
        if any(kw in model_lower for kw in spec.keywords):
            return spec
    return None


def find_gateway(
    provider_name: str | None = None,
    api_key: str | None = None,
    api_base: str | None = None,
) -> ProviderSpec | None:
    """
    检测网关提供者。

    优先级：
      1. provider_name：如果它映射到网关规范，直接使用。
      2. api_key前缀：例如"sk-or-" → OpenRouter。
      3. api_base关键词：例如URL中的"openrouter"。

    Args:
        provider_name: 提供者名称
        api_key: API密钥
        api_base: API基础URL

    Returns:
        匹配的ProviderSpec，如果未找到则返回None
    """
    if provider_name:
        spec = find_by_name(provider_name)
        if spec and spec.is_gateway:
            return spec

    for spec in PROVIDERS:
        if spec.detect_by_key_prefix and api_key and api_key.startswith(spec.detect_by_key_prefix):
            return spec
        if spec.detect_by_base_keyword and api_base and spec.detect_by_base_keyword in api_base:
            return spec

    return None


def find_by_name(name: str) -> ProviderSpec | None:
    """通过配置字段名称查找提供者规范，例如"dashscope"。"""
    for spec in PROVIDERS:
        if spec.name == name:
            return spec
    return None


def transcription_providers() -> list[ProviderSpec]:
    """按优先级返回提供语音转录端点的提供者。"""
    return [spec for spec in PROVIDERS if spec.transcription_url]
