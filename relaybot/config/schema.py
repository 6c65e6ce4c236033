"""使用Pydantic的配置模式定义。

此模块定义了relaybot的所有配置结构，包括：
- 微信桥接渠道配置
- 触发规则与屏蔽词配置
- 消息分类表（系统账号、平台占位提示）
- 回复配置（分段长度、兜底回复等）
- LLM提供者配置与模型默认值

所有配置类都继承自Pydantic的BaseModel，提供类型验证。
"""

from pydantic import BaseModel, Field, ConfigDict
from pydantic_settings import BaseSettings


class WeChatConfig(BaseModel):
    """微信渠道配置，通过WebSocket连接到微信网页版桥接服务。"""
    enabled: bool = True  # 是否启用
    bridge_url: str = "ws://localhost:3002"  # 桥接服务URL
    allow_from: list[str] = Field(default_factory=list)  # 允许的联系人/群名称，空表示所有人
    reconnect_delay_s: float = 5.0  # 断线重连间隔（秒）


class ChannelsConfig(BaseModel):
    """聊天渠道配置集合。"""
    wechat: WeChatConfig = Field(default_factory=WeChatConfig)


class TriggerConfig(BaseModel):
    """
    触发规则配置。

    群聊始终要求@机器人；私聊在未配置关键词和正则时对每条消息都触发。
    """
    private_trigger_keyword: str = ""  # 私聊触发关键词
    trigger_rule: str = ""  # 共享触发正则（优先于关键词）
    disable_group_message: bool = False  # 是否关闭群聊回复
    block_words: list[str] = Field(default_factory=list)  # 入站消息屏蔽词
    chatgpt_block_words: list[str] = Field(default_factory=list)  # 模型回复屏蔽词


class ClassifierConfig(BaseModel):
    """消息分类表：平台相关的系统账号和不支持内容的占位提示。"""
    system_accounts: list[str] = Field(default_factory=lambda: ["微信团队"])
    placeholder_notices: list[str] = Field(default_factory=lambda: [
        "收到一条视频/语音聊天消息，请在手机上查看",
        "收到红包，请在手机上查看",
        "收到转账，请在手机上查看",
        "/cgi-bin/mmwebwx-bin/webwxgetpubliclinkimg",
    ])
    history_separator: str = "- - - - - - - - - - - - - - -"  # 引用聊天记录的分隔行


class ReplyConfig(BaseModel):
    """回复配置。"""
    max_message_size: int = Field(default=500, gt=0)  # 单条消息最大字符数
    fallback_message: str = "Sorry, please try again later. 😔"  # 模型/画图失败时的兜底回复
    notify_unknown_command: bool = False  # 未知命令是否回复提示
    serialize_per_conversation: bool = True  # 同一会话的消息是否串行处理


class AgentDefaults(BaseModel):
    """模型默认配置。"""
    model: str = "gpt-4o-mini"  # 对话模型
    image_model: str = "dall-e-3"  # 画图模型
    image_size: str = "1024x1024"  # 图片尺寸
    transcription_model: str = ""  # 语音转录模型（空表示使用提供者默认值）
    transcription_language: str = ""  # 语音转录语言（空表示自动识别）
    system_prompt: str = "You are a helpful assistant."  # 未设置会话prompt时使用
    max_tokens: int = 2048  # 最大token数
    temperature: float = 0.7  # 温度参数
    max_history_messages: int = 20  # 发送给模型的最大历史消息数


class AgentsConfig(BaseModel):
    """模型配置。"""
    defaults: AgentDefaults = Field(default_factory=AgentDefaults)


class ProviderConfig(BaseModel):
    """LLM提供者配置。"""
    api_key: str = ""  # API密钥
    api_base: str | None = None  # API基础URL（可选）
    extra_headers: dict[str, str] | None = None  # 自定义请求头


class ProvidersConfig(BaseModel):
    """LLM提供者配置集合。"""
    openrouter: ProviderConfig = Field(default_factory=ProviderConfig)  # OpenRouter
    openai: ProviderConfig = Field(default_factory=ProviderConfig)  # OpenAI
    deepseek: ProviderConfig = Field(default_factory=ProviderConfig)  # DeepSeek
    zhipu: ProviderConfig = Field(default_factory=ProviderConfig)  # 智谱AI
    dashscope: ProviderConfig = Field(default_factory=ProviderConfig)  # 阿里云通义千问
    moonshot: ProviderConfig = Field(default_factory=ProviderConfig)  # Moonshot
    groq: ProviderConfig = Field(default_factory=ProviderConfig)  # Groq


class Config(BaseSettings):
    """
    relaybot的根配置类。

    支持从环境变量加载配置（通过RELAYBOT_前缀，嵌套用双下划线）。
    """
    agents: AgentsConfig = Field(default_factory=AgentsConfig)  # 模型配置
    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)  # 渠道配置
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)  # 提供者配置
    trigger: TriggerConfig = Field(default_factory=TriggerConfig)  # 触发规则
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)  # 消息分类表
    reply: ReplyConfig = Field(default_factory=ReplyConfig)  # 回复配置

    def _match_provider(self, model: str | None = None) -> tuple["ProviderConfig | None", str | None]:
        """
        匹配提供者配置及其注册表名称。

        根据模型名称的关键词匹配相应的提供者配置。
        如果无法匹配，则回退到第一个可用的提供者。

        Args:
            model: 模型名称，如果为None则使用默认模型

        Returns:
            包含(配置对象, 提供者名称)的元组
        """
        from relaybot.providers.registry import PROVIDERS
        model_lower = (model or self.agents.defaults.model).lower()

        # 按关键词匹配（顺序遵循PROVIDERS注册表）
        for spec in PROVIDERS:
            p = getattr(self.providers, spec.name, None)
            if p and any(kw in model_lower for kw in spec.keywords) and p.api_key:
                return p, spec.name

        # 回退：先网关，后其他（遵循注册表顺序）
        for spec in PROVIDERS:
            p = getattr(self.providers, spec.name, None)
            if p and p.api_key:
                return p, spec.name
        return None, None

    def get_provider(self, model: str | None = None) -> ProviderConfig | None:
        """获取匹配的提供者配置，无法匹配时回退到第一个可用的提供者。"""
        p, _ = self._match_provider(model)
        return p

    def get_provider_name(self, model: str | None = None) -> str | None:
        """获取匹配的提供者的注册表名称，例如"deepseek"。"""
        _, name = self._match_provider(model)
        return name

    def get_api_base(self, model: str | None = None) -> str | None:
        """
        获取指定模型的API基础URL。

        只有网关会在这里获得默认api_base。标准提供者（如Moonshot）
        通过环境变量设置其基础URL，以避免污染全局的litellm.api_base。

        Args:
            model: 模型名称，如果为None则使用默认模型

        Returns:
            API基础URL，如果未找到则返回None
        """
        from relaybot.providers.registry import find_by_name
        p, name = self._match_provider(model)
        if p and p.api_base:
            return p.api_base
        if name:
            spec = find_by_name(name)
            if spec and spec.is_gateway and spec.default_api_base:
                return spec.default_api_base
        return None

    def get_transcription_provider(self) -> tuple[ProviderConfig | None, str | None]:
        """
        获取第一个配置了API密钥且提供语音转录的提供者。

        Returns:
            包含(配置对象, 提供者名称)的元组，未找到时为(None, None)
        """
        from relaybot.providers.registry import transcription_providers
        for spec in transcription_providers():
            p = getattr(self.providers, spec.name, None)
            if p and p.api_key:
                return p, spec.name
        return None, None

    model_config = ConfigDict(
        env_prefix="RELAYBOT_",
        env_nested_delimiter="__"
    )
