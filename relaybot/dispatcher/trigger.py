"""触发规则与消息清理。

私聊：未配置关键词/正则时每条消息都触发；否则需要匹配私聊规则
（共享触发正则优先于关键词）。
群聊：消息必须以"@机器人名称"加空白开头；若配置了共享触发正则，
去掉@前缀后的剩余部分还必须匹配该正则。

clean()把触发标记和引用的聊天记录从消息中去掉，得到发送给模型的文本。
"""

import re

from loguru import logger

from relaybot.config.schema import TriggerConfig
from relaybot.dispatcher.identity import BotIdentity
from relaybot.errors import ConfigError

DEFAULT_HISTORY_SEPARATOR = "- - - - - - - - - - - - - - -"


class TriggerRules:
    """
    触发判断与文本清理。

    群聊@前缀的正则在每次判断时根据BotIdentity构建，
    因此登录后才设置的名称同样生效；名称未设置时群聊永不触发。
    """

    def __init__(
        self,
        config: TriggerConfig,
        identity: BotIdentity,
        history_separator: str = DEFAULT_HISTORY_SEPARATOR,
    ):
        self.identity = identity
        self.history_separator = history_separator
        self.private_trigger_keyword = config.private_trigger_keyword
        self.trigger_rule = _compile(config.trigger_rule) if config.trigger_rule else None

    @property
    def private_trigger_rule(self) -> re.Pattern | None:
        """私聊触发正则：共享正则优先，其次由关键词转义得到。"""
        if self.trigger_rule is not None:
            return self.trigger_rule
        if self.private_trigger_keyword:
            return re.compile(re.escape(self.private_trigger_keyword))
        return None

    @property
    def group_trigger_rule(self) -> re.Pattern | None:
        """群聊@前缀正则，名称未设置时为None。"""
        name = self.identity.display_name
        if not name:
            return None
        return re.compile(rf"^@{re.escape(name)}\s")

    def should_trigger(self, raw_text: str, is_private: bool) -> bool:
        """
        判断消息是否触发模型对话。

        Args:
            raw_text: 原始消息文本
            is_private: 是否为私聊

        Returns:
            触发时返回True
        """
        if is_private:
            rule = self.private_trigger_rule
            triggered = rule.search(raw_text) is not None if rule else True
        else:
            mention = self.group_trigger_rule
            triggered = mention is not None and mention.search(raw_text) is not None
            if triggered and self.trigger_rule is not None:
                remainder = mention.sub("", raw_text, count=1)
                triggered = self.trigger_rule.search(remainder) is not None

        if triggered:
            logger.info(f"Triggered: {raw_text}")
        return triggered

    def strip_history(self, raw_text: str) -> str:
        """只保留最后一个聊天记录分隔行之后的文本。"""
        if self.history_separator and self.history_separator in raw_text:
            return raw_text.rsplit(self.history_separator, 1)[-1]
        return raw_text

    def clean(self, raw_text: str, is_private: bool) -> str:
        """
        去掉引用的聊天记录和触发标记。

        只去掉每种标记的第一个匹配；结果可能为空字符串。

        Args:
            raw_text: 原始消息文本
            is_private: 是否为私聊

        Returns:
            清理后的文本
        """
        text = self.strip_history(raw_text)

        if is_private:
            rule = self.private_trigger_rule
            if rule is not None:
                text = rule.sub("", text, count=1)
        else:
            mention = self.group_trigger_rule
            if mention is not None:
                text = mention.sub("", text, count=1)
            if self.trigger_rule is not None:
                text = self.trigger_rule.sub("", text, count=1)
        return text


def _compile(pattern: str) -> re.Pattern:
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ConfigError(f"Invalid trigger rule {pattern!r}: {e}") from e
