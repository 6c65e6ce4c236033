"""Tests for configuration loading and migration."""

import json

from relaybot.config.loader import (
    camel_to_snake,
    load_config,
    save_config,
    snake_to_camel,
)
from relaybot.config.schema import Config


class TestLoadConfig:
    """Test reading config files."""

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "missing.json")
        assert config.reply.max_message_size == 500
        assert config.reply.fallback_message == "Sorry, please try again later. 😔"
        assert config.classifier.system_accounts == ["微信团队"]

    def test_camel_case_keys(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "trigger": {"privateTriggerKeyword": "gpt", "chatgptBlockWords": ["secret"]},
            "channels": {"wechat": {"bridgeUrl": "ws://bridge:3002", "reconnectDelayS": 1}},
        }), encoding="utf-8")

        config = load_config(path)

        assert config.trigger.private_trigger_keyword == "gpt"
        assert config.trigger.chatgpt_block_words == ["secret"]
        assert config.channels.wechat.bridge_url == "ws://bridge:3002"
        assert config.channels.wechat.reconnect_delay_s == 1

    def test_legacy_flat_keys_migrated(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "openaiApiKey": "sk-test",
            "chatPrivateTriggerKeyword": "gpt",
            "chatTriggerRule": "^!ask",
            "disableGroupMessage": True,
            "blockWords": ["spam"],
            "chatgptBlockWords": ["secret"],
        }), encoding="utf-8")

        config = load_config(path)

        assert config.providers.openai.api_key == "sk-test"
        assert config.trigger.private_trigger_keyword == "gpt"
        assert config.trigger.trigger_rule == "^!ask"
        assert config.trigger.disable_group_message is True
        assert config.trigger.block_words == ["spam"]
        assert config.trigger.chatgpt_block_words == ["secret"]

    def test_new_keys_win_over_legacy(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "chatPrivateTriggerKeyword": "old",
            "trigger": {"privateTriggerKeyword": "new"},
        }), encoding="utf-8")

        assert load_config(path).trigger.private_trigger_keyword == "new"

    def test_invalid_json_gives_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        assert load_config(path).reply.max_message_size == 500

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        config = Config()
        config.trigger.block_words = ["spam"]
        config.providers.groq.api_key = "gsk-test"

        save_config(config, path)

        raw = json.loads(path.read_text(encoding="utf-8"))
        assert raw["trigger"]["blockWords"] == ["spam"]
        assert load_config(path).providers.groq.api_key == "gsk-test"


class TestKeyConversion:
    """Test camelCase and snake_case conversion."""

    def test_camel_to_snake(self):
        assert camel_to_snake("chatgptBlockWords") == "chatgpt_block_words"
        assert camel_to_snake("apiKey") == "api_key"

    def test_snake_to_camel(self):
        assert snake_to_camel("max_message_size") == "maxMessageSize"
        assert snake_to_camel("enabled") == "enabled"


class TestProviderResolution:
    """Test provider matching on the config object."""

    def test_keyword_match(self):
        config = Config()
        config.providers.deepseek.api_key = "sk-ds"
        config.providers.openai.api_key = "sk-oa"
        config.agents.defaults.model = "deepseek-chat"

        assert config.get_provider_name() == "deepseek"
        assert config.get_provider().api_key == "sk-ds"

    def test_no_keys(self):
        config = Config()
        assert config.get_provider() is None
        assert config.get_transcription_provider() == (None, None)

    def test_transcription_provider(self):
        config = Config()
        config.providers.groq.api_key = "gsk-test"
        p, name = config.get_transcription_provider()
        assert name == "groq"
        assert p.api_key == "gsk-test"
