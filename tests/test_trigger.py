"""Tests for trigger evaluation and message cleaning."""

import pytest

from relaybot.config.schema import TriggerConfig
from relaybot.dispatcher.identity import BotIdentity
from relaybot.dispatcher.trigger import DEFAULT_HISTORY_SEPARATOR, TriggerRules
from relaybot.errors import ConfigError, IdentityError


def rules(identity=None, **kwargs) -> TriggerRules:
    return TriggerRules(TriggerConfig(**kwargs), identity or BotIdentity("Bot"))


class TestPrivateTrigger:
    """Test private chat trigger rules."""

    def test_no_rule_triggers_everything(self):
        assert rules().should_trigger("anything", is_private=True) is True

    def test_keyword_required(self):
        r = rules(private_trigger_keyword="gpt")
        assert r.should_trigger("hey gpt what time is it", is_private=True) is True
        assert r.should_trigger("hey what time is it", is_private=True) is False

    def test_keyword_is_literal(self):
        r = rules(private_trigger_keyword="a.b")
        assert r.should_trigger("a.b?", is_private=True) is True
        assert r.should_trigger("axb", is_private=True) is False

    def test_shared_rule_overrides_keyword(self):
        r = rules(private_trigger_keyword="gpt", trigger_rule=r"^!ask")
        assert r.should_trigger("!ask hi", is_private=True) is True
        assert r.should_trigger("gpt hi", is_private=True) is False

    def test_invalid_rule_raises_config_error(self):
        with pytest.raises(ConfigError):
            rules(trigger_rule="(")


class TestGroupTrigger:
    """Test group chat mention rules."""

    def test_mention_with_whitespace_triggers(self):
        assert rules().should_trigger("@Bot hello", is_private=False) is True

    def test_mention_without_whitespace_does_not_trigger(self):
        assert rules().should_trigger("@Bothello", is_private=False) is False

    def test_mention_not_at_start_does_not_trigger(self):
        assert rules().should_trigger("hi @Bot hello", is_private=False) is False

    def test_other_name_does_not_trigger(self):
        assert rules().should_trigger("@Other hello", is_private=False) is False

    def test_name_is_escaped(self):
        r = rules(BotIdentity("B.t"))
        assert r.should_trigger("@B.t hi", is_private=False) is True
        assert r.should_trigger("@Bxt hi", is_private=False) is False

    def test_unset_identity_never_triggers(self):
        r = rules(BotIdentity())
        assert r.group_trigger_rule is None
        assert r.should_trigger("@Bot hello", is_private=False) is False

    def test_identity_set_after_construction(self):
        identity = BotIdentity()
        r = rules(identity)
        identity.set("Bot")
        assert r.should_trigger("@Bot hello", is_private=False) is True

    def test_shared_rule_applies_after_mention(self):
        r = rules(trigger_rule=r"^!ask")
        assert r.should_trigger("@Bot !ask hello", is_private=False) is True
        assert r.should_trigger("@Bot hello", is_private=False) is False


class TestClean:
    """Test removal of trigger markers and quoted history."""

    def test_group_mention_removed_once(self):
        assert rules().clean("@Bot  tell me a joke", is_private=False) == " tell me a joke"

    def test_group_clean_is_not_repeated(self):
        assert rules().clean("@Bot @Bot hi", is_private=False) == "@Bot hi"

    def test_private_keyword_removed_once(self):
        r = rules(private_trigger_keyword="gpt")
        assert r.clean("gpt hello gpt", is_private=True) == " hello gpt"

    def test_private_without_rule_unchanged(self):
        assert rules().clean("hello", is_private=True) == "hello"

    def test_history_stripped(self):
        text = f"old message\n{DEFAULT_HISTORY_SEPARATOR}\nnew question"
        assert rules().clean(text, is_private=True) == "\nnew question"

    def test_only_text_after_last_separator_kept(self):
        sep = DEFAULT_HISTORY_SEPARATOR
        text = f"a{sep}b{sep}c"
        assert rules().strip_history(text) == "c"

    def test_clean_can_produce_empty_string(self):
        r = rules(private_trigger_keyword="gpt")
        assert r.clean("gpt", is_private=True) == ""

    def test_group_shared_rule_removed(self):
        r = rules(trigger_rule=r"!ask ")
        assert r.clean("@Bot !ask hello", is_private=False) == "hello"


class TestBotIdentity:
    """Test the write-once bot identity."""

    def test_set_once(self):
        identity = BotIdentity()
        assert identity.is_set is False
        identity.set("Bot")
        assert identity.display_name == "Bot"

    def test_same_name_again_is_noop(self):
        identity = BotIdentity("Bot")
        identity.set("Bot")
        assert identity.display_name == "Bot"

    def test_different_name_rejected(self):
        identity = BotIdentity("Bot")
        with pytest.raises(IdentityError):
            identity.set("Other")

    def test_empty_name_rejected(self):
        with pytest.raises(IdentityError):
            BotIdentity().set("")


class TestCleanIdempotence:
    """Cleaning already-clean text changes nothing."""

    @pytest.mark.parametrize("text", ["hello", "what is 2+2", "  spaced  ", "多语言 text"])
    @pytest.mark.parametrize("is_private", [True, False])
    def test_idempotent(self, text, is_private):
        r = rules(private_trigger_keyword="gpt")
        once = r.clean(text, is_private)
        assert r.clean(once, is_private) == once
