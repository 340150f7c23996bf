from __future__ import annotations

from hypothesis import given, strategies as st

from etabot.constants import MAX_TIMEOUT_SECONDS, REDACTED_TOKEN
from etabot.moderation.config_schema import (
    BotConfig,
    default_config,
    load_config_document,
    merge_config,
    redact,
    validate_config,
)


def _paths(issues):
    return {i.path for i in issues}


def test_defaults_are_valid():
    assert validate_config(default_config()) == []
    assert BotConfig.from_dict(default_config()) == BotConfig()


def test_min_above_max_is_rejected():
    doc = default_config() | {"min_timeout": 50, "max_timeout": 40}
    assert "$.max_timeout" in _paths(validate_config(doc))


def test_zero_min_timeout_is_rejected():
    doc = default_config() | {"min_timeout": 0}
    assert "$.min_timeout" in _paths(validate_config(doc))


def test_timeout_above_platform_limit_is_rejected():
    doc = default_config() | {"max_timeout": MAX_TIMEOUT_SECONDS + 1}
    assert "$.max_timeout" in _paths(validate_config(doc))


def test_negative_cooldown_and_bad_port_are_rejected():
    doc = default_config() | {"cooldown_seconds": -1, "web_port": 70000}
    assert {"$.cooldown_seconds", "$.web_port"} <= _paths(validate_config(doc))


def test_booleans_are_not_integers():
    doc = default_config() | {"min_timeout": True}
    assert "$.min_timeout" in _paths(validate_config(doc))


def test_prefix_must_be_one_word():
    assert "$.prefix" in _paths(validate_config(default_config() | {"prefix": "!e ta"}))
    assert "$.prefix" in _paths(validate_config(default_config() | {"prefix": ""}))


def test_numeric_strings_are_accepted():
    doc = default_config() | {"target_role_id": "123456789012345678", "enabled_guilds": ["42"]}
    assert validate_config(doc) == []
    config = BotConfig.from_dict(doc)
    assert config.target_role_id == 123456789012345678
    assert config.enabled_guilds == (42,)


def test_merge_ignores_unknown_fields():
    doc = merge_config(BotConfig(), {"min_timeout": 5, "is_admin": True, "__class__": "x"})
    assert doc["min_timeout"] == 5
    assert "is_admin" not in doc
    assert "__class__" not in doc


def test_merge_accepts_camel_case_aliases():
    doc = merge_config(BotConfig(), {"minTimeout": 3, "cooldownSeconds": 0, "targetRoleId": "9"})
    assert doc["min_timeout"] == 3
    assert doc["cooldown_seconds"] == 0
    assert doc["target_role_id"] == "9"


def test_merge_keeps_token_when_redacted_or_missing():
    current = BotConfig(token="real-token")
    assert merge_config(current, {"token": REDACTED_TOKEN})["token"] == "real-token"
    assert merge_config(current, {"prefix": "!x"})["token"] == "real-token"
    assert merge_config(current, {"token": "new-token"})["token"] == "new-token"


def test_redact_hides_token():
    doc = redact(BotConfig(token="secret"))
    assert doc["token"] == REDACTED_TOKEN
    assert doc["web_password"] == "admin123"


def test_guild_allow_list():
    assert BotConfig().guild_enabled(123)
    config = BotConfig(enabled_guilds=(1, 2))
    assert config.guild_enabled(2)
    assert not config.guild_enabled(3)


def test_load_reads_camel_case_file_from_older_versions():
    config, issues = load_config_document(
        {"token": "t", "targetRoleId": "55", "prefix": "!eta", "minTimeout": 10, "maxTimeout": 20, "extra": 1}
    )
    assert issues == []
    assert config.target_role_id == 55
    assert config.max_timeout == 20
    assert config.cooldown_seconds == 60


def test_load_falls_back_to_defaults_on_invalid_document():
    config, issues = load_config_document({"min_timeout": 100, "max_timeout": 1})
    assert issues
    assert config == BotConfig()


def test_negative_ids_are_rejected():
    doc = default_config() | {"target_role_id": -1, "enabled_guilds": [42, -7]}
    assert {"$.target_role_id", "$.enabled_guilds[1]"} <= _paths(validate_config(doc))


@given(value=st.integers(max_value=-1))
def test_any_negative_cooldown_is_rejected(value):
    assert "$.cooldown_seconds" in _paths(validate_config(default_config() | {"cooldown_seconds": value}))


def test_invalid_document_keeps_stored_secret_and_token():
    config, issues = load_config_document(
        {"token": "real-token", "webPassword": "s3cret", "min_timeout": 100, "max_timeout": 1}
    )
    assert issues
    assert config.web_password == "s3cret"
    assert config.token == "real-token"
    assert config.min_timeout == BotConfig().min_timeout


def test_invalid_secret_in_document_falls_back_to_default():
    config, issues = load_config_document({"web_password": "", "min_timeout": 0})
    assert "$.web_password" in _paths(issues)
    assert config.web_password == BotConfig().web_password


@given(low=st.integers(min_value=1, max_value=1000), high=st.integers(min_value=1, max_value=1000))
def test_validation_matches_bounds_rule(low, high):
    issues = validate_config(default_config() | {"min_timeout": low, "max_timeout": high})
    assert (issues == []) == (low <= high)
