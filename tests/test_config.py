"""Configuration loading from environment variables."""

from __future__ import annotations

import pytest

from relaybot.config import AppConfig, build_greeting
from relaybot.errors import ConfigurationError


def test_load_applies_defaults(required_env) -> None:
    config = AppConfig.load()

    assert config.telegram_bot_token == "123456:TEST"
    assert config.openai_api_key == "test-key"
    assert config.openai_api_base == "https://api.openai.com/v1"
    assert config.openai_model == "gpt-3.5-turbo"
    assert config.greeting_message is None
    assert config.request_timeout == 60.0
    assert config.use_webhook is False


@pytest.mark.parametrize("missing", ["TELOXIDE_TOKEN", "OPENAI_API_KEY"])
def test_load_requires_token_and_api_key(required_env, missing) -> None:
    required_env.delenv(missing)

    with pytest.raises(ConfigurationError) as excinfo:
        AppConfig.load()

    assert excinfo.value.variable == missing
    assert missing in str(excinfo.value)


def test_blank_required_value_counts_as_missing(required_env) -> None:
    required_env.setenv("OPENAI_API_KEY", "   ")

    with pytest.raises(ConfigurationError):
        AppConfig.load()


def test_load_reads_overrides(required_env) -> None:
    required_env.setenv("OPENAI_API_BASE", "http://localhost:11434/v1/")
    required_env.setenv("OPENAI_MODEL_NAME", "llama3")
    required_env.setenv("BOT_GREETING_MESSAGE", "Hi there")
    required_env.setenv("BOT_USERNAME", "@relay_bot")
    required_env.setenv("OPENAI_REQUEST_TIMEOUT", "12.5")
    required_env.setenv("LOKI_LABELS", "application=relaybot, environment=test,broken")
    required_env.setenv("TELEGRAM_WEBHOOK_URL", "https://example.com/api/telegram/webhook")
    required_env.setenv("WEBHOOK_PORT", "9000")

    config = AppConfig.load()

    assert config.openai_api_base == "http://localhost:11434/v1"
    assert config.openai_model == "llama3"
    assert config.greeting() == "Hi there"
    assert config.bot_username == "relay_bot"
    assert config.request_timeout == 12.5
    assert config.loki_labels == {"application": "relaybot", "environment": "test"}
    assert config.use_webhook is True
    assert config.webhook_port == 9000


@pytest.mark.parametrize("value", ["soon", "-1", "0", "nan", "inf", "-inf"])
def test_malformed_timeout_is_a_configuration_error(required_env, value) -> None:
    required_env.setenv("OPENAI_REQUEST_TIMEOUT", value)

    with pytest.raises(ConfigurationError) as excinfo:
        AppConfig.load()

    assert excinfo.value.variable == "OPENAI_REQUEST_TIMEOUT"


def test_generated_greeting_names_the_model(required_env) -> None:
    required_env.setenv("OPENAI_MODEL_NAME", "gpt-4o-mini")

    config = AppConfig.load()

    assert "gpt-4o-mini" in config.greeting()
    assert "@bot_username" in config.greeting()
    assert "@relay_bot" in config.greeting("relay_bot")


def test_build_greeting_strips_leading_at() -> None:
    greeting = build_greeting("gpt-3.5-turbo", "@relay_bot")

    assert "(@relay_bot)" in greeting
    assert "gpt-3.5-turbo" in greeting


@pytest.mark.parametrize("value", ["0", "-80", "70000", "http"])
def test_out_of_range_port_is_a_configuration_error(required_env, value) -> None:
    required_env.setenv("WEBHOOK_PORT", value)

    with pytest.raises(ConfigurationError) as excinfo:
        AppConfig.load()

    assert excinfo.value.variable == "WEBHOOK_PORT"


def test_highest_port_is_accepted(required_env) -> None:
    required_env.setenv("WEBHOOK_PORT", "65535")

    assert AppConfig.load().webhook_port == 65535


def test_environment_defaults_to_development(required_env) -> None:
    assert AppConfig.load().environment == "development"
    required_env.setenv("APP_ENV", "production")
    assert AppConfig.load().environment == "production"
