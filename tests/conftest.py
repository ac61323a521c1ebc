"""Shared fixtures for relay bot tests."""

from __future__ import annotations

import pytest

_ENV_VARS = (
    "TELOXIDE_TOKEN",
    "OPENAI_API_KEY",
    "OPENAI_API_BASE",
    "OPENAI_MODEL_NAME",
    "BOT_GREETING_MESSAGE",
    "BOT_USERNAME",
    "OPENAI_SYSTEM_PROMPT",
    "OPENAI_REQUEST_TIMEOUT",
    "APP_ENV",
    "BOT_LOG_LEVEL",
    "LOKI_URL",
    "LOKI_LABELS",
    "TELEGRAM_WEBHOOK_URL",
    "TELEGRAM_WEBHOOK_SECRET",
    "WEBHOOK_HOST",
    "WEBHOOK_PORT",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable the bot reads so tests start from a blank slate."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def required_env(clean_env):
    """Provide the two mandatory variables."""
    clean_env.setenv("TELOXIDE_TOKEN", "123456:TEST")
    clean_env.setenv("OPENAI_API_KEY", "test-key")
    return clean_env
