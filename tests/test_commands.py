"""Greeting commands."""

from __future__ import annotations

import pytest

from relaybot.config import AppConfig
from relaybot.services.commands import CommandHandler, parse_command


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("/start", "start"),
        ("/HELP", "help"),
        ("/help@relay_bot", "help"),
        ("/start extra words", "start"),
        ("start", None),
        ("/", None),
    ],
)
def test_parse_command(text, expected) -> None:
    assert parse_command(text) == expected


def test_start_and_help_return_the_same_greeting() -> None:
    config = AppConfig(telegram_bot_token="1:T", openai_api_key="k", openai_model="gpt-4o-mini")
    handler = CommandHandler(greeting=config.greeting())

    start = handler.handle("/start")
    help_text = handler.handle("/help")

    assert start == help_text
    assert start is not None
    assert "gpt-4o-mini" in start


def test_custom_greeting_is_used_verbatim() -> None:
    config = AppConfig(telegram_bot_token="1:T", openai_api_key="k", greeting_message="Welcome!")
    handler = CommandHandler(greeting=config.greeting("relay_bot"))

    assert handler.handle("/start") == "Welcome!"
    assert handler.handle("help") == "Welcome!"


def test_unknown_command_returns_none() -> None:
    handler = CommandHandler(greeting="hi")

    assert handler.handle("/settings") is None
