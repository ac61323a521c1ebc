"""Dependency providers for the webhook application."""

from __future__ import annotations

from ..application import BotApp
from ..config import AppConfig
from ..services.telegram_bot import TelegramBotRunner

_APP: BotApp | None = None


def set_app(app: BotApp) -> None:
    """Set the global application reference for dependency lookup."""
    global _APP
    _APP = app


def get_app() -> BotApp:
    """Return the configured application instance."""
    if _APP is None:  # pragma: no cover - defensive guard
        raise RuntimeError("Bot application has not been initialised.")
    return _APP


def get_config() -> AppConfig:
    """Dependency hook returning the loaded configuration."""
    return get_app().config


def get_telegram_bot() -> TelegramBotRunner:
    """Dependency hook returning the Telegram bot runner."""
    return get_app().telegram_bot  # type: ignore[return-value]
