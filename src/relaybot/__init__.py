"""Telegram bot that relays mentions to an OpenAI-compatible chat completion endpoint."""

from .application import BotApp, bootstrap
from .config import AppConfig

__all__ = ["AppConfig", "BotApp", "bootstrap"]
