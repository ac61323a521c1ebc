"""Application composition helpers."""

from .runtime import BotApp, bootstrap

__all__ = ["BotApp", "bootstrap"]
