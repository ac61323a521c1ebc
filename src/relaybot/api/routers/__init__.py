"""FastAPI routers for the webhook application."""

from . import telegram

__all__ = ["telegram"]
