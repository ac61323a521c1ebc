"""HTTP surface used in webhook mode."""

from .app import create_api

__all__ = ["create_api"]
