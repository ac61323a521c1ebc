"""Exception hierarchy shared by the relay bot services."""

from __future__ import annotations


class RelayBotError(Exception):
    """Base exception for the relay bot."""


class ConfigurationError(RelayBotError):
    """Raised when required configuration is missing or malformed."""

    def __init__(self, variable: str, message: str | None = None) -> None:
        self.variable = variable
        super().__init__(message or f"{variable} is required to run the bot.")


class CompletionError(RelayBotError):
    """Base class for chat completion failures recovered per message."""


class NetworkError(CompletionError):
    """The completion endpoint could not be reached."""


class UpstreamError(CompletionError):
    """The completion endpoint answered with an error status or timed out."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        timed_out: bool = False,
    ) -> None:
        self.status_code = status_code
        self.timed_out = timed_out
        super().__init__(message)


class ParseError(CompletionError):
    """The completion endpoint returned a body without a usable reply."""
