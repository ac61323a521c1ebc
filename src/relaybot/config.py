"""Application configuration helpers."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .errors import ConfigurationError

DEFAULT_API_BASE = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_REQUEST_TIMEOUT = 60.0
DEFAULT_WEBHOOK_HOST = "0.0.0.0"
DEFAULT_WEBHOOK_PORT = 8080
MAX_PORT = 65535

# Placeholders: {model} is the active model, {handle} the bot username.
GREETING_TEMPLATE = (
    "Hello! I'm an AI assistant bot using {model}. "
    "Mention me (@{handle}) in a message to talk to me."
)
_GREETING_HANDLE_PLACEHOLDER = "bot_username"

_ENV_LOADED = False


def _ensure_env_loaded() -> None:
    """Load environment variables from a .env file once per process."""
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    load_dotenv(override=False, interpolate=False)
    _ENV_LOADED = True


def build_greeting(model: str, handle: str | None = None) -> str:
    """Render the default greeting for the active model."""
    return GREETING_TEMPLATE.format(
        model=model,
        handle=(handle or _GREETING_HANDLE_PLACEHOLDER).lstrip("@"),
    )


@dataclass(frozen=True)
class AppConfig:
    """Configuration values loaded from environment variables."""

    telegram_bot_token: str
    openai_api_key: str
    openai_api_base: str = DEFAULT_API_BASE
    openai_model: str = DEFAULT_MODEL
    greeting_message: str | None = None
    environment: str = "development"
    log_level: str = "INFO"
    bot_username: str | None = None
    openai_system_prompt: str | None = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    loki_url: str | None = None
    loki_labels: dict[str, str] = field(default_factory=dict)
    telegram_webhook_url: str | None = None
    telegram_webhook_secret: str | None = None
    webhook_host: str = DEFAULT_WEBHOOK_HOST
    webhook_port: int = DEFAULT_WEBHOOK_PORT

    def greeting(self, handle: str | None = None) -> str:
        """Return the custom greeting, or the generated one naming the model."""
        if self.greeting_message:
            return self.greeting_message
        return build_greeting(self.openai_model, handle or self.bot_username)

    @property
    def use_webhook(self) -> bool:
        """Whether updates arrive through a webhook instead of long polling."""
        return bool(self.telegram_webhook_url)

    @classmethod
    def load(cls) -> "AppConfig":
        """Load configuration values from the environment."""
        _ensure_env_loaded()

        telegram_bot_token = _require("TELOXIDE_TOKEN")
        openai_api_key = _require("OPENAI_API_KEY")

        openai_model = _optional("OPENAI_MODEL_NAME") or DEFAULT_MODEL
        bot_username = _optional("BOT_USERNAME")
        if bot_username:
            bot_username = bot_username.lstrip("@")

        return cls(
            telegram_bot_token=telegram_bot_token,
            openai_api_key=openai_api_key,
            openai_api_base=(_optional("OPENAI_API_BASE") or DEFAULT_API_BASE).rstrip("/"),
            openai_model=openai_model,
            greeting_message=_optional("BOT_GREETING_MESSAGE"),
            environment=os.getenv("APP_ENV", "development"),
            log_level=os.getenv("BOT_LOG_LEVEL", "INFO"),
            bot_username=bot_username,
            openai_system_prompt=_optional("OPENAI_SYSTEM_PROMPT"),
            request_timeout=_parse_number(
                "OPENAI_REQUEST_TIMEOUT", float, DEFAULT_REQUEST_TIMEOUT
            ),
            loki_url=_optional("LOKI_URL"),
            loki_labels=_parse_labels(os.getenv("LOKI_LABELS", "")),
            telegram_webhook_url=_optional("TELEGRAM_WEBHOOK_URL"),
            telegram_webhook_secret=_optional("TELEGRAM_WEBHOOK_SECRET"),
            webhook_host=_optional("WEBHOOK_HOST") or DEFAULT_WEBHOOK_HOST,
            webhook_port=_parse_number(
                "WEBHOOK_PORT", int, DEFAULT_WEBHOOK_PORT, maximum=MAX_PORT
            ),
        )


def _require(name: str) -> str:
    value = _optional(name)
    if not value:
        raise ConfigurationError(name)
    return value


def _optional(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_number(name: str, kind: type, default, maximum: float | None = None):
    """Parse a numeric setting, rejecting malformed, non-finite or out-of-range values."""
    raw = _optional(name)
    if raw is None:
        return default
    try:
        value = kind(raw)
    except ValueError as exc:
        raise ConfigurationError(name, f"{name} must be a number, got {raw!r}.") from exc
    if not math.isfinite(value) or value <= 0:
        raise ConfigurationError(name, f"{name} must be a positive number, got {raw!r}.")
    if maximum is not None and value > maximum:
        raise ConfigurationError(name, f"{name} must be at most {maximum}, got {raw!r}.")
    return value


def _parse_labels(raw: str) -> dict[str, str]:
    """Parse ``key=value,key=value`` pairs used as Loki stream labels."""
    labels: dict[str, str] = {}
    for pair in raw.split(","):
        key, sep, value = pair.partition("=")
        if sep and key.strip():
            labels[key.strip()] = value.strip()
    return labels
