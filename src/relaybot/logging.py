"""Logging setup shared by every relaybot module."""

from __future__ import annotations

import logging
import socket
import sys

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Handlers installed by configure_logging(), reused by configure_logger()
_configured_handlers: list[logging.Handler] = []
_logging_level: int = logging.INFO
# Names handed out by get_logger() before configure_logging() ran
_pending_loggers: list[str] = []
# Quiet noisy third-party loggers (match exact name or dotted prefix)
_LOGGER_LEVEL_OVERRIDES: dict[str, int] = {
    "aiogram.event": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "openai": logging.WARNING,
}
_HTTP_LIB_PREFIXES = ("urllib3", "requests")


class NoHTTPLibLogsFilter(logging.Filter):
    """Keep the Loki transport's own HTTP logs out of Loki."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not record.name.startswith(_HTTP_LIB_PREFIXES)


def resolve_level(level: str) -> int:
    """Translate a level name into a logging constant, defaulting to INFO."""
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logger(logger: logging.Logger) -> None:
    """
    Attach the configured handlers and level to one logger.

    Safe to call repeatedly; the logger's handlers are replaced each time.
    Does nothing until configure_logging() has run.
    """
    if not _configured_handlers:
        return

    logger.handlers.clear()
    for handler in _configured_handlers:
        logger.addHandler(handler)

    level_override: int | None = None
    for name, override in _LOGGER_LEVEL_OVERRIDES.items():
        if logger.name == name or logger.name.startswith(f"{name}."):
            level_override = override
            break

    logger.setLevel(level_override if level_override is not None else _logging_level)
    # Handlers are attached directly, so propagating would duplicate records.
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """
    Return the logger for a relaybot module.

    Loggers requested before configure_logging() are remembered and picked up
    when it runs; later ones get the handlers straight away.

    Example:
        ```python
        from relaybot.logging import get_logger

        logger = get_logger(__name__)
        logger.info("Relayed reply to chat %s", chat_id)
        ```
    """
    logger = logging.getLogger(name)
    if _configured_handlers:
        configure_logger(logger)
    elif name not in _pending_loggers:
        _pending_loggers.append(name)
    return logger


def build_loki_labels(
    loki_labels: dict[str, str] | None,
    environment: str | None = None,
) -> dict[str, str]:
    """Stream labels for Loki: the configured ones plus host, job and environment."""
    labels = dict(loki_labels or {})
    labels.setdefault("host", socket.gethostname())
    labels.setdefault("job", "relaybot")
    if environment:
        labels.setdefault("environment", environment)
    return labels


def _build_loki_handler(
    loki_url: str,
    labels: dict[str, str],
    level: int,
) -> logging.Handler | None:
    """Create a Loki handler, or None when python-logging-loki is unavailable."""
    try:
        from logging_loki import LokiHandler  # type: ignore[import-not-found]
    except ImportError:
        logging.getLogger(__name__).warning(
            "python-logging-loki is not installed. Loki logging disabled. "
            "Install with: pip install 'relaybot[loki]'"
        )
        return None

    # The Loki transport logs through urllib3/requests; left unchecked that
    # recurses forever when Loki is unreachable.
    for name in _HTTP_LIB_PREFIXES:
        http_logger = logging.getLogger(name)
        http_logger.setLevel(logging.WARNING)
        http_logger.propagate = False

    handler = LokiHandler(url=loki_url, tags=labels, version="1")
    handler.setLevel(level)
    handler.addFilter(NoHTTPLibLogsFilter())
    return handler


def configure_logging(
    level: str,
    loki_url: str | None = None,
    loki_labels: dict[str, str] | None = None,
    environment: str | None = None,
) -> None:
    """
    Configure root logging with the provided level and a consistent format.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        loki_url: Optional Loki push endpoint (e.g. http://loki:3100/loki/api/v1/push)
        loki_labels: Optional stream labels for Loki (e.g. {"application": "relaybot"})
        environment: Deployment environment, added as a Loki label when not set there
    """
    global _configured_handlers, _logging_level

    resolved_level = resolve_level(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(resolved_level)
    console_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    handlers: list[logging.Handler] = [console_handler]

    labels = build_loki_labels(loki_labels, environment)
    if loki_url:
        loki_handler = _build_loki_handler(loki_url, labels, resolved_level)
        if loki_handler is not None:
            handlers.append(loki_handler)

    _configured_handlers = handlers.copy()
    _logging_level = resolved_level

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved_level)
    root_logger.handlers.clear()
    for handler in handlers:
        root_logger.addHandler(handler)

    logging.captureWarnings(True)

    # Loggers created at import time (ours and aiogram's) predate this call.
    for name in list(logging.Logger.manager.loggerDict.keys()):
        if not name.startswith(_HTTP_LIB_PREFIXES):
            configure_logger(logging.getLogger(name))

    pending = list(_pending_loggers)
    _pending_loggers.clear()

    logger = get_logger(__name__)
    logger.info("Logging configured (level=%s)", logging.getLevelName(resolved_level))
    if pending:
        logger.debug(
            "Attached handlers to %d logger(s) created before configure_logging: %s",
            len(pending),
            ", ".join(pending[:5]) + ("..." if len(pending) > 5 else ""),
        )
    if len(handlers) > 1:
        logger.info("Loki logging enabled (url=%s, labels=%s)", loki_url, labels)
