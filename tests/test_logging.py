"""Logger setup and Loki labels."""

from __future__ import annotations

import logging

import pytest

from relaybot import logging as relay_logging
from relaybot.logging import build_loki_labels, configure_logger, get_logger, resolve_level


@pytest.fixture
def configured(monkeypatch):
    """Pretend configure_logging() ran with one in-memory handler."""
    handler = logging.NullHandler()
    monkeypatch.setattr(relay_logging, "_configured_handlers", [handler])
    monkeypatch.setattr(relay_logging, "_logging_level", logging.DEBUG)
    return handler


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("debug", logging.DEBUG),
        (" WARNING ", logging.WARNING),
        ("bogus", logging.INFO),
        ("", logging.INFO),
    ],
)
def test_resolve_level(name, expected) -> None:
    assert resolve_level(name) == expected


def test_loki_labels_include_environment_and_job() -> None:
    labels = build_loki_labels({"application": "relaybot"}, "staging")

    assert labels["application"] == "relaybot"
    assert labels["environment"] == "staging"
    assert labels["job"] == "relaybot"
    assert labels["host"]


def test_configured_environment_label_wins() -> None:
    labels = build_loki_labels({"environment": "prod-eu"}, "development")

    assert labels["environment"] == "prod-eu"


def test_loki_labels_without_environment() -> None:
    assert "environment" not in build_loki_labels(None)


def test_configure_logger_attaches_handlers(configured) -> None:
    logger = logging.getLogger("relaybot.tests.attached")

    configure_logger(logger)

    assert logger.handlers == [configured]
    assert logger.level == logging.DEBUG
    assert logger.propagate is False


def test_noisy_libraries_stay_at_warning(configured) -> None:
    logger = logging.getLogger("httpx.tests")

    configure_logger(logger)

    assert logger.level == logging.WARNING


def test_get_logger_before_setup_is_remembered(monkeypatch) -> None:
    monkeypatch.setattr(relay_logging, "_configured_handlers", [])
    monkeypatch.setattr(relay_logging, "_pending_loggers", [])

    logger = get_logger("relaybot.tests.early")

    assert logger.handlers == []
    assert relay_logging._pending_loggers == ["relaybot.tests.early"]


def test_get_logger_after_setup_is_configured(configured) -> None:
    logger = get_logger("relaybot.tests.late")

    assert logger.handlers == [configured]
