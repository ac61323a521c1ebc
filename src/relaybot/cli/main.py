"""Console entrypoint for the relay bot."""

from __future__ import annotations

import asyncio
import sys

import uvicorn

from ..application import BotApp, bootstrap
from ..errors import ConfigurationError


async def _run_polling(app: BotApp) -> None:
    """Poll Telegram until a shutdown signal arrives."""
    await app.start()


def _run_webhook(app: BotApp) -> None:
    """Serve the webhook endpoint until a shutdown signal arrives."""
    from ..api import create_api

    uvicorn.run(
        create_api(app),
        host=app.config.webhook_host,
        port=app.config.webhook_port,
        # Keep the handlers installed by configure_logging().
        log_config=None,
    )


def main() -> None:
    """Load configuration and run the bot in polling or webhook mode."""
    try:
        app = bootstrap()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    if app.config.use_webhook:
        _run_webhook(app)
    else:
        asyncio.run(_run_polling(app))
