"""Factory for constructing the webhook HTTP application."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..application import BotApp, bootstrap
from ..logging import get_logger
from .dependencies import set_app
from .routers import telegram

logger = get_logger(__name__)


def create_api(bot_app: BotApp | None = None) -> FastAPI:
    """Produce the FastAPI application that receives Telegram webhook updates."""
    bot_app = bot_app or bootstrap()
    set_app(bot_app)
    config = bot_app.config
    runner = bot_app.telegram_bot

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if config.telegram_webhook_url:
            try:
                await runner.set_webhook(  # type: ignore[attr-defined]
                    config.telegram_webhook_url,
                    secret_token=config.telegram_webhook_secret,
                )
            except Exception:
                logger.exception("Failed to set Telegram webhook")

        try:
            yield
        finally:
            if config.telegram_webhook_url:
                try:
                    await runner.delete_webhook()  # type: ignore[attr-defined]
                except Exception:
                    logger.exception("Failed to delete Telegram webhook")
            await runner.close()  # type: ignore[attr-defined]
            await bot_app.shutdown()

    app = FastAPI(
        title="Relay Bot",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/health", tags=["system"])
    async def healthcheck() -> dict[str, str]:
        """Simple readiness check."""
        return {"status": "ok", "model": config.openai_model}

    app.include_router(telegram.router, prefix="/api")
    return app
