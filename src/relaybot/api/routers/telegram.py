"""Telegram webhook endpoint."""

from __future__ import annotations

import hmac
from typing import Any

from aiogram.types import Update
from fastapi import APIRouter, Depends, Header, Response, status
from pydantic import ValidationError

from ...config import AppConfig
from ...logging import get_logger
from ...services.telegram_bot import TelegramBotRunner
from ..dependencies import get_config, get_telegram_bot

logger = get_logger(__name__)

router = APIRouter(prefix="/telegram", tags=["telegram"])


@router.post("/webhook")
async def telegram_webhook(
    update_data: dict[str, Any],
    secret_token: str | None = Header(default=None, alias="X-Telegram-Bot-Api-Secret-Token"),
    config: AppConfig = Depends(get_config),
    telegram_bot: TelegramBotRunner = Depends(get_telegram_bot),
) -> Response:
    """Handle incoming webhook updates from Telegram."""
    expected = config.telegram_webhook_secret
    if expected and not hmac.compare_digest(secret_token or "", expected):
        logger.warning("Rejected webhook call with invalid secret token")
        return Response(status_code=status.HTTP_401_UNAUTHORIZED)

    try:
        update = Update.model_validate(update_data, context={"bot": telegram_bot.bot})
    except ValidationError:
        logger.warning("Ignoring malformed update: update_id=%s", update_data.get("update_id"))
        return Response(status_code=status.HTTP_200_OK)

    # Acknowledge now; the completion call can outlast Telegram's webhook timeout.
    try:
        telegram_bot.schedule_update(update)
    except Exception:
        logger.exception("Failed to schedule Telegram update: update_id=%s", update.update_id)

    # Always 200 so Telegram does not redeliver the update.
    return Response(status_code=status.HTTP_200_OK)
