"""Runtime composition for the relay bot."""

from __future__ import annotations

from dataclasses import dataclass

from ..config import AppConfig


@dataclass
class BotApp:
    """Encapsulate bot lifecycle operations and service orchestration."""

    config: AppConfig
    llm_client: object  # OpenAICompatibleClient - typed as object to avoid import before logging setup
    telegram_bot: object  # TelegramBotRunner

    async def start(self) -> None:
        """Start polling Telegram updates until interrupted."""
        try:
            await self.telegram_bot.start()  # type: ignore[attr-defined]
        finally:  # pragma: no branch - ensure resources close during shutdown
            await self.shutdown()

    async def shutdown(self) -> None:
        """Release HTTP clients held by the services."""
        await self.llm_client.close()  # type: ignore[attr-defined]


def bootstrap(config: AppConfig | None = None) -> BotApp:
    """Create an application instance backed by environment configuration."""
    config = config or AppConfig.load()

    # Configure logging before any service module creates its loggers.
    from ..logging import configure_logging

    configure_logging(
        level=config.log_level,
        loki_url=config.loki_url,
        loki_labels=config.loki_labels,
        environment=config.environment,
    )

    from ..services.llm import OpenAICompatibleClient
    from ..services.relay import MentionRelay
    from ..services.telegram_bot import TelegramBotRunner

    llm_client = OpenAICompatibleClient(
        api_key=config.openai_api_key,
        api_base=config.openai_api_base,
        timeout=config.request_timeout,
    )
    relay = MentionRelay(
        client=llm_client,
        model=config.openai_model,
        system_prompt=config.openai_system_prompt,
    )
    telegram_bot = TelegramBotRunner(config=config, relay=relay)

    return BotApp(
        config=config,
        llm_client=llm_client,  # type: ignore[arg-type]
        telegram_bot=telegram_bot,  # type: ignore[arg-type]
    )
