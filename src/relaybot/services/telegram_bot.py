"""Telegram bot runner built on top of aiogram."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from aiogram import Bot, Dispatcher, F
from aiogram.dispatcher.event.bases import UNHANDLED
from aiogram.enums import ChatAction
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import BaseFilter, Command
from aiogram.types import BotCommand, ErrorEvent, Message, ReplyParameters, Update
from aiogram.utils.token import TokenValidationError

from ..config import AppConfig
from ..errors import ConfigurationError
from ..logging import get_logger
from .commands import GREETING_COMMANDS, CommandHandler
from .mentions import BotIdentity, IncomingMessage, detect_mention
from .relay import ChatSender, MentionRelay

logger = get_logger(__name__)


def to_incoming(message: Message, identity: BotIdentity) -> IncomingMessage:
    """Convert an aiogram message into the platform-neutral representation."""
    text = message.text or ""
    entities = message.entities or []
    text_mention_ids = [
        entity.user.id
        for entity in entities
        if entity.type == "text_mention" and entity.user is not None
    ]
    reply = message.reply_to_message
    reply_to_user_id = reply.from_user.id if reply and reply.from_user else None

    return IncomingMessage(
        chat_id=message.chat.id,
        sender_id=message.from_user.id if message.from_user else None,
        text=text,
        mentions_bot=detect_mention(
            text,
            identity,
            entities=entities,
            text_mention_user_ids=text_mention_ids,
            reply_to_user_id=reply_to_user_id,
        ),
        message_id=message.message_id,
    )


class BotMentioned(BaseFilter):
    """Pass text messages that address the bot, injecting the normalised message."""

    def __init__(self, resolve_identity: Callable[[], Awaitable[BotIdentity]]) -> None:
        self._resolve_identity = resolve_identity

    async def __call__(self, message: Message) -> bool | dict[str, Any]:
        if not message.text:
            return False
        identity = await self._resolve_identity()
        incoming = to_incoming(message, identity)
        if not incoming.mentions_bot:
            return False
        return {"incoming": incoming, "identity": identity}


class TelegramSender:
    """ChatSender backed by the Telegram Bot API."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_text(
        self,
        chat_id: int,
        text: str,
        *,
        reply_to_message_id: int | None = None,
    ) -> None:
        """Send a plain-text message while guarding against Telegram API errors."""
        reply_parameters = None
        if reply_to_message_id is not None:
            reply_parameters = ReplyParameters(
                message_id=reply_to_message_id,
                allow_sending_without_reply=True,
            )
        try:
            await self._bot.send_message(
                chat_id=chat_id,
                text=text,
                reply_parameters=reply_parameters,
            )
        except TelegramAPIError:
            logger.exception("Failed to send reply to chat_id=%s", chat_id)

    async def send_typing(self, chat_id: int) -> None:
        await self._bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING)


class TelegramBotRunner:
    """Manage the Telegram bot lifecycle and route updates to the relay and commands."""

    def __init__(
        self,
        *,
        config: AppConfig,
        relay: MentionRelay,
        sender: ChatSender | None = None,
        identity: BotIdentity | None = None,
    ) -> None:
        try:
            self._bot = Bot(token=config.telegram_bot_token)
        except TokenValidationError as exc:
            raise ConfigurationError(
                "TELOXIDE_TOKEN", "TELOXIDE_TOKEN is not a valid bot token."
            ) from exc

        self._config = config
        self._relay = relay
        self._sender = sender or TelegramSender(self._bot)
        self._identity = identity
        self._dispatcher = Dispatcher()
        self._background_tasks: set[asyncio.Task[None]] = set()

        self._dispatcher.update.outer_middleware(self._log_unhandled)
        self._dispatcher.message.register(
            self._handle_greeting,
            Command(*GREETING_COMMANDS, ignore_case=True),
        )
        self._dispatcher.message.register(
            self._handle_mention,
            F.text,
            BotMentioned(self.identity),
        )
        self._dispatcher.errors.register(self._handle_error)

    @property
    def bot(self) -> Bot:
        """Expose the bot instance for external use."""
        return self._bot

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    async def identity(self) -> BotIdentity:
        """Resolve the bot's handle, from configuration or ``getMe``, once."""
        if self._identity is None:
            username = self._config.bot_username
            if not username:
                me = await self._bot.me()
                username = me.username or ""
            self._identity = BotIdentity(user_id=self._bot.id, username=username)
            logger.info("Bot identity resolved: id=%s, handle=%s", self._bot.id, self._identity.handle)
        return self._identity

    async def start(self) -> None:
        """Poll Telegram for updates until a shutdown signal arrives."""
        await self._prepare()
        await self._bot.delete_webhook(drop_pending_updates=False)
        logger.info("LLM bot started with model: %s", self._config.openai_model)
        # handle_as_tasks: each update runs in its own task, so a slow
        # completion never holds up polling.
        await self._dispatcher.start_polling(
            self._bot,
            handle_as_tasks=True,
            handle_signals=True,
            close_bot_session=True,
        )
        logger.info("Polling stopped")

    async def set_webhook(self, webhook_url: str, secret_token: str | None = None) -> None:
        """Configure the Telegram webhook."""
        await self._prepare()
        logger.info("Setting webhook to %s", webhook_url)
        await self._bot.set_webhook(
            url=webhook_url,
            secret_token=secret_token,
            allowed_updates=self._dispatcher.resolve_used_update_types(),
        )
        logger.info("LLM bot started with model: %s (webhook)", self._config.openai_model)

    async def delete_webhook(self) -> None:
        """Remove the Telegram webhook."""
        logger.info("Deleting webhook")
        await self._bot.delete_webhook()

    async def process_update(self, update: Update) -> None:
        """Process a single update received through the webhook."""
        logger.debug("Processing Telegram update: update_id=%s", update.update_id)
        await self._dispatcher.feed_update(bot=self._bot, update=update)

    def schedule_update(self, update: Update) -> asyncio.Task[None]:
        """Process an update in the background so the webhook can answer at once."""
        task = asyncio.create_task(self.process_update(update))
        self._background_tasks.add(task)
        task.add_done_callback(self._finish_background_task)
        return task

    def _finish_background_task(self, task: asyncio.Task[None]) -> None:
        self._background_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background update processing failed: %s", exc, exc_info=exc)

    async def close(self) -> None:
        """Wait for in-flight updates, then close the Telegram HTTP session."""
        if self._background_tasks:
            logger.info("Waiting for %d in-flight updates", len(self._background_tasks))
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        await self._bot.session.close()

    async def _prepare(self) -> None:
        await self.identity()
        try:
            await self._bot.set_my_commands(
                [
                    BotCommand(command=name, description=description)
                    for name, description in GREETING_COMMANDS.items()
                ]
            )
        except TelegramAPIError:
            logger.warning("Failed to register bot commands", exc_info=True)

    async def _handle_greeting(self, message: Message) -> None:
        """Reply to /start and /help with the greeting."""
        identity = await self.identity()
        commands = CommandHandler(greeting=self._config.greeting(identity.username))
        reply = commands.handle(message.text or "")
        if reply is None:
            return
        logger.info("Bot command: chat_id=%d, command=%s", message.chat.id, message.text)
        await self._sender.send_text(message.chat.id, reply)

    async def _handle_mention(
        self,
        message: Message,
        incoming: IncomingMessage,
        identity: BotIdentity,
    ) -> None:
        """Relay a message addressed to the bot."""
        await self._relay.handle(incoming, sender=self._sender, identity=identity)

    async def _log_unhandled(
        self,
        handler: Callable[[Update, dict[str, Any]], Awaitable[Any]],
        event: Update,
        data: dict[str, Any],
    ) -> Any:
        """Log updates that no handler took, without acting on them."""
        result = await handler(event, data)
        if result is UNHANDLED:
            logger.debug(
                "Unhandled update: update_id=%s, type=%s",
                event.update_id,
                event.event_type,
            )
        return result

    async def _handle_error(self, event: ErrorEvent) -> bool:
        """Log uncaught handler errors so one bad update cannot stop the dispatcher."""
        update_id = getattr(event.update, "update_id", "unknown")
        logger.error(
            "Dispatcher error for update %s: %s",
            update_id,
            event.exception,
            exc_info=event.exception,
        )
        return True
