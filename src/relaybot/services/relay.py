"""Relay mentioned messages to the chat completion endpoint and back."""

from __future__ import annotations

import asyncio
import time
from contextlib import suppress
from typing import Protocol

from ..errors import CompletionError
from ..logging import get_logger
from .llm import ChatCompletionClient, ChatRequest
from .mentions import BotIdentity, IncomingMessage, strip_mention

logger = get_logger(__name__)

FAILURE_NOTICE = "Sorry, I encountered an error while processing your request."
TELEGRAM_MESSAGE_LIMIT = 4096
TYPING_REFRESH_SECONDS = 4.0


class ChatSender(Protocol):
    """Outbound capabilities the relay needs from the messaging platform."""

    async def send_text(
        self,
        chat_id: int,
        text: str,
        *,
        reply_to_message_id: int | None = None,
    ) -> None:
        ...

    async def send_typing(self, chat_id: int) -> None:
        ...


def split_message(text: str, limit: int = TELEGRAM_MESSAGE_LIMIT) -> list[str]:
    """Split text into chunks no longer than ``limit``, preferring line breaks."""
    if len(text) <= limit:
        return [text]

    chunks: list[str] = []
    remaining = text
    while len(remaining) > limit:
        cut = remaining.rfind("\n", 0, limit + 1)
        if cut <= 0:
            cut = limit
        chunks.append(remaining[:cut])
        remaining = remaining[cut:]
        if remaining.startswith("\n"):
            remaining = remaining[1:]
    if remaining:
        chunks.append(remaining)
    return chunks


class MentionRelay:
    """Forward messages that address the bot to the language model as single turns."""

    def __init__(
        self,
        *,
        client: ChatCompletionClient,
        model: str,
        system_prompt: str | None = None,
        typing_interval: float = TYPING_REFRESH_SECONDS,
    ) -> None:
        self._client = client
        self._model = model
        self._system_prompt = system_prompt
        self._typing_interval = typing_interval

    async def handle(
        self,
        message: IncomingMessage,
        *,
        sender: ChatSender,
        identity: BotIdentity,
    ) -> str | None:
        """
        Answer a message that mentions the bot.

        Returns the text sent back to the chat, or ``None`` when the message
        does not address the bot. Completion failures are answered with a
        generic notice and never propagate.
        """
        if not message.mentions_bot:
            logger.debug("Ignoring message without mention: chat_id=%d", message.chat_id)
            return None

        prompt = strip_mention(message.text, identity)
        request = ChatRequest.single_turn(
            model=self._model,
            user_message=prompt,
            system_prompt=self._system_prompt,
        )
        start_time = time.perf_counter()

        logger.info(
            "Mention received: chat_id=%d, sender_id=%s, prompt_length=%d",
            message.chat_id,
            message.sender_id,
            len(prompt),
        )

        typing_task = asyncio.create_task(self._typing_indicator(sender, message.chat_id))
        try:
            reply = await self._client.complete(model=request.model, messages=request.messages)
        except CompletionError as exc:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Chat completion failed: chat_id=%d, duration_ms=%.2f, error=%s: %s",
                message.chat_id,
                elapsed_ms,
                type(exc).__name__,
                exc,
            )
            reply = FAILURE_NOTICE
        finally:
            typing_task.cancel()
            with suppress(asyncio.CancelledError):
                await typing_task

        reply_to = message.message_id
        for chunk in split_message(reply):
            await sender.send_text(message.chat_id, chunk, reply_to_message_id=reply_to)
            reply_to = None

        logger.info(
            "Reply relayed: chat_id=%d, duration_ms=%.2f, reply_length=%d",
            message.chat_id,
            (time.perf_counter() - start_time) * 1000,
            len(reply),
        )
        return reply

    async def _typing_indicator(self, sender: ChatSender, chat_id: int) -> None:
        """Periodically send 'typing' chat actions while awaiting a response."""
        while True:
            try:
                await sender.send_typing(chat_id)
            except Exception:
                logger.debug("Failed to send typing action for chat_id=%s", chat_id, exc_info=True)
                return
            await asyncio.sleep(self._typing_interval)
