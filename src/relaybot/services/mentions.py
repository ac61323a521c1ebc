"""Mention detection and inbound message normalisation."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Protocol

DEFAULT_PROMPT = "Hello"
_SPACE_RUN_RE = re.compile(r"[ \t]{2,}")


class EntityLike(Protocol):
    """The parts of a Telegram message entity used for mention detection."""

    type: str
    offset: int
    length: int


@dataclass(frozen=True)
class BotIdentity:
    """Who the bot is on the messaging platform."""

    user_id: int | None
    username: str

    @property
    def handle(self) -> str:
        return f"@{self.username.lstrip('@')}"


@dataclass(frozen=True)
class IncomingMessage:
    """Platform-neutral view of an inbound chat message."""

    chat_id: int
    sender_id: int | None
    text: str
    mentions_bot: bool
    message_id: int | None = None


def _handle_pattern(identity: BotIdentity) -> re.Pattern[str]:
    return re.compile(
        rf"(?<![\w@]){re.escape(identity.handle)}(?!\w)",
        re.IGNORECASE,
    )


def _entity_text(text: str, entity: EntityLike) -> str:
    # Telegram offsets count UTF-16 code units.
    encoded = text.encode("utf-16-le")
    start = entity.offset * 2
    end = start + entity.length * 2
    return encoded[start:end].decode("utf-16-le", errors="ignore")


def detect_mention(
    text: str,
    identity: BotIdentity,
    *,
    entities: Iterable[EntityLike] | None = None,
    text_mention_user_ids: Iterable[int] = (),
    reply_to_user_id: int | None = None,
) -> bool:
    """
    Decide whether a message addresses the bot.

    A message addresses the bot when it carries a ``mention`` entity for the
    bot's handle, a ``text_mention`` for the bot's user id, contains the handle
    as a standalone token, or replies to one of the bot's own messages.
    """
    if identity.user_id is not None:
        if reply_to_user_id == identity.user_id:
            return True
        if identity.user_id in set(text_mention_user_ids):
            return True

    handle = identity.handle.lower()
    for entity in entities or ():
        if entity.type == "mention" and _entity_text(text, entity).lower() == handle:
            return True

    return bool(_handle_pattern(identity).search(text))


def strip_mention(text: str, identity: BotIdentity) -> str:
    """Remove every bot handle from the text, falling back to a greeting prompt."""
    stripped = _handle_pattern(identity).sub("", text)
    stripped = _SPACE_RUN_RE.sub(" ", stripped).strip()
    return stripped or DEFAULT_PROMPT
