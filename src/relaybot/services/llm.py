"""Chat completion client for OpenAI-compatible endpoints."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Protocol, Sequence, cast

import httpx
import openai
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletionMessageParam

from ..errors import NetworkError, ParseError, UpstreamError
from ..logging import get_logger

logger = get_logger(__name__)

ChatMessage = Mapping[str, str]


class ChatCompletionClient(Protocol):
    """Protocol definition for chat completion clients."""

    async def complete(self, *, model: str, messages: Sequence[ChatMessage]) -> str:
        """Return the assistant's reply text for the supplied conversation."""
        ...


@dataclass(frozen=True)
class ChatRequest:
    """A single outbound chat completion request."""

    model: str
    messages: tuple[ChatMessage, ...]

    @classmethod
    def single_turn(
        cls,
        *,
        model: str,
        user_message: str,
        system_prompt: str | None = None,
    ) -> "ChatRequest":
        """Build a request holding one user turn, optionally preceded by a system prompt."""
        messages: list[ChatMessage] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_message})
        return cls(model=model, messages=tuple(messages))

    def to_payload(self) -> dict[str, Any]:
        """Serialise the request into the JSON body sent to ``/chat/completions``."""
        return {
            "model": self.model,
            "messages": [
                {"role": entry["role"], "content": entry["content"]}
                for entry in self.messages
            ],
        }


@dataclass
class OpenAICompatibleClient:
    """Wrapper around the Chat Completions API of any OpenAI-compatible server."""

    api_key: str
    api_base: str
    timeout: float = 60.0
    http_client: httpx.AsyncClient | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        # Single attempt per call.
        self._client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.api_base,
            timeout=self.timeout,
            max_retries=0,
            http_client=self.http_client,
        )

    async def complete(self, *, model: str, messages: Sequence[ChatMessage]) -> str:
        """Send the conversation to the endpoint and return the generated reply."""
        request = ChatRequest(model=model, messages=tuple(messages))
        payload = request.to_payload()
        start_time = time.perf_counter()

        logger.info(
            "LLM request: model=%s, messages=%d, base=%s",
            model,
            len(payload["messages"]),
            self.api_base,
        )

        try:
            response = await self._client.chat.completions.create(
                model=payload["model"],
                messages=cast(list[ChatCompletionMessageParam], payload["messages"]),
            )
            result = _extract_reply(response)
        except openai.APITimeoutError as exc:
            _log_failure(model, start_time, "timeout")
            raise UpstreamError(
                f"Chat completion timed out after {self.timeout:g}s",
                timed_out=True,
            ) from exc
        except openai.APIConnectionError as exc:
            _log_failure(model, start_time, "network")
            raise NetworkError(f"Could not reach {self.api_base}: {exc}") from exc
        except openai.APIStatusError as exc:
            _log_failure(model, start_time, f"status {exc.status_code}")
            raise UpstreamError(
                f"Chat completion failed with HTTP {exc.status_code}",
                status_code=exc.status_code,
            ) from exc
        except (openai.APIResponseValidationError, ValueError) as exc:
            _log_failure(model, start_time, "malformed body")
            raise ParseError(f"Malformed chat completion response: {exc}") from exc
        except ParseError:
            _log_failure(model, start_time, "no reply")
            raise

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "LLM response: model=%s, duration_ms=%.2f, response_length=%d",
            model,
            elapsed_ms,
            len(result),
        )
        return result

    async def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        await self._client.close()


def _log_failure(model: str, start_time: float, reason: str) -> None:
    elapsed_ms = (time.perf_counter() - start_time) * 1000
    logger.warning(
        "LLM request failed: model=%s, duration_ms=%.2f, reason=%s",
        model,
        elapsed_ms,
        reason,
    )


def _extract_reply(response: Any) -> str:
    """Fetch the first choice's message content from a chat completion."""
    if isinstance(response, (str, bytes)):
        # The SDK hands back raw text when the body is not JSON.
        raise ParseError("Chat completion response was not JSON.")

    choices = getattr(response, "choices", None)
    if not isinstance(choices, Iterable):
        raise ParseError("Chat completion response did not include choices.")

    for choice in choices:
        message = getattr(choice, "message", None)
        content = getattr(message, "content", None)
        if isinstance(content, str) and content.strip():
            return content
        raise ParseError("Chat completion response had an empty message.")

    raise ParseError("Chat completion response did not include choices.")
