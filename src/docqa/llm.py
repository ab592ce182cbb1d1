from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
import json
import logging
from typing import Protocol

import httpx

from docqa.errors import GenerationError, ProviderTimeoutError
from docqa.services.rag.types import GenerationChunk

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


@dataclass(frozen=True)
class GenerationConfig:
    api_key: str
    model: str
    temperature: float
    max_tokens: int = 1024


class GenerationClient(Protocol):
    def generate(self, *, system_instruction: str, user_query: str) -> str: ...

    def stream(
        self, *, system_instruction: str, user_query: str
    ) -> AsyncIterator[GenerationChunk]: ...


def _status_error(exc: httpx.HTTPStatusError) -> GenerationError:
    return GenerationError(f"Generation request failed with status {exc.response.status_code}")


class AnthropicChatClient:
    """Client for the Anthropic Messages API.

    ``generate`` blocks until the whole answer is available. ``stream`` is an
    async generator of text fragments; closing it early releases the HTTP
    connection.
    """

    def __init__(
        self,
        config: GenerationConfig,
        *,
        base_url: str,
        timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._config.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    def _payload(self, *, system_instruction: str, user_query: str, stream: bool) -> dict[str, object]:
        return {
            "model": self._config.model,
            "max_tokens": self._config.max_tokens,
            "temperature": self._config.temperature,
            "system": system_instruction,
            "messages": [{"role": "user", "content": user_query}],
            "stream": stream,
        }

    def generate(self, *, system_instruction: str, user_query: str) -> str:
        try:
            response = httpx.post(
                f"{self._base_url}/v1/messages",
                json=self._payload(
                    system_instruction=system_instruction, user_query=user_query, stream=False
                ),
                headers=self._headers(),
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError("Generation request timed out") from exc
        except httpx.HTTPStatusError as exc:
            raise _status_error(exc) from exc
        except httpx.HTTPError as exc:
            raise GenerationError(f"Generation request failed: {type(exc).__name__}") from exc

        payload = response.json()
        blocks = payload.get("content") if isinstance(payload, dict) else None
        if not isinstance(blocks, list):
            raise GenerationError("Invalid generation payload: missing content")

        text = "".join(
            block.get("text", "")
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        )
        if not text.strip():
            raise GenerationError("Invalid generation payload: missing assistant text")

        logger.info("Generated %d characters with %s", len(text), self._config.model)
        return text.strip()

    async def stream(
        self, *, system_instruction: str, user_query: str
    ) -> AsyncIterator[GenerationChunk]:
        payload = self._payload(
            system_instruction=system_instruction, user_query=user_query, stream=True
        )
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds, transport=self._transport
            ) as client:
                async with client.stream(
                    "POST",
                    f"{self._base_url}/v1/messages",
                    json=payload,
                    headers=self._headers(),
                ) as response:
                    try:
                        response.raise_for_status()
                    except httpx.HTTPStatusError as exc:
                        raise _status_error(exc) from exc

                    async for line in response.aiter_lines():
                        event = _parse_event_line(line)
                        if event is None:
                            continue

                        event_type = event.get("type")
                        if event_type == "content_block_delta":
                            delta = event.get("delta")
                            if isinstance(delta, dict) and delta.get("type") == "text_delta":
                                yield GenerationChunk(text=str(delta.get("text", "")))
                        elif event_type == "error":
                            error = event.get("error")
                            error_type = error.get("type") if isinstance(error, dict) else None
                            raise GenerationError(f"Generation stream failed: {error_type or 'unknown'}")
                        elif event_type == "message_stop":
                            break
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError("Generation stream timed out") from exc
        except httpx.HTTPError as exc:
            raise GenerationError(f"Generation stream failed: {type(exc).__name__}") from exc

        yield GenerationChunk(text="", done=True)


def _parse_event_line(line: str) -> dict[str, object] | None:
    if not line.startswith("data:"):
        return None
    data = line[len("data:") :].strip()
    if not data:
        return None
    try:
        event = json.loads(data)
    except json.JSONDecodeError as exc:
        raise GenerationError("Invalid generation stream payload") from exc
    return event if isinstance(event, dict) else None
