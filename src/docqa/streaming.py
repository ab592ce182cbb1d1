"""Relay of generation fragments to a server-sent-events consumer.

A producer task pulls fragments from the generation stream into a bounded
queue and the consumer turns them into SSE frames. A full queue suspends the
producer, so a slow client also slows the pull from the provider. When the
consumer stops early the producer is cancelled and the upstream stream is
closed.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
import contextlib
from dataclasses import dataclass
import json
import logging

from docqa.errors import DocQAError, GenerationError
from docqa.services.rag.types import GenerationChunk

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _StreamFailure:
    error: DocQAError


_END = object()


def format_content_event(text: str) -> str:
    return f"data: {json.dumps({'content': text})}\n\n"


def format_error_event(error: DocQAError) -> str:
    payload = json.dumps({"code": error.code, "message": error.message})
    return f"event: error\ndata: {payload}\n\n"


async def _produce(
    chunks: AsyncIterator[GenerationChunk],
    queue: asyncio.Queue[object],
) -> None:
    try:
        async for chunk in chunks:
            if chunk.done:
                break
            if chunk.text:
                await queue.put(chunk)
    except DocQAError as exc:
        logger.warning("Generation stream failed: %s (%s)", exc.code, exc.message)
        await queue.put(_StreamFailure(exc))
    except Exception as exc:
        logger.exception("Unexpected failure in generation stream")
        await queue.put(_StreamFailure(GenerationError(f"Generation stream failed: {type(exc).__name__}")))
    else:
        await queue.put(_END)
    finally:
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()


async def relay_events(
    chunks: AsyncIterator[GenerationChunk],
    *,
    queue_size: int = 2,
) -> AsyncIterator[str]:
    queue: asyncio.Queue[object] = asyncio.Queue(maxsize=queue_size)
    producer = asyncio.create_task(_produce(chunks, queue))
    emitted = 0
    finished = False

    try:
        while True:
            item = await queue.get()
            if item is _END:
                finished = True
                break
            if isinstance(item, _StreamFailure):
                finished = True
                yield format_error_event(item.error)
                break
            if isinstance(item, GenerationChunk):
                yield format_content_event(item.text)
                emitted += 1
    finally:
        if not finished and not producer.done():
            logger.info("Stream consumer stopped after %d event(s); cancelling producer", emitted)
            producer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await producer
