"""
Event Channel
=============

Ordered, single-consumer channel of pipeline events with SSE framing.

The channel enforces the stream contract:
- exactly one terminal event (``done`` or ``error``) per run
- nothing after the terminal event
- ``sources`` at most once
- ``answerChunk`` only after ``sources``

Version: 0.1.0
"""

import asyncio
from collections.abc import AsyncIterator

from services.regulatory_search.errors import TransportCancelled
from services.regulatory_search.models import (
    TERMINAL_EVENTS,
    AnswerChunkEvent,
    PipelineEvent,
    SourcesEvent,
    serialize_event,
)
from shared.logging import get_logger


logger = get_logger(__name__)


class EventOrderError(RuntimeError):
    """An event was emitted in violation of the stream contract."""


def sse_message(event: PipelineEvent) -> str:
    """Frame one event as a server-sent event message."""
    return f"data: {serialize_event(event)}\n\n"


class EventChannel:
    """
    Queue of events between the pipeline task and the HTTP response.

    Writes are serialized by a lock so concurrent search tasks cannot
    interleave with the ordering checks.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[PipelineEvent | None] = asyncio.Queue()
        self._lock = asyncio.Lock()
        self._terminated = False
        self._sources_sent = False
        self._closed = False

    @property
    def terminated(self) -> bool:
        return self._terminated

    @property
    def closed(self) -> bool:
        return self._closed

    async def emit(self, event: PipelineEvent) -> None:
        """
        Append an event.

        Raises:
            TransportCancelled: If the consumer has gone away
            EventOrderError: If the event breaks the stream contract
        """
        async with self._lock:
            if self._closed:
                raise TransportCancelled("event consumer closed")
            if self._terminated:
                raise EventOrderError(f"{event.type} emitted after terminal event")
            if isinstance(event, SourcesEvent):
                if self._sources_sent:
                    raise EventOrderError("sources emitted twice")
                self._sources_sent = True
            elif isinstance(event, AnswerChunkEvent) and not self._sources_sent:
                raise EventOrderError("answerChunk emitted before sources")

            if isinstance(event, TERMINAL_EVENTS):
                self._terminated = True

            self._queue.put_nowait(event)
            if self._terminated:
                self._queue.put_nowait(None)

    def close(self) -> None:
        """Mark the consumer as gone; later emits raise TransportCancelled."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[PipelineEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event
