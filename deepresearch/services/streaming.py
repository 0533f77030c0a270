from __future__ import annotations

import asyncio
from typing import AsyncIterator, Protocol

from deepresearch.models.events import ResearchEvent


class EventSink(Protocol):
    async def publish(self, event: ResearchEvent) -> None: ...


class NullSink:
    """Discards every event."""

    async def publish(self, event: ResearchEvent) -> None:
        return None


_CLOSED = object()


class EventChannel:
    """Bounded single-consumer channel of research events.

    ``publish`` waits while the buffer is full, so a slow consumer applies
    backpressure to the pipeline instead of growing memory.
    """

    def __init__(self, maxsize: int = 256):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max(maxsize, 1))
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def publish(self, event: ResearchEvent) -> None:
        if self._closed:
            raise RuntimeError("publish on a closed event channel")
        await self._queue.put(event)

    async def close(self) -> None:
        """Mark the channel finished without waiting on the consumer.

        When the buffer is full the end marker is left out and the iterator
        stops once it has drained what is buffered.
        """
        if self._closed:
            return
        self._closed = True
        if not self._queue.full():
            self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[ResearchEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ResearchEvent]:
        while True:
            if self._closed and self._queue.empty():
                return
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item
