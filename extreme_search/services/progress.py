"""Ordered, append-only progress channel between the pipeline and a transport."""
from __future__ import annotations

import asyncio
from typing import AsyncIterator

from extreme_search.models.events import SSEEvent
from extreme_search.services.logger import logger

_CLOSED = object()


class ProgressEmitter:
    """Single-writer event queue.

    The coordinating task calls :meth:`emit`; a transport drains the queue
    with :meth:`stream`. Delivery is best effort: when a bounded queue is
    full the event is dropped and the pipeline carries on.
    """

    def __init__(self, maxsize: int = 0):
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.emitted = 0
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, event: SSEEvent) -> None:
        if self._closed:
            return
        try:
            self._queue.put_nowait(event)
            self.emitted += 1
        except asyncio.QueueFull:
            self.dropped += 1
            logger.debug("Progress queue full, dropped %s event", event.event.value)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        while True:
            try:
                self._queue.put_nowait(_CLOSED)
                return
            except asyncio.QueueFull:
                # Make room for the sentinel; the oldest pending event is lost.
                self._queue.get_nowait()
                self.dropped += 1

    def drain(self) -> list[SSEEvent]:
        """Return every event queued so far without waiting."""
        events: list[SSEEvent] = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is _CLOSED:
                break
            events.append(item)  # type: ignore[arg-type]
        return events

    async def stream(self) -> AsyncIterator[SSEEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item  # type: ignore[misc]
