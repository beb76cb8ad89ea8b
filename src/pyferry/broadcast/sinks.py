"""Line sinks: the write side of one live log observer."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

__all__ = ["LineSink", "QueueSink", "SinkClosedError"]


class SinkClosedError(Exception):
    """Raised when writing to a sink whose observer has gone away."""


@runtime_checkable
class LineSink(Protocol):
    """Anything that can accept one text line for one observer.

    ``write`` must not block; a sink that cannot deliver raises, and the
    broadcaster drops it.
    """

    def write(self, line: str) -> None: ...


class QueueSink:
    """Sink backed by an unbounded asyncio.Queue, read as an async stream.

    Lines are delivered in write order. ``close()`` enqueues an end marker
    so the reader finishes after draining what was already written.
    """

    _END = object()

    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, line: str) -> None:
        if self._closed:
            raise SinkClosedError("stream closed")
        self._queue.put_nowait(line)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(self._END)

    async def stream(self) -> AsyncIterator[str]:
        while True:
            item = await self._queue.get()
            if item is self._END:
                return
            yield item  # type: ignore[misc]
