"""Fan-out of progress lines to live observers.

Provides:
- publish(): deliver one line to every current subscriber
- subscribe()/attach(): register an observer (queue stream or custom sink)
- unsubscribe(): idempotent removal

Design: Information Hiding (Parnas)
The subscriber set is the only mutable state shared by concurrent
request handlers. Every mutation is a single dict operation with no
suspension point in between, so under asyncio's cooperative scheduling
the set is never observed half-updated and no lock is needed. publish()
iterates over a snapshot so sinks removed mid-delivery do not disturb
the loop.

The broadcaster is injected into every component. Nothing intercepts
print() or other shared output.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from uuid_extensions import uuid7

from pyferry.broadcast.sinks import LineSink, QueueSink

logger = logging.getLogger(__name__)

__all__ = ["LogBroadcaster", "BroadcastHandler", "default_broadcaster"]


class LogBroadcaster:
    """Delivers text lines to a dynamic set of subscribers.

    Each line is also written to this module's logger at INFO, the
    non-broadcast channel, so an operator console sees everything even
    with no observer connected.

    Usage:
        broadcaster = LogBroadcaster()
        subscriber_id, lines = broadcaster.subscribe()

        broadcaster.publish("Starting cross-chain transfer...")

        async for line in lines:
            print(line)
    """

    def __init__(self, mirror_to_logger: bool = True):
        """Create a broadcaster with no subscribers.

        Args:
            mirror_to_logger: Also log every published line at INFO
        """
        self._subscribers: dict[str, LineSink] = {}
        self._mirror = mirror_to_logger

    def __repr__(self) -> str:
        return f"LogBroadcaster(subscribers={len(self._subscribers)})"

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscriber_ids(self) -> list[str]:
        return list(self._subscribers)

    def publish(self, line: str) -> None:
        """Deliver ``line`` to every current subscriber.

        Never raises. A sink that fails is logged and dropped without
        affecting delivery to the others.
        """
        if self._mirror:
            logger.info(line)

        for subscriber_id, sink in list(self._subscribers.items()):
            try:
                sink.write(line)
            except Exception as e:
                logger.warning(f"Failed to send log to subscriber {subscriber_id}: {e}")
                self._drop(subscriber_id)

    def attach(self, sink: LineSink) -> str:
        """Register a sink and return its subscriber id.

        Only lines published after this call are delivered.
        """
        subscriber_id = str(uuid7())
        self._subscribers[subscriber_id] = sink
        logger.debug(f"Subscriber {subscriber_id} attached")
        return subscriber_id

    def subscribe(self) -> tuple[str, AsyncIterator[str]]:
        """Register a queue-backed subscriber.

        Returns:
            The subscriber id and a lazy stream of future lines. The
            stream ends once the subscriber is removed; closing the stream
            (observer disconnect) removes the subscriber.
        """
        sink = QueueSink()
        subscriber_id = self.attach(sink)
        return subscriber_id, self._stream(subscriber_id, sink)

    async def _stream(self, subscriber_id: str, sink: QueueSink) -> AsyncIterator[str]:
        lines = sink.stream()
        try:
            async for line in lines:
                yield line
        finally:
            self.unsubscribe(subscriber_id)
            await lines.aclose()

    def unsubscribe(self, subscriber_id: str) -> None:
        """Remove a subscriber. Unknown or already-removed ids are ignored."""
        if self._drop(subscriber_id):
            logger.debug(f"Subscriber {subscriber_id} detached")

    def close(self) -> None:
        """End every queue stream so readers drain pending lines and stop.

        Used on shutdown. Sinks attached with ``attach()`` stay registered.
        """
        for subscriber_id, sink in list(self._subscribers.items()):
            if isinstance(sink, QueueSink):
                self._drop(subscriber_id)

    def handler(self, level: int = logging.INFO) -> BroadcastHandler:
        """Build a logging.Handler that publishes records through this broadcaster."""
        return BroadcastHandler(self, level)

    def _drop(self, subscriber_id: str) -> bool:
        sink = self._subscribers.pop(subscriber_id, None)
        if sink is None:
            return False
        close = getattr(sink, "close", None)
        if callable(close):
            try:
                close()
            except Exception as e:
                logger.warning(f"Failed to close subscriber {subscriber_id}: {e}")
        return True


class BroadcastHandler(logging.Handler):
    """Forwards log records into a LogBroadcaster.

    Attach explicitly to the loggers whose output observers should see.
    Records emitted by the broadcaster itself are skipped.
    """

    def __init__(self, broadcaster: LogBroadcaster, level: int = logging.INFO):
        super().__init__(level)
        self._broadcaster = broadcaster

    def emit(self, record: logging.LogRecord) -> None:
        if record.name == logger.name:
            return
        try:
            self._broadcaster.publish(self.format(record))
        except Exception:
            self.handleError(record)


_default: LogBroadcaster | None = None


def default_broadcaster() -> LogBroadcaster:
    """Process-wide broadcaster for service wiring. Created on first use."""
    global _default
    if _default is None:
        _default = LogBroadcaster()
    return _default
