"""Live progress-line broadcasting.

    - LogBroadcaster: fan-out of lines to subscribers
    - LineSink / QueueSink: the observer side
    - BroadcastHandler: opt-in bridge from logging into a broadcaster
"""

from pyferry.broadcast.broadcaster import (
    BroadcastHandler,
    LogBroadcaster,
    default_broadcaster,
)
from pyferry.broadcast.sinks import LineSink, QueueSink, SinkClosedError

__all__ = [
    "LogBroadcaster",
    "BroadcastHandler",
    "default_broadcaster",
    "LineSink",
    "QueueSink",
    "SinkClosedError",
]
