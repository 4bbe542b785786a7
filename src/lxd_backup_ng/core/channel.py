"""Handoff channel between the snapshot and transfer stages."""

import queue
import threading
from typing import Generic, Iterator, TypeVar

from ..__util__ import ChannelClosedError

T = TypeVar("T")

_CLOSED = object()


class HandoffChannel(Generic[T]):
    """Unbounded conduit with many writers, a single closer and many readers.

    Closing is allowed exactly once; a send after close raises
    ``ChannelClosedError``. Readers see closure as the end of the stream.
    """

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue = queue.SimpleQueue()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, item: T) -> None:
        with self._lock:
            if self._closed:
                raise ChannelClosedError("send on closed channel")
            self._queue.put(item)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                raise ChannelClosedError("channel already closed")
            self._closed = True
            self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[T]:
        """Yield items until the channel is closed and drained."""
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                # Leave the marker for any other reader.
                self._queue.put(_CLOSED)
                return
            yield item
