"""Single-consumer async event channel with thread-safe send."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncIterator
from typing import Generic, TypeVar

T = TypeVar("T")

_END = object()


class ChannelClosed(Exception):
    """The receiving side of a channel was dropped."""


class EventChannel(Generic[T]):
    """Unbounded channel between producers and one async consumer.

    ``send`` and ``close`` may be called from any thread; the consumer
    iterates with ``async for`` on the loop the channel was created on.
    After the consumer calls ``aclose`` every ``send`` raises ChannelClosed.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._dropped = False

    @property
    def dropped(self) -> bool:
        return self._dropped

    def _put(self, item: object) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._queue.put_nowait(item)
        else:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)

    def send(self, item: T) -> None:
        with self._lock:
            if self._dropped:
                raise ChannelClosed()
            if self._closed:
                raise RuntimeError("send on a closed channel")
            self._put(item)

    def close(self) -> None:
        """End the stream; idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if not self._dropped:
                self._put(_END)

    async def recv(self) -> T:
        """Next item; raises StopAsyncIteration once the stream has ended."""
        if self._dropped:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            self._dropped = True
            raise StopAsyncIteration
        return item

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        return await self.recv()

    async def aclose(self) -> None:
        """Drop the receiver; pending and future items are discarded."""
        with self._lock:
            self._dropped = True
        while not self._queue.empty():
            self._queue.get_nowait()
