"""Ordered relay queue between the activity watcher and the responder."""

from __future__ import annotations

import asyncio
from collections import deque

from threadrelay.errors import QueueClosedError
from threadrelay.relay.events import RelayMessage


class MessageRelayQueue:
    """Unbounded multi-producer, single-consumer FIFO of relay messages.

    Closing is permanent. Items already queued when the queue closes are still
    handed out once; after that every read returns an empty batch.
    """

    def __init__(self) -> None:
        self._items: deque[RelayMessage] = deque()
        self._ready = asyncio.Event()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._items)

    def enqueue(self, message: RelayMessage) -> None:
        if self._closed:
            raise QueueClosedError("relay queue is closed")
        self._items.append(message)
        self._ready.set()

    async def dequeue_batch(self, max_items: int) -> list[RelayMessage]:
        if max_items < 1:
            raise ValueError("max_items must be at least 1")
        while not self._items and not self._closed:
            self._ready.clear()
            await self._ready.wait()

        batch: list[RelayMessage] = []
        while self._items and len(batch) < max_items:
            batch.append(self._items.popleft())
        return batch

    def close(self) -> None:
        self._closed = True
        self._ready.set()
