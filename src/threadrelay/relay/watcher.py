"""Gateway event collector for one supervised thread."""

from __future__ import annotations

from collections.abc import AsyncIterable, Callable

from loguru import logger

from threadrelay.relay.events import (
    GatewayEvent,
    MessageReceived,
    SessionOutcome,
    ThreadDeleted,
    ThreadHandle,
    ThreadUpdated,
)
from threadrelay.relay.queue import MessageRelayQueue


class ActivityWatcher:
    """Turn gateway events into relay messages and thread-closed outcomes."""

    def __init__(
        self,
        *,
        thread: ThreadHandle,
        self_id: str,
        queue: MessageRelayQueue,
        on_activity: Callable[[], None],
        events: AsyncIterable[GatewayEvent],
    ) -> None:
        self.thread = thread
        self.self_id = self_id
        self._queue = queue
        self._on_activity = on_activity
        self._events = events
        self._outcome: SessionOutcome | None = None
        self._accepting = True

    def stop_intake(self) -> None:
        """Drop every later message; the session is ending."""
        self._accepting = False

    @property
    def outcome(self) -> SessionOutcome | None:
        return self._outcome

    async def run(self) -> SessionOutcome:
        logger.info("watcher.start thread_id={} title={}", self.thread.id, self.thread.title)
        async for event in self._events:
            outcome = self.handle(event)
            if outcome is not None:
                return outcome
        if self._outcome is not None:
            return self._outcome
        logger.warning("watcher.gateway_disconnected thread_id={}", self.thread.id)
        return self._close("gateway disconnected")

    def handle(self, event: GatewayEvent) -> SessionOutcome | None:
        """Apply one event; return the terminal outcome the first time the thread closes."""
        if self._outcome is not None:
            return None

        match event:
            case MessageReceived():
                self._accept(event)
            case ThreadUpdated() if event.thread_id == self.thread.id and (event.archived or event.locked):
                logger.warning(
                    "watcher.thread_closed thread_id={} title={} status={}",
                    self.thread.id,
                    self.thread.title,
                    event.status,
                )
                return self._close(f"thread {event.status}")
            case ThreadDeleted() if event.thread_id == self.thread.id:
                logger.warning("watcher.thread_deleted thread_id={} title={}", self.thread.id, self.thread.title)
                return self._close("thread deleted")
        return None

    def _accept(self, event: MessageReceived) -> None:
        if event.thread_id != self.thread.id:
            return
        if event.sender_id == self.self_id:
            return
        if not self._accepting:
            logger.debug("watcher.dropped thread_id={} sender_id={}", event.thread_id, event.sender_id)
            return
        logger.info(
            "watcher.inbound thread_id={} sender_id={} content={}",
            event.thread_id,
            event.sender_id,
            event.content[:100],
        )
        self._queue.enqueue(event.to_relay())
        self._on_activity()

    def _close(self, reason: str) -> SessionOutcome:
        self._outcome = SessionOutcome.gateway_closed(reason)
        return self._outcome
