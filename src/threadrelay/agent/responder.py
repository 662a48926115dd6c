"""Downstream consumer that feeds relay batches to a completion engine."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from loguru import logger

from threadrelay.relay.events import RelayMessage, SessionOutcome
from threadrelay.relay.queue import MessageRelayQueue

DEFAULT_BATCH_SIZE = 16


class CompletionEngine(Protocol):
    async def respond(self, prompt: str) -> None: ...


def render_batch(batch: Sequence[RelayMessage]) -> str:
    return "\n".join(message.render() for message in batch)


class ThreadResponder:
    """Drain the relay queue until it closes, one engine turn per batch."""

    def __init__(
        self,
        *,
        queue: MessageRelayQueue,
        engine: CompletionEngine,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self._queue = queue
        self._engine = engine
        self._batch_size = batch_size
        self.turns = 0

    async def run(self) -> SessionOutcome:
        while True:
            batch = await self._queue.dequeue_batch(self._batch_size)
            if not batch:
                logger.info("responder.exhausted turns={}", self.turns)
                return SessionOutcome.consumer_exhausted()
            self.turns += 1
            logger.info("responder.turn turn={} messages={}", self.turns, len(batch))
            await self._engine.respond(render_batch(batch))
