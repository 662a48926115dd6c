"""First-to-finish coordination of the watcher, timeout and consumer tasks."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol

from loguru import logger

from threadrelay.errors import ConfigurationError
from threadrelay.relay.events import RelayMessage, SessionOutcome
from threadrelay.relay.queue import MessageRelayQueue

DEFAULT_CANCEL_GRACE_SECONDS = 5.0


class SessionTask(Protocol):
    async def run(self) -> SessionOutcome: ...


@dataclass(frozen=True)
class SessionConfig:
    """Inputs one supervised session needs before it can start."""

    thread_id: str
    self_id: str
    warning_duration: timedelta
    final_duration: timedelta

    def __post_init__(self) -> None:
        if not self.thread_id:
            raise ConfigurationError("thread id is required")
        if not self.self_id:
            raise ConfigurationError("automated identity id is required")
        if self.warning_duration <= timedelta(0):
            raise ConfigurationError(f"warning duration must be positive, got {self.warning_duration}")
        if self.final_duration <= timedelta(0):
            raise ConfigurationError(f"final duration must be positive, got {self.final_duration}")


class SessionCoordinator:
    """Run the three session arms until the first of them finishes.

    The remaining arms are cancelled and joined, within a bounded grace
    period, before the outcome is returned. The relay queue is closed on the
    way out so nothing can be enqueued into a finished session.
    """

    ARM_ORDER = ("watcher", "timeout", "consumer")

    def __init__(
        self,
        *,
        queue: MessageRelayQueue,
        watcher: SessionTask,
        timeout: SessionTask,
        consumer: SessionTask,
        cancel_grace_seconds: float = DEFAULT_CANCEL_GRACE_SECONDS,
    ) -> None:
        self.queue = queue
        self._arms: dict[str, SessionTask] = {"watcher": watcher, "timeout": timeout, "consumer": consumer}
        self._cancel_grace_seconds = cancel_grace_seconds
        self.history: list[SessionOutcome] = []

    def seed(self, message: RelayMessage) -> None:
        """Queue a message that predates the session without counting it as activity."""
        self.queue.enqueue(message)

    def record(self, outcome: SessionOutcome) -> None:
        self.history.append(outcome)
        logger.info("session.outcome outcome={}", outcome)

    async def run(self) -> SessionOutcome:
        tasks = {name: asyncio.create_task(arm.run(), name=f"session.{name}") for name, arm in self._arms.items()}
        try:
            await asyncio.wait(tasks.values(), return_when=asyncio.FIRST_COMPLETED)
            name, task = next((name, tasks[name]) for name in self.ARM_ORDER if tasks[name].done())
            outcome = self._outcome_of(name, task)
        finally:
            await self._shutdown(tasks)
            self.queue.close()
        logger.info("session.finished arm={} outcome={}", name, outcome)
        self.record(outcome)
        return outcome

    @staticmethod
    def _outcome_of(name: str, task: asyncio.Task[SessionOutcome]) -> SessionOutcome:
        if task.cancelled():
            return SessionOutcome.error(f"{name} task was cancelled")
        exc = task.exception()
        if exc is not None:
            logger.opt(exception=exc).error("session.arm.error arm={}", name)
            return SessionOutcome.error(f"{name}: {exc!r}")
        outcome = task.result()
        if not outcome.terminal:
            return SessionOutcome.error(f"{name} finished with a non-terminal outcome")
        return outcome

    async def _shutdown(self, tasks: dict[str, asyncio.Task[SessionOutcome]]) -> None:
        pending = [task for task in tasks.values() if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            _, still_running = await asyncio.wait(pending, timeout=self._cancel_grace_seconds)
            for task in still_running:
                logger.warning("session.cancel.timeout task={}", task.get_name())
        for name, task in tasks.items():
            if task.done() and not task.cancelled() and task.exception() is not None:
                logger.debug("session.arm.finished_with_error arm={} error={!r}", name, task.exception())
