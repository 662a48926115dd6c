"""Two-stage inactivity timeout for a supervised thread."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from datetime import timedelta
from typing import Protocol

from loguru import logger

from threadrelay.errors import DeliveryError
from threadrelay.relay.events import SessionOutcome, TimeoutStage

WARNING_TITLE = "⚠️ Timeout warning"
TIMEOUT_TITLE = "⚠️ Timeout"
TIMEOUT_DESCRIPTION = "This thread has been closed due to inactivity"


class NoticeSink(Protocol):
    async def send_notice(self, title: str, description: str) -> None: ...


def warning_description(final_duration: timedelta, *, now: float | None = None) -> str:
    closes_at = int((time.time() if now is None else now) + final_duration.total_seconds())
    return f"This thread will be closed automatically for inactivity <t:{closes_at}:R>"


class TimeoutSupervisor:
    """Warn after ``warning_duration`` of silence, close after a further ``final_duration``.

    Any reset returns the timer to the warning stage, whichever stage it is in.
    Resets are queued, never overwritten; several resets that arrive before
    the loop looks collapse into one.
    """

    def __init__(
        self,
        *,
        warning_duration: timedelta,
        final_duration: timedelta,
        notices: NoticeSink,
        on_warning: Callable[[SessionOutcome], None] | None = None,
        on_fired: Callable[[], None] | None = None,
    ) -> None:
        self.warning_duration = warning_duration
        self.final_duration = final_duration
        self._notices = notices
        self.on_warning = on_warning
        self.on_fired = on_fired
        self._resets: asyncio.Queue[None] = asyncio.Queue()
        self._stage = TimeoutStage.WAITING_WARNING

    @property
    def stage(self) -> TimeoutStage:
        return self._stage

    def reset(self) -> None:
        self._resets.put_nowait(None)

    async def run(self) -> SessionOutcome:
        while True:
            self._stage = TimeoutStage.WAITING_WARNING
            if await self._reset_within(self.warning_duration):
                continue
            await self._send_warning()

            self._stage = TimeoutStage.WAITING_FINAL
            if await self._reset_within(self.final_duration):
                logger.debug("timeout.reset stage={}", TimeoutStage.WAITING_FINAL)
                continue
            await self._send_timeout()
            return SessionOutcome.timeout_fired()

    async def _reset_within(self, duration: timedelta) -> bool:
        try:
            async with asyncio.timeout(duration.total_seconds()):
                await self._resets.get()
        except TimeoutError:
            # A reset that landed on the same tick as the deadline still wins.
            if self._resets.empty():
                return False
        self._drain_resets()
        return True

    def _drain_resets(self) -> None:
        while True:
            try:
                self._resets.get_nowait()
            except asyncio.QueueEmpty:
                return

    async def _send_warning(self) -> None:
        logger.info("timeout.warning final_in={}s", self.final_duration.total_seconds())
        if self.on_warning is not None:
            self.on_warning(SessionOutcome.timeout_warning())
        try:
            await self._notices.send_notice(WARNING_TITLE, warning_description(self.final_duration))
        except DeliveryError as exc:
            logger.error("timeout.warning.delivery_failed error={}", exc)

    async def _send_timeout(self) -> None:
        logger.warning("timeout.fired")
        # Intake stops before the closing notice goes out.
        if self.on_fired is not None:
            self.on_fired()
        try:
            await self._notices.send_notice(TIMEOUT_TITLE, TIMEOUT_DESCRIPTION)
        except DeliveryError as exc:
            logger.error("timeout.fired.delivery_failed error={}", exc)
