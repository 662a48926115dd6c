from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from datetime import UTC, datetime

import pytest

from threadrelay.errors import DeliveryError
from threadrelay.gateway.base import BaseGateway, SentMessage
from threadrelay.relay.events import GatewayEvent


class FakeGateway(BaseGateway):
    """In-memory gateway: tests push events into ``feed`` and inspect what was sent."""

    name = "fake"

    def __init__(self, self_id: str = "bot", *, fail_delivery: bool = False) -> None:
        self._self_id = self_id
        self.fail_delivery = fail_delivery
        self.feed: asyncio.Queue[GatewayEvent | None] = asyncio.Queue()
        self.notices: list[tuple[float, str]] = []
        self.texts: list[str] = []
        self.started_at: float | None = None

    @property
    def self_id(self) -> str:
        return self._self_id

    def push(self, event: GatewayEvent | None) -> None:
        self.feed.put_nowait(event)

    def elapsed(self) -> float:
        loop = asyncio.get_running_loop()
        if self.started_at is None:
            self.started_at = loop.time()
        return loop.time() - self.started_at

    async def events(self) -> AsyncIterator[GatewayEvent]:
        while True:
            item = await self.feed.get()
            if item is None:
                return
            yield item

    async def send_text(self, content: str) -> SentMessage:
        if self.fail_delivery:
            raise DeliveryError("send failed")
        self.texts.append(content)
        return SentMessage(id=str(len(self.texts)), timestamp=datetime(2024, 1, 1, tzinfo=UTC))

    async def send_notice(self, title: str, description: str) -> None:
        self.notices.append((self.elapsed(), title))
        if self.fail_delivery:
            raise DeliveryError("notice failed")


class FakeEngine:
    def __init__(self) -> None:
        self.prompts: list[str] = []

    async def respond(self, prompt: str) -> None:
        self.prompts.append(prompt)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()
