"""Base chat gateway interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime

from threadrelay.relay.events import GatewayEvent


@dataclass(frozen=True)
class SentMessage:
    """Reference to a message the gateway delivered."""

    id: str
    timestamp: datetime


class BaseGateway(ABC):
    """Abstract base class for thread-capable chat gateways."""

    name: str = "base"

    @property
    @abstractmethod
    def self_id(self) -> str:
        """Identifier of the bot's own account, used for echo suppression."""

    @abstractmethod
    def events(self) -> AsyncIterator[GatewayEvent]:
        """Stream message and lifecycle events until the connection closes."""

    @abstractmethod
    async def send_text(self, content: str) -> SentMessage:
        """Post plain text into the watched thread."""

    @abstractmethod
    async def send_notice(self, title: str, description: str) -> None:
        """Post a rich notice (embed) into the watched thread."""
