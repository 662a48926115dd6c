"""Relay value types and gateway event models."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum


@dataclass(frozen=True)
class RelayMessage:
    """One accepted thread message, handed from the watcher to the consumer."""

    sender_id: str
    content: str
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def render(self) -> str:
        data = {"sender": self.sender_id, "content": self.content}
        return json.dumps(data, ensure_ascii=False)


class ThreadStatus(StrEnum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    LOCKED = "locked"
    DELETED = "deleted"


@dataclass(frozen=True)
class ThreadHandle:
    """Snapshot of the externally owned thread being supervised."""

    id: str
    title: str
    owner_id: str
    status: ThreadStatus = ThreadStatus.ACTIVE


@dataclass(frozen=True)
class MessageReceived:
    """A message posted into a thread."""

    thread_id: str
    sender_id: str
    content: str
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_relay(self) -> RelayMessage:
        return RelayMessage(sender_id=self.sender_id, content=self.content, received_at=self.received_at)


@dataclass(frozen=True)
class ThreadUpdated:
    """Lifecycle update for some thread; only archived and locked flags matter here."""

    thread_id: str
    archived: bool = False
    locked: bool = False

    @property
    def status(self) -> ThreadStatus:
        if self.archived:
            return ThreadStatus.ARCHIVED
        if self.locked:
            return ThreadStatus.LOCKED
        return ThreadStatus.ACTIVE


@dataclass(frozen=True)
class ThreadDeleted:
    """Lifecycle delete for some thread."""

    thread_id: str


GatewayEvent = MessageReceived | ThreadUpdated | ThreadDeleted


class TimeoutStage(StrEnum):
    WAITING_WARNING = "waiting_warning"
    WAITING_FINAL = "waiting_final"


class OutcomeKind(StrEnum):
    GATEWAY_CLOSED = "gateway_closed"
    CONSUMER_EXHAUSTED = "consumer_exhausted"
    TIMEOUT_WARNING = "timeout_warning"
    TIMEOUT_FIRED = "timeout_fired"
    ERROR = "error"


@dataclass(frozen=True)
class SessionOutcome:
    """Why a session ended, or an informational event along the way."""

    kind: OutcomeKind
    reason: str | None = None

    @property
    def terminal(self) -> bool:
        return self.kind is not OutcomeKind.TIMEOUT_WARNING

    @classmethod
    def gateway_closed(cls, reason: str | None = None) -> SessionOutcome:
        return cls(OutcomeKind.GATEWAY_CLOSED, reason)

    @classmethod
    def consumer_exhausted(cls) -> SessionOutcome:
        return cls(OutcomeKind.CONSUMER_EXHAUSTED)

    @classmethod
    def timeout_warning(cls) -> SessionOutcome:
        return cls(OutcomeKind.TIMEOUT_WARNING)

    @classmethod
    def timeout_fired(cls) -> SessionOutcome:
        return cls(OutcomeKind.TIMEOUT_FIRED)

    @classmethod
    def error(cls, reason: str) -> SessionOutcome:
        return cls(OutcomeKind.ERROR, reason)

    def __str__(self) -> str:
        if self.reason:
            return f"{self.kind.value}: {self.reason}"
        return self.kind.value
