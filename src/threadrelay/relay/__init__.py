"""Thread activity supervision: relay queue, watcher, timeout and coordinator."""

from threadrelay.relay.coordinator import SessionConfig, SessionCoordinator
from threadrelay.relay.events import (
    GatewayEvent,
    MessageReceived,
    OutcomeKind,
    RelayMessage,
    SessionOutcome,
    ThreadDeleted,
    ThreadHandle,
    ThreadStatus,
    ThreadUpdated,
    TimeoutStage,
)
from threadrelay.relay.queue import MessageRelayQueue
from threadrelay.relay.timeout import TimeoutSupervisor
from threadrelay.relay.watcher import ActivityWatcher

__all__ = [
    "ActivityWatcher",
    "GatewayEvent",
    "MessageReceived",
    "MessageRelayQueue",
    "OutcomeKind",
    "RelayMessage",
    "SessionConfig",
    "SessionCoordinator",
    "SessionOutcome",
    "ThreadDeleted",
    "ThreadHandle",
    "ThreadStatus",
    "ThreadUpdated",
    "TimeoutStage",
    "TimeoutSupervisor",
]
