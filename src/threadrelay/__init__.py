"""threadrelay - supervise a Discord support thread for an LLM agent."""

from threadrelay.relay import (
    ActivityWatcher,
    MessageRelayQueue,
    RelayMessage,
    SessionConfig,
    SessionCoordinator,
    SessionOutcome,
    TimeoutSupervisor,
)

__version__ = "0.1.0"

__all__ = [
    "ActivityWatcher",
    "MessageRelayQueue",
    "RelayMessage",
    "SessionConfig",
    "SessionCoordinator",
    "SessionOutcome",
    "TimeoutSupervisor",
]
