"""Application-level exception types for threadrelay."""

from __future__ import annotations


class ThreadRelayError(Exception):
    """Base exception for threadrelay."""


class ConfigurationError(ThreadRelayError):
    """Raised for invalid configuration detected at session start."""


class ThreadUnavailableError(ConfigurationError):
    """Raised when the target thread cannot be supervised (missing, archived or locked)."""


class GatewaySubscriptionError(ThreadRelayError):
    """Raised when the chat gateway stops delivering events."""


class DeliveryError(ThreadRelayError):
    """Raised when one outbound message could not be sent."""


class QueueClosedError(ThreadRelayError):
    """Raised when enqueueing into a relay queue whose reader is gone."""


class CompletionError(ThreadRelayError):
    """Raised when the completion engine fails to produce a turn."""


class SessionLaunchError(ThreadRelayError):
    """Raised when the orchestration server rejects a session request."""
