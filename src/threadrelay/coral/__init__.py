"""Orchestration server integration."""

from threadrelay.coral.dispatcher import ThreadDispatcher
from threadrelay.coral.session import SessionLauncher

__all__ = ["SessionLauncher", "ThreadDispatcher"]
