"""Discord bot that launches one orchestration session per new thread."""

from __future__ import annotations

import discord
from loguru import logger

from threadrelay.config import DispatchSettings
from threadrelay.coral.session import SessionLauncher
from threadrelay.errors import ConfigurationError, SessionLaunchError
from threadrelay.gateway.discord import gateway_intents, resolve_proxy


class ThreadDispatcher:
    """Listen for thread creation and start a support session for each thread."""

    def __init__(
        self,
        settings: DispatchSettings,
        *,
        launcher: SessionLauncher | None = None,
        client: discord.Client | None = None,
    ) -> None:
        if not settings.discord_api_token:
            raise ConfigurationError("discord token is empty")
        self.settings = settings
        self.launcher = launcher or SessionLauncher(settings)
        proxy, _ = resolve_proxy(settings.proxy)
        self._client = client or discord.Client(intents=gateway_intents(), proxy=proxy)

        @self._client.event
        async def on_ready() -> None:
            logger.info("dispatch.ready user={}", self._client.user)

        @self._client.event
        async def on_thread_create(thread: discord.Thread) -> None:
            await self.handle_thread_create(thread)

    async def handle_thread_create(self, thread: discord.Thread) -> str | None:
        if thread.parent_id is None:
            logger.warning("dispatch.thread_create without parent thread_id={}", thread.id)
            return None
        try:
            session_id = await self.launcher.create_session(str(thread.id))
        except SessionLaunchError as exc:
            logger.error("dispatch.session.error thread_id={} error={}", thread.id, exc)
            return None
        logger.info("dispatch.session.created session_id={} thread={} ({})", session_id, thread.name, thread.id)
        return session_id

    async def run(self) -> None:
        logger.info("dispatch.start coral_server={}", self.settings.coral_server)
        try:
            async with self._client:
                await self._client.start(self.settings.discord_api_token)
        finally:
            await self.launcher.aclose()
            logger.info("dispatch.stopped")
