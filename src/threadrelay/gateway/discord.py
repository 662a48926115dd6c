"""Discord thread gateway based on discord.py."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import aiohttp
import discord
from loguru import logger

from threadrelay.errors import ConfigurationError, DeliveryError, GatewaySubscriptionError, ThreadUnavailableError
from threadrelay.gateway.base import BaseGateway, SentMessage
from threadrelay.relay.events import (
    GatewayEvent,
    MessageReceived,
    RelayMessage,
    ThreadDeleted,
    ThreadHandle,
    ThreadUpdated,
)

MESSAGE_LIMIT = 2000
DEFAULT_HISTORY_LIMIT = 50
# TimeoutError is an OSError; connection resets surface as OSError from the HTTP client.
DELIVERY_ERRORS = (discord.HTTPException, aiohttp.ClientError, OSError)


def resolve_proxy(explicit_proxy: str | None) -> tuple[str | None, str]:
    if explicit_proxy:
        return explicit_proxy, "explicit"

    # Proxy usage must be opt-in; ignore ambient env vars and OS proxy settings.
    return None, "none"


def gateway_intents() -> discord.Intents:
    intents = discord.Intents.none()
    intents.guilds = True
    intents.guild_messages = True
    intents.message_content = True
    return intents


def message_text(message: discord.Message) -> str:
    if message.content:
        return message.content
    if message.attachments:
        return "\n".join(f"[Attachment: {att.filename}]" for att in message.attachments)
    if message.stickers:
        return "\n".join(f"[Sticker: {sticker.name}]" for sticker in message.stickers)
    return "[Unknown message type]"


def chunk_message(text: str, *, limit: int = MESSAGE_LIMIT) -> list[str]:
    if len(text) <= limit:
        return [text]
    chunks: list[str] = []
    remaining = text
    while remaining:
        if len(remaining) <= limit:
            chunks.append(remaining)
            break
        split_at = remaining.rfind("\n", 0, limit)
        if split_at <= 0:
            split_at = limit
        chunks.append(remaining[:split_at].rstrip())
        remaining = remaining[split_at:].lstrip("\n")
    return [chunk for chunk in chunks if chunk]


@dataclass(frozen=True)
class DiscordGatewayConfig:
    """Discord gateway config."""

    token: str
    thread_id: str
    proxy: str | None = None


class _Closed:
    """Marks the end of the event stream once the websocket connection is gone."""


class DiscordThreadGateway(BaseGateway):
    """Watch one Discord thread and post into it.

    ``async with`` logs in over HTTP so the thread can be inspected before the
    websocket connection is opened; the connection itself starts the first
    time :meth:`events` is iterated.
    """

    name = "discord"

    def __init__(self, config: DiscordGatewayConfig, *, client: discord.Client | None = None) -> None:
        if not config.token:
            raise ConfigurationError("discord token is empty")
        try:
            self._thread_id = int(config.thread_id)
        except ValueError as exc:
            raise ConfigurationError(f"invalid discord thread id: {config.thread_id!r}") from exc
        self._config = config
        proxy, self._proxy_source = resolve_proxy(config.proxy)
        self._client = client or discord.Client(intents=gateway_intents(), proxy=proxy)
        self._thread: discord.Thread | None = None
        self._events: asyncio.Queue[GatewayEvent | _Closed] = asyncio.Queue()
        self._connection: asyncio.Task[None] | None = None
        self._register_handlers()

    async def __aenter__(self) -> DiscordThreadGateway:
        try:
            await self._client.login(self._config.token)
        except discord.LoginFailure as exc:
            raise ConfigurationError(f"discord login failed: {exc}") from exc
        logger.info("discord.login user={} proxy={}", self._client.user, self._proxy_source)
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def self_id(self) -> str:
        user = self._client.user
        if user is None:
            raise RuntimeError("discord client is not logged in")
        return str(user.id)

    async def open_thread(self) -> ThreadHandle:
        """Fetch the watched thread and refuse threads that cannot be supervised."""
        try:
            channel = await self._client.fetch_channel(self._thread_id)
        except (discord.NotFound, discord.Forbidden) as exc:
            raise ThreadUnavailableError(f"thread {self._thread_id} does not exist or is not visible") from exc
        if not isinstance(channel, discord.Thread):
            raise ThreadUnavailableError(f"channel {self._thread_id} is not a guild thread")
        if channel.archived or channel.locked:
            raise ThreadUnavailableError(f"thread {channel.name} ({channel.id}) is archived or locked")
        if channel.owner_id is None:
            raise ThreadUnavailableError(f"thread {channel.name} ({channel.id}) is missing an owner")

        self._thread = channel
        return ThreadHandle(id=str(channel.id), title=channel.name, owner_id=str(channel.owner_id))

    async def history(self, *, limit: int = DEFAULT_HISTORY_LIMIT) -> list[RelayMessage]:
        """Return the most recent thread messages, oldest first."""
        thread = self._require_thread()
        messages = [self._to_relay(message) async for message in thread.history(limit=limit)]
        messages.reverse()
        return messages

    async def events(self) -> AsyncIterator[GatewayEvent]:
        self._ensure_connected()
        while True:
            item = await self._events.get()
            if isinstance(item, _Closed):
                self._raise_if_failed()
                return
            yield item

    async def send_text(self, content: str) -> SentMessage:
        thread = self._require_thread()
        sent: discord.Message | None = None
        try:
            for chunk in chunk_message(content):
                sent = await thread.send(content=chunk)
        except DELIVERY_ERRORS as exc:
            raise DeliveryError(f"failed to send message to thread {thread.id}: {exc}") from exc
        if sent is None:
            raise DeliveryError("refusing to send an empty message")
        return SentMessage(id=str(sent.id), timestamp=sent.created_at)

    async def send_notice(self, title: str, description: str) -> None:
        thread = self._require_thread()
        embed = discord.Embed(title=title, description=description)
        try:
            await thread.send(embed=embed)
        except DELIVERY_ERRORS as exc:
            raise DeliveryError(f"failed to send notice to thread {thread.id}: {exc}") from exc

    async def close(self) -> None:
        if self._connection is not None and not self._connection.done():
            self._connection.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._connection
        if not self._client.is_closed():
            await self._client.close()
        logger.info("discord.stopped")

    def _register_handlers(self) -> None:
        client = self._client

        @client.event
        async def on_ready() -> None:
            logger.info("discord.ready user={} thread_id={}", client.user, self._thread_id)

        @client.event
        async def on_message(message: discord.Message) -> None:
            event = self.translate_message(message)
            if event is not None:
                self._events.put_nowait(event)

        @client.event
        async def on_raw_thread_update(payload: discord.RawThreadUpdateEvent) -> None:
            self._events.put_nowait(self.translate_thread_update(payload.thread_id, payload.data))

        @client.event
        async def on_raw_thread_delete(payload: discord.RawThreadDeleteEvent) -> None:
            self._events.put_nowait(ThreadDeleted(thread_id=str(payload.thread_id)))

    def translate_message(self, message: discord.Message) -> MessageReceived | None:
        if message.channel.id != self._thread_id:
            return None
        return MessageReceived(
            thread_id=str(message.channel.id),
            sender_id=str(message.author.id),
            content=message_text(message),
            received_at=message.created_at or datetime.now(UTC),
        )

    @staticmethod
    def translate_thread_update(thread_id: int, data: dict[str, Any]) -> ThreadUpdated:
        metadata = data.get("thread_metadata") or {}
        return ThreadUpdated(
            thread_id=str(thread_id),
            archived=bool(metadata.get("archived", False)),
            locked=bool(metadata.get("locked", False)),
        )

    def _ensure_connected(self) -> None:
        if self._connection is not None:
            return
        logger.info("discord.connect thread_id={}", self._thread_id)
        self._connection = asyncio.create_task(self._client.connect(reconnect=True), name="discord.connect")
        self._connection.add_done_callback(lambda _task: self._events.put_nowait(_Closed()))

    def _raise_if_failed(self) -> None:
        connection = self._connection
        if connection is None or connection.cancelled():
            return
        exc = connection.exception()
        if exc is not None:
            raise GatewaySubscriptionError(f"discord connection failed: {exc}") from exc

    def _require_thread(self) -> discord.Thread:
        if self._thread is None:
            raise RuntimeError("thread is not open; call open_thread() first")
        return self._thread

    @staticmethod
    def _to_relay(message: discord.Message) -> RelayMessage:
        return RelayMessage(
            sender_id=str(message.author.id),
            content=message_text(message),
            received_at=message.created_at,
        )
