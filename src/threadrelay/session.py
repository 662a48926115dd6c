"""Session assembly and the end-to-end watch flow."""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from threadrelay.agent import CompletionEngine, EngineSettings, RepublicEngine, ThreadResponder, render_preamble
from threadrelay.config import WatchSettings
from threadrelay.errors import ThreadUnavailableError
from threadrelay.gateway.base import BaseGateway
from threadrelay.gateway.discord import DiscordGatewayConfig, DiscordThreadGateway
from threadrelay.relay import (
    ActivityWatcher,
    MessageRelayQueue,
    RelayMessage,
    SessionConfig,
    SessionCoordinator,
    SessionOutcome,
    ThreadHandle,
    TimeoutSupervisor,
)
from threadrelay.relay.coordinator import DEFAULT_CANCEL_GRACE_SECONDS


def build_session(
    *,
    config: SessionConfig,
    thread: ThreadHandle,
    gateway: BaseGateway,
    engine: CompletionEngine,
    batch_size: int = 16,
    cancel_grace_seconds: float = DEFAULT_CANCEL_GRACE_SECONDS,
) -> SessionCoordinator:
    """Wire the queue, watcher, timeout and responder for one thread."""
    queue = MessageRelayQueue()
    supervisor = TimeoutSupervisor(
        warning_duration=config.warning_duration,
        final_duration=config.final_duration,
        notices=gateway,
    )
    watcher = ActivityWatcher(
        thread=thread,
        self_id=config.self_id,
        queue=queue,
        on_activity=supervisor.reset,
        events=gateway.events(),
    )
    responder = ThreadResponder(queue=queue, engine=engine, batch_size=batch_size)
    coordinator = SessionCoordinator(
        queue=queue,
        watcher=watcher,
        timeout=supervisor,
        consumer=responder,
        cancel_grace_seconds=cancel_grace_seconds,
    )
    supervisor.on_warning = coordinator.record
    supervisor.on_fired = watcher.stop_intake
    return coordinator


def split_history(history: Sequence[RelayMessage]) -> tuple[RelayMessage, list[RelayMessage]]:
    """Return the thread's opening message and the messages that followed it."""
    if not history:
        raise ThreadUnavailableError("no existing messages found on the thread")
    return history[0], list(history[1:])


async def watch_thread(settings: WatchSettings) -> SessionOutcome:
    gateway = DiscordThreadGateway(
        DiscordGatewayConfig(
            token=settings.discord_api_token,
            thread_id=settings.discord_thread_id,
            proxy=settings.proxy,
        )
    )
    async with gateway:
        thread = await gateway.open_thread()
        config = SessionConfig(
            thread_id=thread.id,
            self_id=gateway.self_id,
            warning_duration=settings.timeout_warning,
            final_duration=settings.timeout_final,
        )
        opening, previous = split_history(await gateway.history())
        engine = RepublicEngine(
            settings=EngineSettings(
                model=settings.model,
                api_key=settings.api_key,
                api_base=settings.api_base,
                max_steps=settings.max_steps,
                max_tokens=settings.max_tokens,
                timeout_seconds=settings.model_timeout_seconds,
            ),
            system_prompt=render_preamble(thread, previous),
            send=gateway.send_text,
            tape_name=f"discord:{thread.id}",
        )
        coordinator = build_session(
            config=config,
            thread=thread,
            gateway=gateway,
            engine=engine,
            batch_size=settings.batch_size,
        )
        coordinator.seed(opening)
        logger.info(
            "session.start thread_id={} title={} previous_messages={}",
            thread.id,
            thread.title,
            len(previous),
        )
        return await coordinator.run()
