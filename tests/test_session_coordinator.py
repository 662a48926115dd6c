from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from threadrelay.errors import ConfigurationError, QueueClosedError, ThreadUnavailableError
from threadrelay.relay.coordinator import SessionConfig, SessionCoordinator
from threadrelay.relay.events import (
    MessageReceived,
    OutcomeKind,
    RelayMessage,
    SessionOutcome,
    ThreadDeleted,
    ThreadHandle,
)
from threadrelay.relay.queue import MessageRelayQueue
from threadrelay.relay.timeout import TIMEOUT_TITLE, WARNING_TITLE
from threadrelay.session import build_session, split_history

UNIT = 0.04
SLACK = 0.1
EARLY = 0.01
THREAD = ThreadHandle(id="42", title="help me", owner_id="owner")


def _config(warning_units: float = 5, final_units: float = 5) -> SessionConfig:
    return SessionConfig(
        thread_id=THREAD.id,
        self_id="bot",
        warning_duration=timedelta(seconds=warning_units * UNIT),
        final_duration=timedelta(seconds=final_units * UNIT),
    )


def _session(gateway, engine, **config) -> SessionCoordinator:
    return build_session(config=_config(**config), thread=THREAD, gateway=gateway, engine=engine, batch_size=4)


def _at(gateway, title: str) -> list[float]:
    return [at / UNIT for at, seen in gateway.notices if seen == title]


class Arm:
    def __init__(self, *, delay: float | None = None, outcome: SessionOutcome | None = None, error=None) -> None:
        self.delay = delay
        self.outcome = outcome
        self.error = error
        self.cancelled = False

    async def run(self) -> SessionOutcome:
        try:
            if self.delay is None:
                await asyncio.Event().wait()
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise self.error
        assert self.outcome is not None
        return self.outcome


@pytest.mark.asyncio
async def test_scenario_no_activity_warns_then_times_out(gateway, engine) -> None:
    coordinator = _session(gateway, engine)
    gateway.elapsed()

    outcome = await asyncio.wait_for(coordinator.run(), timeout=3)

    assert outcome.kind is OutcomeKind.TIMEOUT_FIRED
    [warned] = _at(gateway, WARNING_TITLE)
    [closed] = _at(gateway, TIMEOUT_TITLE)
    assert 5 - EARLY / UNIT <= warned < 5 + SLACK / UNIT
    assert 10 - EARLY / UNIT <= closed < 10 + SLACK / UNIT
    assert [o.kind for o in coordinator.history] == [OutcomeKind.TIMEOUT_WARNING, OutcomeKind.TIMEOUT_FIRED]


@pytest.mark.asyncio
async def test_scenario_message_restarts_the_timer(gateway, engine) -> None:
    coordinator = _session(gateway, engine)
    gateway.elapsed()
    run = asyncio.create_task(coordinator.run())

    await asyncio.sleep(3 * UNIT)
    gateway.push(MessageReceived(thread_id="42", sender_id="user", content="still there?"))
    await asyncio.sleep(3 * UNIT)
    assert gateway.notices == []

    outcome = await asyncio.wait_for(run, timeout=3)

    assert outcome.kind is OutcomeKind.TIMEOUT_FIRED
    [warned] = _at(gateway, WARNING_TITLE)
    [closed] = _at(gateway, TIMEOUT_TITLE)
    assert 8 - EARLY / UNIT <= warned < 8 + SLACK / UNIT
    assert 13 - EARLY / UNIT <= closed < 13 + SLACK / UNIT
    assert engine.prompts == ['{"sender": "user", "content": "still there?"}']


@pytest.mark.asyncio
async def test_scenario_thread_deleted_ends_session_before_warning(gateway, engine) -> None:
    coordinator = _session(gateway, engine, warning_units=10)
    gateway.elapsed()
    run = asyncio.create_task(coordinator.run())

    await asyncio.sleep(2 * UNIT)
    gateway.push(ThreadDeleted(thread_id="42"))
    outcome = await asyncio.wait_for(run, timeout=3)

    assert outcome.kind is OutcomeKind.GATEWAY_CLOSED
    assert gateway.elapsed() < 2 * UNIT + SLACK
    await asyncio.sleep(10 * UNIT)
    assert gateway.notices == []


@pytest.mark.asyncio
async def test_scenario_own_message_is_not_relayed_and_does_not_reset(gateway, engine) -> None:
    coordinator = _session(gateway, engine)
    gateway.elapsed()
    run = asyncio.create_task(coordinator.run())

    await asyncio.sleep(3 * UNIT)
    gateway.push(MessageReceived(thread_id="42", sender_id="bot", content="my own reply"))
    outcome = await asyncio.wait_for(run, timeout=3)

    assert outcome.kind is OutcomeKind.TIMEOUT_FIRED
    [warned] = _at(gateway, WARNING_TITLE)
    assert 5 - EARLY / UNIT <= warned < 5 + SLACK / UNIT
    assert engine.prompts == []


@pytest.mark.asyncio
async def test_seeded_message_reaches_consumer_without_resetting(gateway, engine) -> None:
    coordinator = _session(gateway, engine)
    coordinator.seed(RelayMessage(sender_id="owner", content="my bot is broken"))
    gateway.elapsed()

    outcome = await asyncio.wait_for(coordinator.run(), timeout=3)

    assert outcome.kind is OutcomeKind.TIMEOUT_FIRED
    assert engine.prompts == ['{"sender": "owner", "content": "my bot is broken"}']
    [warned] = _at(gateway, WARNING_TITLE)
    assert warned < 5 + SLACK / UNIT


@pytest.mark.asyncio
async def test_messages_after_the_timeout_fires_are_not_relayed(gateway, engine, monkeypatch) -> None:
    closing = asyncio.Event()
    send_notice = gateway.send_notice

    async def slow_notice(title: str, description: str) -> None:
        await send_notice(title, description)
        if title == TIMEOUT_TITLE:
            closing.set()
            await asyncio.sleep(3 * UNIT)

    monkeypatch.setattr(gateway, "send_notice", slow_notice)
    coordinator = _session(gateway, engine, warning_units=2, final_units=2)
    gateway.elapsed()
    run = asyncio.create_task(coordinator.run())

    await asyncio.wait_for(closing.wait(), timeout=3)
    gateway.push(MessageReceived(thread_id="42", sender_id="user", content="after close"))
    outcome = await asyncio.wait_for(run, timeout=3)

    assert outcome.kind is OutcomeKind.TIMEOUT_FIRED
    assert engine.prompts == []


@pytest.mark.asyncio
async def test_first_finished_arm_wins_and_others_are_cancelled() -> None:
    queue = MessageRelayQueue()
    watcher = Arm()
    timeout = Arm()
    consumer = Arm(delay=0.01, outcome=SessionOutcome.consumer_exhausted())
    coordinator = SessionCoordinator(queue=queue, watcher=watcher, timeout=timeout, consumer=consumer)

    outcome = await coordinator.run()

    assert outcome.kind is OutcomeKind.CONSUMER_EXHAUSTED
    assert watcher.cancelled
    assert timeout.cancelled
    assert queue.closed
    with pytest.raises(QueueClosedError):
        queue.enqueue(RelayMessage(sender_id="u1", content="late"))


@pytest.mark.asyncio
async def test_failing_arm_becomes_error_outcome() -> None:
    watcher = Arm(delay=0.01, error=RuntimeError("gateway exploded"))
    timeout = Arm()
    consumer = Arm()
    coordinator = SessionCoordinator(queue=MessageRelayQueue(), watcher=watcher, timeout=timeout, consumer=consumer)

    outcome = await coordinator.run()

    assert outcome.kind is OutcomeKind.ERROR
    assert outcome.reason is not None
    assert "gateway exploded" in outcome.reason
    assert outcome.reason.startswith("watcher")
    assert timeout.cancelled
    assert consumer.cancelled


@pytest.mark.asyncio
async def test_non_terminal_arm_outcome_becomes_error() -> None:
    timeout = Arm(delay=0.01, outcome=SessionOutcome.timeout_warning())
    coordinator = SessionCoordinator(queue=MessageRelayQueue(), watcher=Arm(), timeout=timeout, consumer=Arm())

    outcome = await coordinator.run()

    assert outcome.kind is OutcomeKind.ERROR
    assert outcome.reason == "timeout finished with a non-terminal outcome"


@pytest.mark.asyncio
async def test_cancelling_the_session_cancels_every_arm() -> None:
    arms = [Arm(), Arm(), Arm()]
    queue = MessageRelayQueue()
    coordinator = SessionCoordinator(queue=queue, watcher=arms[0], timeout=arms[1], consumer=arms[2])

    run = asyncio.create_task(coordinator.run())
    await asyncio.sleep(0.01)
    run.cancel()
    with pytest.raises(asyncio.CancelledError):
        await run

    assert all(arm.cancelled for arm in arms)
    assert queue.closed


@pytest.mark.parametrize(
    "kwargs",
    [
        {"thread_id": ""},
        {"self_id": ""},
        {"warning_duration": timedelta(0)},
        {"final_duration": timedelta(seconds=-1)},
    ],
)
def test_session_config_rejects_invalid_values(kwargs: dict[str, object]) -> None:
    values: dict[str, object] = {
        "thread_id": "42",
        "self_id": "bot",
        "warning_duration": timedelta(seconds=5),
        "final_duration": timedelta(seconds=5),
    }
    values.update(kwargs)
    with pytest.raises(ConfigurationError):
        SessionConfig(**values)  # type: ignore[arg-type]


def test_split_history_separates_opening_message() -> None:
    history = [RelayMessage(sender_id="owner", content=text) for text in ("first", "second", "third")]

    opening, previous = split_history(history)

    assert opening.content == "first"
    assert [m.content for m in previous] == ["second", "third"]
    with pytest.raises(ThreadUnavailableError):
        split_history([])
