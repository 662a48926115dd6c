from __future__ import annotations

import pytest
from typer.testing import CliRunner

from threadrelay.cli import app
from threadrelay.errors import ThreadUnavailableError
from threadrelay.relay.events import SessionOutcome

runner = CliRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DISCORD_API_TOKEN", "DISCORD_THREAD_ID", "DISCORD_TIMEOUT_WARNING", "DISCORD_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("threadrelay.cli.configure_logging", lambda **_: None)


def test_watch_prints_outcome_tag(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = {}

    async def fake_watch_thread(settings):
        seen["settings"] = settings
        return SessionOutcome.timeout_fired()

    monkeypatch.setattr("threadrelay.session.watch_thread", fake_watch_thread)

    result = runner.invoke(app, ["watch", "--thread-id", "42", "--api-token", "t", "--timeout-warning", "10m"])

    assert result.exit_code == 0
    assert "timeout_fired" in result.output
    assert seen["settings"].discord_thread_id == "42"
    assert seen["settings"].timeout_warning.total_seconds() == 600


def test_watch_exits_non_zero_on_error_outcome(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_watch_thread(_settings):
        return SessionOutcome.error("watcher: boom")

    monkeypatch.setattr("threadrelay.session.watch_thread", fake_watch_thread)

    result = runner.invoke(app, ["watch", "--thread-id", "42", "--api-token", "t"])

    assert result.exit_code == 1
    assert "error: watcher: boom" in result.output


def test_watch_reports_configuration_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_watch_thread(_settings):
        raise ThreadUnavailableError("thread is archived or locked")

    monkeypatch.setattr("threadrelay.session.watch_thread", fake_watch_thread)

    result = runner.invoke(app, ["watch", "--thread-id", "42", "--api-token", "t"])

    assert result.exit_code == 2


def test_watch_rejects_bad_duration() -> None:
    result = runner.invoke(app, ["watch", "--timeout", "forever"])

    assert result.exit_code != 0
