"""threadrelay command line interface."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Annotated

import typer
from loguru import logger

from threadrelay.config import load_dispatch_settings, load_watch_settings, parse_duration
from threadrelay.errors import ConfigurationError
from threadrelay.logging_utils import LogProfile, configure_logging
from threadrelay.relay import OutcomeKind

app = typer.Typer(name="threadrelay", help="Relay a Discord support thread to an LLM agent.", add_completion=False)

CONFIG_ERROR_EXIT_CODE = 2


def _duration(value: str | None) -> timedelta | None:
    if value is None:
        return None
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def watch(
    thread_id: Annotated[str | None, typer.Option("--thread-id", "-t", help="Thread to provide support in.")] = None,
    api_token: Annotated[str | None, typer.Option("--api-token", "-a", help="Discord API token.")] = None,
    timeout_warning: Annotated[
        str | None, typer.Option("--timeout-warning", help="Inactivity before a warning, e.g. 30m.")
    ] = None,
    timeout: Annotated[
        str | None, typer.Option("--timeout", help="Time after the warning before closing, e.g. 5m.")
    ] = None,
    model: Annotated[str | None, typer.Option("--model", help="Model in provider:model form.")] = None,
    log_profile: Annotated[str, typer.Option("--log-profile", help="default or rich.")] = "default",
) -> None:
    """Supervise one support thread until it closes or times out."""
    from threadrelay.session import watch_thread

    settings = load_watch_settings(
        discord_thread_id=thread_id,
        discord_api_token=api_token,
        timeout_warning=_duration(timeout_warning),
        timeout_final=_duration(timeout),
        model=model,
    )
    configure_logging(profile=_profile(log_profile), level=settings.log_level)
    try:
        outcome = asyncio.run(watch_thread(settings))
    except ConfigurationError as exc:
        logger.error("watch.config.error error={}", exc)
        typer.echo(f"configuration error: {exc}", err=True)
        raise typer.Exit(CONFIG_ERROR_EXIT_CODE) from exc

    typer.echo(str(outcome))
    if outcome.kind is OutcomeKind.ERROR:
        raise typer.Exit(1)


@app.command()
def dispatch(
    coral_server: Annotated[str | None, typer.Option("--coral-server", "-c", help="Orchestration server URL.")] = None,
    api_token: Annotated[str | None, typer.Option("--api-token", "-a", help="Discord API token.")] = None,
    log_profile: Annotated[str, typer.Option("--log-profile", help="default or rich.")] = "default",
) -> None:
    """Start a support session for every new Discord thread."""
    from threadrelay.coral import ThreadDispatcher

    settings = load_dispatch_settings(coral_server=coral_server, discord_api_token=api_token)
    configure_logging(profile=_profile(log_profile), level=settings.log_level)
    try:
        dispatcher = ThreadDispatcher(settings)
    except ConfigurationError as exc:
        typer.echo(f"configuration error: {exc}", err=True)
        raise typer.Exit(CONFIG_ERROR_EXIT_CODE) from exc
    asyncio.run(dispatcher.run())


def _profile(value: str) -> LogProfile:
    if value == "rich":
        return "rich"
    if value != "default":
        raise typer.BadParameter(f"unknown log profile: {value}")
    return "default"
