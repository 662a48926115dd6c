"""Configuration management for threadrelay."""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MODEL = "openrouter:openai/gpt-4.1-mini"
DEFAULT_CORAL_SERVER = "http://localhost:5555"
DEFAULT_TIMEOUT_WARNING = timedelta(minutes=30)
DEFAULT_TIMEOUT = timedelta(minutes=5)

_DURATION_UNITS: dict[str, float] = {
    "ms": 0.001,
    "s": 1,
    "sec": 1,
    "secs": 1,
    "m": 60,
    "min": 60,
    "mins": 60,
    "h": 3600,
    "hr": 3600,
    "hrs": 3600,
    "d": 86400,
    "days": 86400,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*([a-z]+)")


def parse_duration(value: str) -> timedelta:
    """Parse ``"90"``, ``"5m"`` or ``"1h 30m"`` into a timedelta."""
    text = value.strip().lower()
    if not text:
        raise ValueError("empty duration")
    try:
        return timedelta(seconds=float(text))
    except ValueError:
        pass

    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if text[position : match.start()].strip():
            raise ValueError(f"invalid duration: {value!r}")
        number, unit = match.groups()
        if unit not in _DURATION_UNITS:
            raise ValueError(f"unknown duration unit {unit!r} in {value!r}")
        total += float(number) * _DURATION_UNITS[unit]
        position = match.end()
    if position == 0 or text[position:].strip():
        raise ValueError(f"invalid duration: {value!r}")
    return timedelta(seconds=total)


def format_duration(value: timedelta) -> str:
    """Render a timedelta in the compact ``1h 30m 5s`` form accepted by :func:`parse_duration`."""
    seconds = int(value.total_seconds())
    if seconds <= 0:
        return "0s"
    parts: list[str] = []
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60), ("s", 1)):
        amount, seconds = divmod(seconds, size)
        if amount:
            parts.append(f"{amount}{unit}")
    return " ".join(parts)


class WatchSettings(BaseSettings):
    """Settings for supervising one Discord support thread."""

    model_config = SettingsConfigDict(
        env_prefix="THREADRELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
        protected_namespaces=(),
    )

    discord_api_token: str = Field(default="", validation_alias="DISCORD_API_TOKEN")
    discord_thread_id: str = Field(default="", validation_alias="DISCORD_THREAD_ID")
    timeout_warning: timedelta = Field(default=DEFAULT_TIMEOUT_WARNING, validation_alias="DISCORD_TIMEOUT_WARNING")
    timeout_final: timedelta = Field(default=DEFAULT_TIMEOUT, validation_alias="DISCORD_TIMEOUT")
    proxy: str | None = None

    model: str = DEFAULT_MODEL
    api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
    api_base: str | None = None
    max_tokens: int = 512
    max_steps: int = 8
    model_timeout_seconds: int | None = 90
    batch_size: int = 16

    log_level: str = "INFO"

    @field_validator("timeout_warning", "timeout_final", mode="before")
    @classmethod
    def _parse_durations(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_duration(value)
        return value


class DispatchSettings(BaseSettings):
    """Settings for the bot that starts one orchestration session per new thread."""

    model_config = SettingsConfigDict(
        env_prefix="THREADRELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    coral_server: str = Field(default=DEFAULT_CORAL_SERVER, validation_alias="CORAL_SERVER")
    discord_api_token: str = Field(default="", validation_alias="DISCORD_API_TOKEN")
    openrouter_api_key: str = Field(default="", validation_alias="OPENROUTER_API_KEY")
    timeout_warning: timedelta | None = Field(default=None, validation_alias="DISCORD_TIMEOUT_WARNING")
    timeout_final: timedelta | None = Field(default=None, validation_alias="DISCORD_TIMEOUT")
    application_id: str = "threadrelay"
    privacy_key: str = "unused"
    proxy: str | None = None

    log_level: str = "INFO"

    @field_validator("timeout_warning", "timeout_final", mode="before")
    @classmethod
    def _parse_durations(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_duration(value)
        return value


def load_watch_settings(**overrides: Any) -> WatchSettings:
    """Load settings from the environment, then apply non-empty overrides."""
    settings = WatchSettings()
    updates = {key: value for key, value in overrides.items() if value is not None}
    if updates:
        settings = settings.model_copy(update=updates)
    return settings


def load_dispatch_settings(**overrides: Any) -> DispatchSettings:
    settings = DispatchSettings()
    updates = {key: value for key, value in overrides.items() if value is not None}
    if updates:
        settings = settings.model_copy(update=updates)
    return settings
