"""Republic-driven completion engine for thread support replies."""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger
from republic import LLM, Tool, ToolAutoResult
from republic.tape import InMemoryTapeStore, Tape

from threadrelay.errors import CompletionError
from threadrelay.gateway.base import SentMessage

CONTINUE_PROMPT = "Continue the task."
RESPOND_TOOL_NAME = "send_discord_message"
EXTRA_HEADERS = {"X-Title": "threadrelay"}


@dataclass(frozen=True)
class EngineSettings:
    model: str
    api_key: str | None
    api_base: str | None
    max_steps: int
    max_tokens: int
    timeout_seconds: int | None


@dataclass(frozen=True)
class _StepOutcome:
    kind: str
    text: str = ""
    error: str | None = None


def resolve_step(output: ToolAutoResult) -> _StepOutcome:
    if output.kind == "text":
        return _StepOutcome(kind="text", text=output.text or "")
    if output.kind == "tools" or output.tool_calls or output.tool_results:
        return _StepOutcome(kind="continue")
    if output.error is None:
        return _StepOutcome(kind="error", error="tool_auto_error: unknown")
    error_kind = getattr(output.error.kind, "value", str(output.error.kind))
    return _StepOutcome(kind="error", error=f"{error_kind}: {output.error.message}")


def build_llm(settings: EngineSettings) -> LLM:
    return LLM(
        settings.model,
        api_key=settings.api_key,
        api_base=settings.api_base,
        tape_store=InMemoryTapeStore(),
    )


class RepublicEngine:
    """Run one tool-using model turn per relay batch on a per-thread tape.

    The model only reaches the user through the ``send_discord_message`` tool;
    plain text it returns ends the turn and is logged.
    """

    def __init__(
        self,
        *,
        settings: EngineSettings,
        system_prompt: str,
        send: Callable[[str], Awaitable[SentMessage]],
        tape_name: str,
        llm: LLM | None = None,
    ) -> None:
        self._settings = settings
        self._system_prompt = system_prompt
        self._send = send
        self._llm = llm or build_llm(settings)
        self._tape: Tape = self._llm.tape(tape_name)
        self._tools = [
            Tool.from_callable(
                self._send_discord_message,
                name=RESPOND_TOOL_NAME,
                description="Sends a message to the Discord thread.",
            )
        ]

    async def respond(self, prompt: str) -> None:
        next_prompt = prompt
        for step in range(1, self._settings.max_steps + 1):
            start = time.monotonic()
            try:
                output = await self._run_tools_once(next_prompt)
            except TimeoutError as exc:
                raise CompletionError(f"model_timeout: no response within {self._settings.timeout_seconds}s") from exc

            outcome = resolve_step(output)
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.info("engine.step step={} status={} elapsed_ms={}", step, outcome.kind, elapsed_ms)
            if outcome.kind == "text":
                if outcome.text.strip():
                    logger.debug("engine.hidden_text text={}", outcome.text[:200])
                return
            if outcome.kind == "continue":
                next_prompt = CONTINUE_PROMPT
                continue
            raise CompletionError(outcome.error or "unknown model error")

        raise CompletionError(f"max_steps_reached={self._settings.max_steps}")

    async def _run_tools_once(self, prompt: str) -> ToolAutoResult:
        kwargs: dict[str, Any] = {
            "prompt": prompt,
            "system_prompt": self._system_prompt,
            "max_tokens": self._settings.max_tokens,
            "tools": self._tools,
            "extra_headers": EXTRA_HEADERS,
        }
        async with asyncio.timeout(self._settings.timeout_seconds):
            return await self._tape.run_tools_async(**kwargs)

    async def _send_discord_message(self, content: str) -> str:
        sent = await self._send(content)
        return json.dumps({"id": sent.id, "timestamp": sent.timestamp.isoformat()})
