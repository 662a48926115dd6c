"""Orchestration server session requests for new support threads."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from threadrelay.config import DispatchSettings, format_duration
from threadrelay.errors import SessionLaunchError

SESSIONS_PATH = "/api/v1/sessions"
SUPPORT_AGENT = ("discord", "0.1.0")
DOCS_AGENT = ("ca-context7", "0.1.0")
DOCS_AGENT_NAME = "ctx-coral"
DOCS_LIBRARY_ID = "websites/coralprotocol"


def _option(value: str) -> dict[str, str]:
    return {"type": "string", "value": value}


class SessionLauncher:
    """Ask the orchestration server to run a support agent for one thread."""

    def __init__(self, settings: DispatchSettings, *, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self._client = client or httpx.AsyncClient(base_url=settings.coral_server, timeout=30.0)

    async def aclose(self) -> None:
        await self._client.aclose()

    def support_agent_request(self, thread_id: str) -> dict[str, Any]:
        options = {
            "DISCORD_API_TOKEN": _option(self.settings.discord_api_token),
            "OPENROUTER_API_KEY": _option(self.settings.openrouter_api_key),
            "DISCORD_THREAD_ID": _option(thread_id),
        }
        if self.settings.timeout_warning is not None:
            options["DISCORD_TIMEOUT_WARNING"] = _option(format_duration(self.settings.timeout_warning))
        if self.settings.timeout_final is not None:
            options["DISCORD_TIMEOUT"] = _option(format_duration(self.settings.timeout_final))

        name, version = SUPPORT_AGENT
        return {
            "id": {"name": name, "version": version},
            "name": name,
            "description": None,
            "options": options,
            "provider": {"type": "local", "runtime": "executable"},
            "blocking": True,
            "customToolAccess": [],
            "coralPlugins": [],
            "systemPrompt": None,
        }

    def docs_agent_request(self) -> dict[str, Any]:
        name, version = DOCS_AGENT
        return {
            "id": {"name": name, "version": version},
            "name": DOCS_AGENT_NAME,
            "description": "An agent with access to all the Coral documentation",
            "options": {
                "ENABLE_TELEMETRY": _option("true"),
                "LIBRARY_ID": _option(DOCS_LIBRARY_ID),
                "OPENROUTER_API_KEY": _option(self.settings.openrouter_api_key),
            },
            "provider": {"type": "local", "runtime": "docker"},
            "blocking": True,
            "customToolAccess": [],
            "coralPlugins": [],
            "systemPrompt": None,
        }

    def session_request(self, thread_id: str) -> dict[str, Any]:
        docs = self.docs_agent_request()
        support = self.support_agent_request(thread_id)
        return {
            "agentGraphRequest": {
                "agents": [docs, support],
                "groups": [[docs["name"], support["name"]]],
                "customTools": {},
            },
            "applicationId": self.settings.application_id,
            "privacyKey": self.settings.privacy_key,
            "sessionId": None,
        }

    async def create_session(self, thread_id: str) -> str:
        try:
            response = await self._client.post(SESSIONS_PATH, json=self.session_request(thread_id))
        except httpx.HTTPError as exc:
            raise SessionLaunchError(f"could not reach {self.settings.coral_server}: {exc}") from exc
        if response.is_error:
            raise SessionLaunchError(f"unexpected response {response.status_code}: {response.text}")
        session_id = str(response.json().get("sessionId", ""))
        logger.info("coral.session.created session_id={} thread_id={}", session_id, thread_id)
        return session_id
