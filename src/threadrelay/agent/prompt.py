"""System prompt for the thread support agent."""

from __future__ import annotations

from collections.abc import Sequence

from threadrelay.relay.events import RelayMessage, ThreadHandle

SUPPORT_PROMPT = """\
You are a support agent. A user opened a Discord support thread and you must help them.

=== Discord rules ===
1. Discord is an informal platform, keep the conversation friendly and short.
2. Prioritise questions from the owner of the thread.

=== Support rules ===
1. If it looks like the user has not finished asking their question, do not respond yet.
2. Use the "send_discord_message" tool to answer. No other output is visible to the user.
"""


def render_preamble(thread: ThreadHandle, previous: Sequence[RelayMessage] = ()) -> str:
    lines = [
        SUPPORT_PROMPT,
        "=== Support thread information ===",
        f'Thread name: "{thread.title}"',
        f"Thread owner ID: {thread.owner_id}",
    ]
    if previous:
        lines.append("")
        lines.append("=== Previous messages ===")
        lines.extend(message.render() for message in previous)
    return "\n".join(lines)
