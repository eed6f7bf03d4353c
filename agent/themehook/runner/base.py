"""Capability interfaces for coding-agent backends.

Workflows only see these protocols; the concrete SDK or CLI types stay inside
the backend implementations.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any, Protocol

from themehook.errors import AgentRunError

# Event type tags emitted by ``codex exec --json``.
THREAD_STARTED = "thread.started"
TURN_STARTED = "turn.started"
TURN_COMPLETED = "turn.completed"
TURN_FAILED = "turn.failed"
ITEM_STARTED = "item.started"
ITEM_UPDATED = "item.updated"
ITEM_COMPLETED = "item.completed"
ERROR = "error"

AgentEvent = dict[str, Any]


@dataclass
class Turn:
    """Result of a non-streaming run."""

    final_response: str
    items: list[dict[str, Any]] = field(default_factory=list)
    usage: dict[str, Any] | None = None


class AgentSession(Protocol):
    """A conversation bound to one working directory."""

    @property
    def thread_id(self) -> str | None: ...

    async def run(
        self,
        prompt: str,
        *,
        model: str | None = None,
        output_schema: dict[str, Any] | None = None,
    ) -> Turn: ...

    def run_streamed(
        self,
        prompt: str,
        *,
        model: str | None = None,
        output_schema: dict[str, Any] | None = None,
    ) -> AsyncIterator[AgentEvent]: ...


class AgentBackend(Protocol):
    """Factory for agent sessions."""

    def start_session(
        self,
        working_directory: str,
        *,
        model: str,
        full_access: bool = False,
        skip_git_repo_check: bool = False,
        thread_id: str | None = None,
    ) -> AgentSession: ...


def event_error_message(event: AgentEvent) -> str:
    """Extract a human-readable message from a ``turn.failed`` or ``error`` event."""
    error = event.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str) and error:
        return error
    return str(event.get("message") or "Agent run failed")


async def collect_turn(events: AsyncIterator[AgentEvent]) -> Turn:
    """Drain an event stream into a :class:`Turn`.

    Raises:
        AgentRunError: The stream carried a ``turn.failed`` or ``error`` event.
    """
    items: list[dict[str, Any]] = []
    final_response = ""
    usage: dict[str, Any] | None = None
    async for event in events:
        kind = event.get("type")
        if kind == ITEM_COMPLETED:
            item = event.get("item") or {}
            items.append(item)
            if item.get("type") == "agent_message":
                final_response = str(item.get("text") or "")
        elif kind == TURN_COMPLETED:
            usage = event.get("usage")
        elif kind in (TURN_FAILED, ERROR):
            raise AgentRunError(event_error_message(event))
    return Turn(final_response=final_response, items=items, usage=usage)
