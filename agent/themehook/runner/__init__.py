"""Coding-agent backends."""

from __future__ import annotations

from themehook.runner.base import AgentBackend, AgentEvent, AgentSession, Turn
from themehook.runner.codex_cli import CodexCliBackend, CodexCliSession

__all__ = [
    "AgentBackend",
    "AgentEvent",
    "AgentSession",
    "CodexCliBackend",
    "CodexCliSession",
    "Turn",
]
