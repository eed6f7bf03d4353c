"""In-memory registry of ad-hoc Codex threads opened through the API.

Unlike provisioned environments, threads are keyed by a generated id and may
point at any working directory.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from themehook.runner.base import AgentBackend, AgentSession

logger = structlog.get_logger("themehook.threads")


def new_thread_key() -> str:
    return f"thread_{uuid.uuid4().hex[:12]}"


@dataclass
class ThreadOptions:
    working_directory: str
    model: str
    skip_git_repo_check: bool = True
    yolo_mode: bool = False


@dataclass
class ThreadEntry:
    thread_key: str
    options: ThreadOptions
    created_at: datetime
    session: AgentSession


class ThreadRegistry:
    """Maps generated thread keys to agent sessions until removed."""

    def __init__(self, backend: AgentBackend) -> None:
        self._backend = backend
        self._threads: dict[str, ThreadEntry] = {}

    def open_session(self, options: ThreadOptions, *, resume: str | None = None) -> AgentSession:
        """Start a session without registering it.

        ``yolo_mode`` maps to full access with approvals disabled.
        """
        return self._backend.start_session(
            options.working_directory,
            model=options.model,
            full_access=options.yolo_mode,
            skip_git_repo_check=options.skip_git_repo_check,
            thread_id=resume,
        )

    def start(self, options: ThreadOptions, *, resume: str | None = None) -> ThreadEntry:
        entry = ThreadEntry(
            thread_key=new_thread_key(),
            options=options,
            created_at=datetime.now(timezone.utc),
            session=self.open_session(options, resume=resume),
        )
        self._threads[entry.thread_key] = entry
        logger.info(
            "Thread registered",
            thread_key=entry.thread_key,
            working_directory=options.working_directory,
            model=options.model,
            yolo_mode=options.yolo_mode,
            resume=resume,
        )
        return entry

    def get(self, thread_key: str) -> ThreadEntry | None:
        return self._threads.get(thread_key)

    def keys(self) -> list[str]:
        return list(self._threads)

    def remove(self, thread_key: str) -> bool:
        if self._threads.pop(thread_key, None) is None:
            return False
        logger.info("Deleted thread", thread_key=thread_key)
        return True
