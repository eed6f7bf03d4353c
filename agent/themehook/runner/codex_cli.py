"""Agent backend that drives the Codex CLI in ``exec --json`` mode."""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

import structlog

from themehook.errors import AgentRunError
from themehook.runner.base import (
    THREAD_STARTED,
    TURN_COMPLETED,
    TURN_FAILED,
    AgentEvent,
    Turn,
    collect_turn,
)

logger = structlog.get_logger("themehook.runner.codex_cli")

_STREAM_LIMIT = 16 * 1024 * 1024


class CodexCliSession:
    """One Codex conversation bound to a working directory.

    No process exists between turns. The first turn starts a new thread and
    records its id from the ``thread.started`` event; later turns run
    ``codex exec resume <thread_id>`` so the conversation carries over.
    Passing ``thread_id`` attaches the session to an existing thread.
    """

    def __init__(
        self,
        codex_bin: str,
        working_directory: str,
        *,
        model: str,
        full_access: bool,
        skip_git_repo_check: bool,
        thread_id: str | None = None,
    ) -> None:
        self._bin = codex_bin
        self.working_directory = working_directory
        self.model = model
        self.full_access = full_access
        self.skip_git_repo_check = skip_git_repo_check
        self._thread_id = thread_id

    @property
    def thread_id(self) -> str | None:
        return self._thread_id

    def build_command(self, prompt: str, *, model: str | None, schema_path: str | None) -> list[str]:
        cmd = [self._bin, "exec", "--json", "--cd", self.working_directory]
        cmd += ["--model", model or self.model]
        if self.full_access:
            cmd += ["--sandbox", "danger-full-access", "-c", 'approval_policy="never"']
        if self.skip_git_repo_check:
            cmd.append("--skip-git-repo-check")
        if schema_path:
            cmd += ["--output-schema", schema_path]
        if self._thread_id:
            cmd += ["resume", self._thread_id]
        cmd.append(prompt)
        return cmd

    async def run(
        self,
        prompt: str,
        *,
        model: str | None = None,
        output_schema: dict[str, Any] | None = None,
    ) -> Turn:
        """Run one turn to completion and return the aggregated result."""
        logger.info("Running Codex prompt", prompt=prompt[:50], model=model or self.model)
        async with aclosing(
            self.run_streamed(prompt, model=model, output_schema=output_schema)
        ) as events:
            turn = await collect_turn(events)
        logger.info(
            "Codex prompt completed",
            final_response=turn.final_response[:100],
            items_count=len(turn.items),
        )
        return turn

    async def run_streamed(
        self,
        prompt: str,
        *,
        model: str | None = None,
        output_schema: dict[str, Any] | None = None,
    ) -> AsyncIterator[AgentEvent]:
        """Yield Codex events as they are printed.

        Raises:
            AgentRunError: Codex exited non-zero without reporting the turn's
                outcome in its event stream.
            OSError: The Codex executable could not be launched.
        """
        schema_path: str | None = None
        if output_schema is not None:
            fd, schema_path = tempfile.mkstemp(prefix="themehook-schema-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(output_schema, handle)

        cmd = self.build_command(prompt, model=model, schema_path=schema_path)
        logger.info(
            "Starting Codex exec",
            cwd=self.working_directory,
            resume=self._thread_id,
            full_access=self.full_access,
        )
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=self.working_directory,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            limit=_STREAM_LIMIT,
        )
        stderr_task = asyncio.create_task(proc.stderr.read())
        outcome_seen = False
        try:
            async for raw in proc.stdout:
                line = raw.decode("utf-8", errors="replace").strip()
                if not line:
                    continue
                try:
                    event = json.loads(line)
                except json.JSONDecodeError:
                    logger.debug("Skipping non-JSON Codex output", line=line[:200])
                    continue
                if not isinstance(event, dict):
                    continue
                kind = event.get("type")
                if kind == THREAD_STARTED and event.get("thread_id"):
                    self._thread_id = str(event["thread_id"])
                elif kind in (TURN_COMPLETED, TURN_FAILED):
                    outcome_seen = True
                yield event

            returncode = await proc.wait()
            stderr = (await stderr_task).decode("utf-8", errors="replace").strip()
            if returncode != 0 and not outcome_seen:
                logger.error("Codex exec failed", returncode=returncode, stderr=stderr[-500:])
                raise AgentRunError(stderr[-500:] or f"Codex exited with status {returncode}")
        finally:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            if not stderr_task.done():
                stderr_task.cancel()
            if schema_path:
                try:
                    os.remove(schema_path)
                except OSError:
                    pass


class CodexCliBackend:
    """AgentBackend that hands out :class:`CodexCliSession` objects."""

    def __init__(self, codex_bin: str = "codex") -> None:
        self._bin = codex_bin

    def start_session(
        self,
        working_directory: str,
        *,
        model: str,
        full_access: bool = False,
        skip_git_repo_check: bool = False,
        thread_id: str | None = None,
    ) -> CodexCliSession:
        logger.info(
            "Starting Codex session",
            working_directory=working_directory,
            model=model,
            full_access=full_access,
            skip_git_repo_check=skip_git_repo_check,
            resume=thread_id,
        )
        return CodexCliSession(
            self._bin,
            working_directory,
            model=model,
            full_access=full_access,
            skip_git_repo_check=skip_git_repo_check,
            thread_id=thread_id,
        )
