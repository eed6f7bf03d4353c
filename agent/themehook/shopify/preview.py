"""Launches ``shopify theme dev`` for a pulled theme directory."""

from __future__ import annotations

import asyncio
import os
import shlex
from pathlib import Path

import structlog

from themehook.errors import PreviewDirectoryMissing

logger = structlog.get_logger("themehook.shopify.preview")


class PreviewLauncher:
    """Starts long-lived preview servers detached from the triggering request.

    Exits are logged; processes are never restarted.
    """

    def __init__(
        self,
        *,
        store_url: str,
        theme_password: str,
        store_password: str,
        port: int = 9292,
        shopify_bin: str = "shopify",
        pty_wrapper: str = "script",
    ) -> None:
        self._store_url = store_url
        self._theme_password = theme_password
        self._store_password = store_password
        self._port = port
        self._shopify_bin = shopify_bin
        self._pty_wrapper = pty_wrapper
        self._watchers: dict[str, asyncio.Task] = {}

    def dev_command(self, theme_path: Path) -> list[str]:
        """Build the argv that runs ``shopify theme dev`` under a pseudo-TTY."""
        inner = shlex.join(
            [
                self._shopify_bin,
                "theme",
                "dev",
                "--store",
                self._store_url,
                "--path",
                str(theme_path),
                "--password",
                self._theme_password,
                "--port",
                str(self._port),
                "--store-password",
                self._store_password,
            ]
        )
        return [self._pty_wrapper, "-q", "-c", inner, "/dev/null"]

    async def launch(self, theme_path: Path) -> asyncio.subprocess.Process:
        """Start the preview server for ``theme_path``.

        Raises:
            PreviewDirectoryMissing: ``theme_path`` is not an existing directory.
        """
        if not theme_path.is_dir():
            raise PreviewDirectoryMissing(str(theme_path))
        logger.info(
            "Theme directory present",
            path=str(theme_path),
            files=sum(1 for _ in theme_path.iterdir()),
        )

        env = dict(os.environ)
        env.update(
            {
                "SHOPIFY_CLI_THEME_TOKEN": self._theme_password,
                "SHOPIFY_CLI_NO_ANALYTICS": "1",
                "CI": "1",
            }
        )
        proc = await asyncio.create_subprocess_exec(
            *self.dev_command(theme_path),
            cwd=str(theme_path),
            env=env,
        )
        key = str(theme_path)
        self._watchers[key] = asyncio.create_task(self._watch(key, proc))
        logger.info("Theme dev server started", path=key, pid=proc.pid, port=self._port)
        return proc

    async def _watch(self, key: str, proc: asyncio.subprocess.Process) -> None:
        code = await proc.wait()
        if self._watchers.get(key) is asyncio.current_task():
            self._watchers.pop(key, None)
        logger.info("Theme dev process exited", path=key, exit_code=code)
