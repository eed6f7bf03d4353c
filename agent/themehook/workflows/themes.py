"""Theme listing and the download-and-provision workflow."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import structlog

from themehook.models import ThemeDownloadPayload, ThemeListPayload
from themehook.settings import Settings
from themehook.shopify.cli import ThemeCli
from themehook.shopify.pull import Sleep, pull_with_retry
from themehook.store import EnvironmentStore
from themehook.webhooks import THEME_PATH, WebhookNotifier

logger = structlog.get_logger("themehook.workflows.themes")


class Launcher(Protocol):
    async def launch(self, theme_path: Path) -> object: ...


@dataclass
class ProvisionResult:
    theme_id: str
    env_id: str


class ThemeWorkflows:
    """Background jobs triggered by the theme endpoints.

    Each public ``send_*``/``download_theme`` coroutine reports its outcome
    through exactly one webhook and never raises.
    """

    def __init__(
        self,
        settings: Settings,
        cli: ThemeCli,
        store: EnvironmentStore,
        launcher: Launcher,
        notifier: WebhookNotifier,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._cli = cli
        self._store = store
        self._launcher = launcher
        self._notifier = notifier
        self._sleep = sleep

    async def send_theme_list(self) -> bool:
        """List themes and deliver them to the theme webhook.

        Returns True when the listing itself succeeded.
        """
        try:
            themes = await self._cli.list_themes()
        except Exception as exc:
            logger.exception("Error fetching themes")
            payload = ThemeListPayload(success=False, themes=[], error=str(exc))
            await self._notifier.notify(THEME_PATH, payload.model_dump(exclude_none=True))
            return False
        payload = ThemeListPayload(success=True, themes=themes)
        await self._notifier.notify(THEME_PATH, payload.model_dump(exclude_none=True))
        logger.info("Sent themes to webhook", count=len(themes))
        return True

    async def download_and_provision(self, remote_theme_id: str) -> ProvisionResult:
        """Duplicate, pull, provision and preview a remote theme.

        Steps run strictly in order; the first failure propagates and the
        remaining steps are skipped.
        """
        settings = self._settings
        logger.info("Starting download workflow", theme_id=remote_theme_id)

        new_theme_id = await self._cli.duplicate_theme(remote_theme_id, settings.session_id)

        logger.info(
            "Waiting for theme duplication to propagate",
            new_theme_id=new_theme_id,
            wait_s=settings.theme_duplicate_wait_seconds,
        )
        await self._sleep(settings.theme_duplicate_wait_seconds)

        theme_path = await pull_with_retry(
            self._cli,
            new_theme_id,
            settings.theme_path(new_theme_id),
            settings.theme_pull_max_retries,
            settings.theme_pull_retry_delay_seconds,
            sleep=self._sleep,
        )

        environment = self._store.create(str(theme_path), settings.codex_model)
        logger.info(
            "Codex environment setup complete",
            env_id=environment.env_id,
            model=environment.model,
            yolo_mode=True,
        )

        await self._launcher.launch(theme_path)

        logger.info(
            "Download workflow completed", new_theme_id=new_theme_id, env_id=environment.env_id
        )
        return ProvisionResult(theme_id=new_theme_id, env_id=environment.env_id)

    async def download_theme(self, remote_theme_id: str) -> bool:
        """Run :meth:`download_and_provision` and report the outcome by webhook."""
        structlog.contextvars.bind_contextvars(theme_id=remote_theme_id)
        try:
            try:
                result = await self.download_and_provision(remote_theme_id)
            except Exception as exc:
                logger.exception("Error downloading theme")
                payload = ThemeDownloadPayload(success=False, error=str(exc))
                await self._notifier.notify(THEME_PATH, payload.model_dump(exclude_none=True))
                return False
            payload = ThemeDownloadPayload(
                success=True, theme_id=result.theme_id, env_id=result.env_id
            )
            await self._notifier.notify(THEME_PATH, payload.model_dump(exclude_none=True))
            logger.info("Theme started", new_theme_id=result.theme_id)
            return True
        finally:
            structlog.contextvars.unbind_contextvars("theme_id")
