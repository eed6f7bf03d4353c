"""Adapter around the Shopify theme CLI.

Every call is treated as slow and unreliable: output is text that has to be
parsed, and an exit status of zero does not mean the command had any effect.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import ValidationError

from themehook.errors import CliOutputEmpty, CliOutputMalformed, DuplicationFailed
from themehook.models import ThemeSummary
from themehook.process import CommandResult, run_command

logger = structlog.get_logger("themehook.shopify.cli")


class ThemeCli(Protocol):
    """Capability interface consumed by the theme workflows."""

    async def list_themes(self) -> list[ThemeSummary]: ...

    async def duplicate_theme(self, theme_id: str, name: str) -> str: ...

    async def pull_theme(self, theme_id: str, path: Path) -> CommandResult: ...


class ShopifyThemeCli:
    """ThemeCli implementation that shells out to ``shopify theme``."""

    def __init__(
        self,
        store_url: str,
        theme_password: str,
        *,
        shopify_bin: str = "shopify",
        pull_timeout_s: float = 300,
    ) -> None:
        self._store_url = store_url
        self._password = theme_password
        self._bin = shopify_bin
        self._pull_timeout_s = pull_timeout_s

    def _base(self, subcommand: str) -> list[str]:
        return [
            self._bin,
            "theme",
            subcommand,
            "--store",
            self._store_url,
            "--password",
            self._password,
        ]

    async def list_themes(self) -> list[ThemeSummary]:
        """List the store's themes.

        Raises:
            CliOutputEmpty: Neither stdout nor stderr carried any output.
            CliOutputMalformed: Output was not a JSON list of themes.
        """
        logger.info("Listing themes", store=self._store_url)
        result = await run_command([*self._base("list"), "--json"])
        output = result.output()
        if not output:
            raise CliOutputEmpty("No output from Shopify CLI")
        try:
            raw = json.loads(output)
        except json.JSONDecodeError as exc:
            raise CliOutputMalformed(f"Invalid JSON from theme list: {exc}") from exc
        if not isinstance(raw, list):
            raise CliOutputMalformed(f"Unexpected theme list output: {output[:200]}")
        try:
            themes = [
                ThemeSummary(name=item["name"], id=str(item["id"]), role=item["role"])
                for item in raw
            ]
        except (KeyError, TypeError, ValidationError) as exc:
            raise CliOutputMalformed(f"Invalid theme entry: {exc}") from exc
        logger.info("Listed themes", count=len(themes))
        return themes

    async def duplicate_theme(self, theme_id: str, name: str) -> str:
        """Duplicate ``theme_id`` under ``name`` and return the new theme id.

        Raises:
            DuplicationFailed: Output was empty, not JSON, or had no theme id.
        """
        logger.info("Duplicating theme", theme_id=theme_id, name=name)
        result = await run_command(
            [*self._base("duplicate"), "--theme", theme_id, "--force", "--name", name, "--json"]
        )
        output = result.output()
        if not output:
            raise DuplicationFailed("No output from theme duplicate command")
        try:
            parsed = json.loads(output)
        except json.JSONDecodeError as exc:
            raise DuplicationFailed(
                f"Theme duplication failed, unparseable output {output}"
            ) from exc
        theme = parsed.get("theme") if isinstance(parsed, dict) else None
        new_id = theme.get("id") if isinstance(theme, dict) else None
        if new_id in (None, ""):
            raise DuplicationFailed(f"Theme duplication failed, theme output {output}")
        logger.info("Theme duplicated", theme_id=theme_id, new_theme_id=str(new_id))
        return str(new_id)

    async def pull_theme(self, theme_id: str, path: Path) -> CommandResult:
        """Pull ``theme_id`` into ``path``.

        The result is informational only; callers decide success by looking
        at the directory.
        """
        logger.info("Pulling theme", theme_id=theme_id, path=str(path))
        return await run_command(
            [*self._base("pull"), "--theme", theme_id, "--path", str(path), "--force"],
            timeout=self._pull_timeout_s,
        )
