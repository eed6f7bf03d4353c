"""Bounded, fixed-interval retry loop around ``shopify theme pull``."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path

import structlog

from themehook.errors import PullExhausted
from themehook.shopify.cli import ThemeCli

logger = structlog.get_logger("themehook.shopify.pull")

Sleep = Callable[[float], Awaitable[None]]


async def pull_with_retry(
    cli: ThemeCli,
    theme_id: str,
    local_path: Path,
    max_retries: int,
    retry_delay_s: float,
    *,
    sleep: Sleep = asyncio.sleep,
) -> Path:
    """Pull a theme until ``local_path`` holds at least one entry.

    Makes ``max_retries + 1`` attempts, sleeping ``retry_delay_s`` before each
    attempt after the first. The CLI's own exit status is logged but never
    decides the outcome; only the directory listing does. Content left by a
    failed attempt is not cleaned up before the next one.

    Raises:
        PullExhausted: The directory was still empty after the last attempt.
    """
    local_path.mkdir(parents=True, exist_ok=True)
    total = max_retries + 1
    for attempt in range(total):
        if attempt > 0:
            logger.info(
                "Retrying theme pull",
                theme_id=theme_id,
                attempt=attempt,
                max_retries=max_retries,
                delay_s=retry_delay_s,
            )
            await sleep(retry_delay_s)

        logger.info("Pulling theme", theme_id=theme_id, attempt=attempt + 1, total=total)
        result = await cli.pull_theme(theme_id, local_path)
        if not result.ok:
            logger.warning(
                "Theme pull command reported failure",
                theme_id=theme_id,
                returncode=result.returncode,
                timed_out=result.timed_out,
                stderr=result.stderr.strip()[-500:],
            )

        listing = sorted(entry.name for entry in local_path.iterdir())
        logger.info("Theme directory listed", theme_id=theme_id, files=len(listing))
        if listing:
            logger.info("Theme pulled", theme_id=theme_id, path=str(local_path))
            return local_path

        logger.warning("Pull completed but directory is empty", theme_id=theme_id)

    raise PullExhausted(total)
