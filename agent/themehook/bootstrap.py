"""One-shot startup job: send the current theme list to the webhook."""

from __future__ import annotations

import asyncio
import sys

import structlog

from themehook.errors import ConfigurationError
from themehook.logging import configure_logging
from themehook.services import Services, build_services
from themehook.settings import Settings

logger = structlog.get_logger("themehook.bootstrap")


async def bootstrap(services: Services) -> bool:
    """Deliver the theme list; return False if listing failed."""
    logger.info("Starting bootstrap: fetching and sending theme list to webhook")
    try:
        ok = await services.themes.send_theme_list()
    finally:
        await services.notifier.aclose()
    logger.info("Bootstrap completed", success=ok)
    return ok


def main() -> None:
    configure_logging()
    try:
        settings = Settings.from_env()
    except ConfigurationError as exc:
        logger.error("Bootstrap failed", error=str(exc), missing=exc.missing)
        sys.exit(1)
    if not asyncio.run(bootstrap(build_services(settings))):
        sys.exit(1)


if __name__ == "__main__":
    main()
