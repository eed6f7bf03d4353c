"""Theme listing and download endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends

from themehook.api.deps import get_services
from themehook.models import AcceptedResponse, ThemeDownloadRequest
from themehook.services import Services

router = APIRouter(tags=["themes"])
logger = structlog.get_logger("themehook.api.themes")


@router.get("/health")
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "healthy"}


@router.get("/themes/list", response_model=AcceptedResponse)
async def list_themes(services: Services = Depends(get_services)) -> AcceptedResponse:
    """Accept a theme list request; the list is delivered by webhook."""
    logger.info("List themes request", store=services.settings.shopify_store_url)
    services.tasks.submit(services.themes.send_theme_list(), name="theme-list")
    return AcceptedResponse(
        message="Theme list request accepted. Results will be sent to webhook."
    )


@router.post("/themes/download", response_model=AcceptedResponse)
async def download_theme(
    payload: ThemeDownloadRequest,
    services: Services = Depends(get_services),
) -> AcceptedResponse:
    """Accept a theme download; the workflow's outcome is delivered by webhook."""
    logger.info(
        "Download theme request",
        theme_id=payload.theme_id,
        store=services.settings.shopify_store_url,
    )
    services.tasks.submit(
        services.themes.download_theme(payload.theme_id),
        name=f"theme-download:{payload.theme_id}",
    )
    return AcceptedResponse(
        message=(
            f"Theme download request for {payload.theme_id} accepted. "
            "Results will be sent to webhook."
        )
    )
