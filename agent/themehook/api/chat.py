"""Chat endpoints; replies are delivered by webhook."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends

from themehook.api.deps import get_services
from themehook.models import AcceptedResponse, ChatRequest
from themehook.services import Services

router = APIRouter(tags=["chat"])
logger = structlog.get_logger("themehook.api.chat")


@router.post("/chat", response_model=AcceptedResponse)
async def chat(
    payload: ChatRequest,
    services: Services = Depends(get_services),
) -> AcceptedResponse:
    """Run a prompt against an environment; result goes to ``chat``."""
    logger.info(
        "Chat request received",
        env_id=payload.env_id,
        prompt=payload.prompt[:50],
        model=payload.model,
    )
    services.tasks.submit(
        services.chat.chat(payload.env_id, payload.prompt, payload.model),
        name=f"chat:{payload.env_id}",
    )
    return AcceptedResponse(
        message=(
            f"Chat request accepted for environment {payload.env_id}. "
            "Results will be sent to webhook."
        )
    )


@router.post("/chat-streaming", response_model=AcceptedResponse)
async def chat_streaming(
    payload: ChatRequest,
    services: Services = Depends(get_services),
) -> AcceptedResponse:
    """Stream a prompt; each forwarded event goes to ``chat-streaming``."""
    logger.info(
        "Streaming chat request received",
        env_id=payload.env_id,
        prompt=payload.prompt[:50],
        model=payload.model,
    )
    services.tasks.submit(
        services.chat.chat_streaming(payload.env_id, payload.prompt, payload.model),
        name=f"chat-streaming:{payload.env_id}",
    )
    return AcceptedResponse(
        message=(
            f"Streaming chat request accepted for environment {payload.env_id}. "
            "Results will be sent to webhook."
        )
    )
