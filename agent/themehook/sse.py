"""Helpers for producing server-sent event (SSE) responses."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import aclosing

import structlog
from starlette.responses import StreamingResponse

from themehook.errors import AgentRunError
from themehook.runner.base import TURN_COMPLETED, AgentEvent

logger = structlog.get_logger("themehook.sse")


def sse_event(data: dict) -> str:
    """Serialize an event payload into SSE wire format."""
    payload = json.dumps(data, separators=(",", ":"))
    return f"data: {payload}\n\n"


async def sse_stream(events: AsyncIterator[AgentEvent]) -> AsyncIterator[bytes]:
    """Relay agent events as UTF-8 SSE frames.

    A failure after the response has started is sent as a final ``error``
    frame, since the status code can no longer change.
    """
    try:
        async with aclosing(events):
            async for event in events:
                if event.get("type") == TURN_COMPLETED:
                    logger.info("Codex stream completed")
                yield sse_event(event).encode("utf-8")
    except (AgentRunError, OSError) as exc:
        logger.error("Error streaming Codex prompt", error=str(exc))
        yield sse_event({"type": "error", "message": str(exc)}).encode("utf-8")


def stream_response(events: AsyncIterator[AgentEvent]) -> StreamingResponse:
    """Build a StreamingResponse for an agent event stream."""
    return StreamingResponse(
        sse_stream(events),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
