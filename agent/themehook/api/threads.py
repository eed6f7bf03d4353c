"""Ad-hoc Codex threads: create, run, stream, resume, delete and quick-run."""

from __future__ import annotations

import os

import structlog
from fastapi import APIRouter, Depends
from starlette.responses import StreamingResponse

from themehook.api.deps import get_services
from themehook.api.errors import raise_http_error
from themehook.errors import AgentRunError
from themehook.models import (
    QuickRunRequest,
    ThreadCreateRequest,
    ThreadResumeRequest,
    ThreadRunRequest,
    ThreadStreamRequest,
)
from themehook.services import Services
from themehook.sse import stream_response
from themehook.threads import ThreadEntry, ThreadOptions

router = APIRouter(prefix="/codex", tags=["threads"])
logger = structlog.get_logger("themehook.api.threads")


def _options(payload: ThreadCreateRequest, services: Services) -> ThreadOptions:
    return ThreadOptions(
        working_directory=payload.working_directory or os.getcwd(),
        model=payload.model or services.settings.codex_model,
        skip_git_repo_check=payload.skip_git_repo_check,
        yolo_mode=payload.yolo_mode,
    )


def _require_thread(services: Services, thread_id: str) -> ThreadEntry:
    entry = services.threads.get(thread_id)
    if entry is None:
        raise_http_error("NOT_FOUND", "Thread not found", 404)
    return entry


@router.post("/thread", response_model=dict)
async def create_thread(
    payload: ThreadCreateRequest,
    services: Services = Depends(get_services),
) -> dict:
    """Open a new thread and register it under a generated id."""
    options = _options(payload, services)
    logger.info(
        "Creating new Codex thread",
        working_directory=options.working_directory,
        model=options.model,
        yolo_mode=options.yolo_mode,
    )
    entry = services.threads.start(options)
    return {
        "success": True,
        "thread_id": entry.thread_key,
        "config": {
            "working_directory": options.working_directory,
            "skip_git_repo_check": options.skip_git_repo_check,
            "model": options.model,
            "yolo_mode": options.yolo_mode,
        },
    }


@router.post("/run", response_model=dict)
async def run_thread(
    payload: ThreadRunRequest,
    services: Services = Depends(get_services),
) -> dict:
    """Run a prompt on a registered thread and wait for the turn."""
    entry = _require_thread(services, payload.thread_id)
    logger.info("Running Codex prompt", thread_id=payload.thread_id, prompt=payload.prompt[:50])
    try:
        turn = await entry.session.run(
            payload.prompt, model=payload.model, output_schema=payload.output_schema
        )
    except (AgentRunError, OSError) as exc:
        logger.exception("Error running Codex prompt", thread_id=payload.thread_id)
        raise_http_error("AGENT_ERROR", str(exc), 502)
    return {
        "success": True,
        "thread_id": payload.thread_id,
        "response": turn.final_response,
        "items": turn.items,
    }


@router.post("/stream")
async def stream_thread(
    payload: ThreadStreamRequest,
    services: Services = Depends(get_services),
) -> StreamingResponse:
    """Run a prompt and relay every agent event as server-sent events."""
    entry = _require_thread(services, payload.thread_id)
    logger.info("Starting Codex stream", thread_id=payload.thread_id, prompt=payload.prompt[:50])
    return stream_response(entry.session.run_streamed(payload.prompt, model=payload.model))


@router.post("/resume", response_model=dict)
async def resume_thread(
    payload: ThreadResumeRequest,
    services: Services = Depends(get_services),
) -> dict:
    """Register a new thread id that continues an existing Codex session."""
    logger.info("Resuming Codex thread", session_id=payload.session_id)
    options = ThreadOptions(
        working_directory=payload.working_directory or os.getcwd(),
        model=payload.model or services.settings.codex_model,
    )
    entry = services.threads.start(options, resume=payload.session_id)
    return {"success": True, "thread_id": entry.thread_key, "session_id": payload.session_id}


@router.delete("/thread/{thread_id}", response_model=dict)
async def delete_thread(thread_id: str, services: Services = Depends(get_services)) -> dict:
    if not services.threads.remove(thread_id):
        raise_http_error("NOT_FOUND", "Thread not found", 404)
    return {"success": True, "message": "Thread deleted"}


@router.get("/threads", response_model=dict)
async def list_threads(services: Services = Depends(get_services)) -> dict:
    threads = services.threads.keys()
    return {"success": True, "threads": threads, "count": len(threads)}


@router.post("/quick-run", response_model=dict)
async def quick_run(
    payload: QuickRunRequest,
    services: Services = Depends(get_services),
) -> dict:
    """Open a throwaway thread, run one prompt and return the turn."""
    options = _options(payload, services)
    logger.info("Quick run Codex prompt", prompt=payload.prompt[:50], model=options.model)
    session = services.threads.open_session(options)
    try:
        turn = await session.run(payload.prompt, output_schema=payload.output_schema)
    except (AgentRunError, OSError) as exc:
        logger.exception("Error in quick run")
        raise_http_error("AGENT_ERROR", str(exc), 502)
    return {"success": True, "response": turn.final_response, "items": turn.items}
