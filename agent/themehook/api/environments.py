"""Inspection, removal and direct runs of provisioned environments."""

from __future__ import annotations

from contextlib import contextmanager

import structlog
from fastapi import APIRouter, Depends

from themehook.api.deps import get_services
from themehook.api.errors import raise_http_error
from themehook.errors import AgentRunError
from themehook.models import EnvironmentRunRequest
from themehook.services import Services

router = APIRouter(prefix="/codex", tags=["environments"])
logger = structlog.get_logger("themehook.api.environments")


@contextmanager
def _env_logging_context(env_id: str):
    structlog.contextvars.bind_contextvars(env_id=env_id)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars("env_id")


@router.get("/environments", response_model=dict)
async def list_environments(services: Services = Depends(get_services)) -> dict:
    """List all provisioned environments."""
    environments = [env.info().model_dump() for env in services.store.list()]
    logger.info("Listed environments", count=len(environments))
    return {"success": True, "environments": environments, "count": len(environments)}


@router.get("/environment/{env_id}", response_model=dict)
async def get_environment(env_id: str, services: Services = Depends(get_services)) -> dict:
    """Fetch one environment by id."""
    with _env_logging_context(env_id):
        environment = services.store.get(env_id)
        if environment is None:
            raise_http_error("NOT_FOUND", "Environment not found", 404)
        return {"success": True, "environment": environment.info().model_dump()}


@router.delete("/environment/{env_id}", response_model=dict)
async def remove_environment(env_id: str, services: Services = Depends(get_services)) -> dict:
    """Drop an environment from the registry."""
    with _env_logging_context(env_id):
        if not services.store.remove(env_id):
            raise_http_error("NOT_FOUND", "Environment not found", 404)
        return {"success": True, "message": "Environment removed"}


@router.post("/environment/{env_id}/run", response_model=dict)
async def run_environment(
    env_id: str,
    payload: EnvironmentRunRequest,
    services: Services = Depends(get_services),
) -> dict:
    """Run a prompt and wait for the turn to finish."""
    with _env_logging_context(env_id):
        environment = services.store.get(env_id)
        if environment is None:
            raise_http_error("NOT_FOUND", "Environment not found", 404)
        logger.info("Running prompt on environment", prompt=payload.prompt[:50])
        try:
            turn = await environment.session.run(
                payload.prompt, model=payload.model, output_schema=payload.output_schema
            )
        except (AgentRunError, OSError) as exc:
            logger.exception("Error running prompt on environment")
            raise_http_error("AGENT_ERROR", str(exc), 502)
        return {
            "success": True,
            "env_id": env_id,
            "response": turn.final_response,
            "items": turn.items,
        }
