"""FastAPI application factory and server entrypoint."""

from __future__ import annotations

import sys
import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from themehook import __version__
from themehook.api import router as api_router
from themehook.errors import ConfigurationError
from themehook.logging import configure_logging
from themehook.services import Services, build_services
from themehook.settings import Settings

logger = structlog.get_logger("themehook.http")


def create_app(services: Services | None = None) -> FastAPI:
    """Build the API application.

    Args:
        services: Pre-built service graph; when omitted it is built from the
            environment, which fails fast on missing configuration.
    """
    if services is None:
        services = build_services(Settings.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Theme manager starting", port=services.settings.port)
        yield
        await services.notifier.aclose()

    app = FastAPI(title="themehook", version=__version__, lifespan=lifespan)
    app.state.services = services

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        request_id = str(uuid.uuid4())
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        start_time = time.monotonic()
        logger.info("Request started")
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.monotonic() - start_time) * 1000
            logger.exception("Request failed", duration_ms=round(duration_ms, 2))
            structlog.contextvars.clear_contextvars()
            raise
        duration_ms = (time.monotonic() - start_time) * 1000
        logger.info(
            "Request completed",
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )
        structlog.contextvars.clear_contextvars()
        return response

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Convert HTTPException into the error envelope."""
        if isinstance(exc.detail, dict) and "error" in exc.detail:
            return JSONResponse(status_code=exc.status_code, content=exc.detail)
        code_map = {
            401: "UNAUTHORIZED",
            404: "NOT_FOUND",
            405: "METHOD_NOT_ALLOWED",
            422: "VALIDATION_ERROR",
            500: "INTERNAL_ERROR",
        }
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": code_map.get(exc.status_code, "INTERNAL_ERROR"),
                    "message": str(exc.detail),
                    "details": None,
                }
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Convert validation errors into the error envelope."""
        return JSONResponse(
            status_code=422,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Invalid request",
                    "details": jsonable_errors(exc),
                }
            },
        )

    app.include_router(api_router)
    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Strip non-serializable context from pydantic validation errors."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


def run() -> None:
    """Console entrypoint: validate configuration, then serve the API."""
    import uvicorn

    configure_logging()
    try:
        settings = Settings.from_env()
    except ConfigurationError as exc:
        logger.error("Invalid configuration", error=str(exc), missing=exc.missing)
        sys.exit(1)
    app = create_app(build_services(settings))
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
