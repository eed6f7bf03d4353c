"""Reverse proxy that exposes the local theme preview server for iframe embedding."""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response

from themehook.errors import ConfigurationError
from themehook.logging import configure_logging
from themehook.settings import ProxySettings

logger = structlog.get_logger("themehook.proxy")

STRIPPED_HEADERS = frozenset(
    {
        "x-frame-options",
        "content-security-policy",
        "x-content-security-policy",
        # httpx already decoded and de-chunked the body.
        "content-encoding",
        "content-length",
        "transfer-encoding",
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "upgrade",
    }
)


def create_proxy_app(
    preview_port: int = 9292,
    *,
    client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build an app that forwards every request to ``127.0.0.1:preview_port``."""
    upstream = f"http://127.0.0.1:{preview_port}"

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.client.aclose()

    app = FastAPI(
        title="themehook-proxy",
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.client = client or httpx.AsyncClient(
        timeout=30.0,
        follow_redirects=False,
        limits=httpx.Limits(max_connections=50, max_keepalive_connections=10),
    )

    @app.api_route(
        "/{full_path:path}",
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
        include_in_schema=False,
    )
    async def forward(full_path: str, request: Request) -> Response:
        target = f"{upstream}{request.url.path}"
        if request.url.query:
            target = f"{target}?{request.url.query}"
        headers = {
            key: value for key, value in request.headers.items() if key.lower() != "host"
        }
        headers["host"] = f"127.0.0.1:{preview_port}"
        logger.info("Proxying request", method=request.method, path=request.url.path)
        try:
            upstream_response = await app.state.client.request(
                request.method,
                target,
                headers=headers,
                content=await request.body(),
            )
        except httpx.ConnectError:
            logger.error("Preview server not reachable", port=preview_port)
            return PlainTextResponse(
                f"Shopify dev server is not running on port {preview_port}", status_code=503
            )
        except httpx.TimeoutException:
            logger.error("Preview request timed out", path=request.url.path)
            return PlainTextResponse("Request to Shopify dev server timed out", status_code=504)
        except (httpx.RemoteProtocolError, httpx.ReadError):
            logger.error("Preview connection reset", path=request.url.path)
            return PlainTextResponse("Connection to Shopify dev server was reset", status_code=502)
        except httpx.HTTPError as exc:
            logger.error("Proxy error", error=str(exc))
            return PlainTextResponse(f"Proxy error: {exc}", status_code=500)

        response = Response(content=upstream_response.content, status_code=upstream_response.status_code)
        for key, value in upstream_response.headers.multi_items():
            if key.lower() not in STRIPPED_HEADERS:
                response.headers.append(key, value)
        response.headers["X-Frame-Options"] = "ALLOWALL"
        return response

    return app


def run() -> None:
    """Console entrypoint for the preview proxy."""
    import uvicorn

    configure_logging()
    try:
        settings = ProxySettings.from_env()
    except ConfigurationError as exc:
        logger.error("Invalid configuration", error=str(exc))
        sys.exit(1)
    logger.info(
        "Proxy server starting", port=settings.proxy_port, upstream_port=settings.preview_port
    )
    uvicorn.run(
        create_proxy_app(settings.preview_port),
        host="0.0.0.0",
        port=settings.proxy_port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
