"""Tests for the iframe-friendly preview proxy."""

from __future__ import annotations

import httpx
import pytest

from themehook import proxy
from themehook.proxy import create_proxy_app


async def _call(upstream_handler, method: str = "GET", path: str = "/", **kwargs) -> httpx.Response:
    upstream = httpx.AsyncClient(transport=httpx.MockTransport(upstream_handler))
    app = create_proxy_app(9292, client=upstream)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://proxy") as client:
        response = await client.request(method, path, **kwargs)
    await upstream.aclose()
    return response


@pytest.mark.anyio
async def test_forwards_path_query_and_body() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, text="created")

    response = await _call(handler, "POST", "/cart/add.js?section=header", content=b"id=1")

    assert response.status_code == 201
    assert response.text == "created"
    request = seen[0]
    assert str(request.url) == "http://127.0.0.1:9292/cart/add.js?section=header"
    assert request.headers["host"] == "127.0.0.1:9292"
    assert request.content == b"id=1"


@pytest.mark.anyio
async def test_strips_framing_headers_and_allows_embedding() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            html="<html></html>",
            headers={
                "X-Frame-Options": "DENY",
                "Content-Security-Policy": "frame-ancestors 'none'",
                "X-Custom": "kept",
            },
        )

    response = await _call(handler)

    assert response.headers["x-frame-options"] == "ALLOWALL"
    assert "content-security-policy" not in response.headers
    assert response.headers["x-custom"] == "kept"


@pytest.mark.anyio
async def test_keeps_multiple_set_cookie_headers() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, headers=[("Set-Cookie", "a=1"), ("Set-Cookie", "b=2")], text="ok"
        )

    response = await _call(handler)

    assert response.headers.get_list("set-cookie") == ["a=1", "b=2"]


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("exc", "status"),
    [
        (httpx.ConnectError, 503),
        (httpx.ReadTimeout, 504),
        (httpx.RemoteProtocolError, 502),
        (httpx.ReadError, 502),
        (httpx.DecodingError, 500),
    ],
)
async def test_upstream_failures_map_to_status(exc, status: int) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc("boom", request=request)

    response = await _call(handler)

    assert response.status_code == status


@pytest.mark.anyio
async def test_strips_hop_by_hop_headers() -> None:
    hop_by_hop = {
        "Keep-Alive": "timeout=5",
        "Upgrade": "h2c",
        "TE": "trailers",
        "Trailer": "Expires",
        "Proxy-Authenticate": "Basic",
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="ok", headers={**hop_by_hop, "Cache-Control": "no-store"})

    response = await _call(handler)

    for name in hop_by_hop:
        assert name.lower() not in response.headers
    assert response.headers["cache-control"] == "no-store"


def test_run_exits_on_invalid_port(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PROXY_PORT", "not-a-port")

    with pytest.raises(SystemExit) as excinfo:
        proxy.run()

    assert excinfo.value.code == 1
