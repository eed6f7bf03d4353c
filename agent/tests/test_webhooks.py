"""Tests for best-effort webhook delivery."""

from __future__ import annotations

import base64

import httpx
import pytest
from conftest import WebhookRecorder

from themehook.webhooks import WebhookNotifier


def _notifier(recorder: WebhookRecorder, base_url: str = "https://hooks.test/cb") -> WebhookNotifier:
    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return WebhookNotifier(base_url, "sess-1", "svc", "hunter2", client=client)


@pytest.mark.anyio
async def test_posts_json_to_path_and_session() -> None:
    recorder = WebhookRecorder()
    notifier = _notifier(recorder)

    delivered = await notifier.notify("chat", {"success": True, "env_id": "e"})

    assert delivered is True
    request = recorder.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://hooks.test/cb/chat/sess-1"
    assert request.headers["content-type"] == "application/json"
    assert recorder.payloads == [{"success": True, "env_id": "e"}]


@pytest.mark.anyio
async def test_sends_basic_auth_header() -> None:
    recorder = WebhookRecorder()
    await _notifier(recorder).notify("theme", {"success": True})

    expected = base64.b64encode(b"svc:hunter2").decode("ascii")
    assert recorder.requests[0].headers["authorization"] == f"Basic {expected}"


@pytest.mark.anyio
async def test_trailing_slash_on_base_url_is_ignored() -> None:
    recorder = WebhookRecorder()
    await _notifier(recorder, "https://hooks.test/cb/").notify("theme", {"success": True})

    assert recorder.paths == ["/cb/theme/sess-1"]


@pytest.mark.anyio
async def test_transport_failure_is_swallowed_and_not_retried() -> None:
    recorder = WebhookRecorder(fail=True)

    delivered = await _notifier(recorder).notify("theme", {"success": False, "error": "x"})

    assert delivered is False
    assert len(recorder.requests) == 1


@pytest.mark.anyio
async def test_non_2xx_response_is_not_inspected() -> None:
    recorder = WebhookRecorder(status_code=500)

    delivered = await _notifier(recorder).notify("theme", {"success": True})

    assert delivered is True
    assert len(recorder.requests) == 1


@pytest.mark.anyio
async def test_timeout_is_swallowed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow receiver", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    notifier = WebhookNotifier("https://hooks.test", "s", "u", "p", client=client)

    assert await notifier.notify("chat", {"success": True}) is False


@pytest.mark.anyio
async def test_aclose_leaves_injected_client_open() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(WebhookRecorder()))
    notifier = WebhookNotifier("https://hooks.test", "s", "u", "p", client=client)

    await notifier.aclose()

    assert not client.is_closed
    await client.aclose()
