"""Best-effort webhook delivery to the caller's receiver."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

logger = structlog.get_logger("themehook.webhooks")

THEME_PATH = "theme"
CHAT_PATH = "chat"
CHAT_STREAMING_PATH = "chat-streaming"


class WebhookNotifier:
    """Posts JSON payloads to ``{base_url}/{path}/{session_id}``.

    Delivery is attempted once. Transport failures are logged and swallowed;
    response status codes are not inspected.
    """

    def __init__(
        self,
        base_url: str,
        session_id: str,
        username: str,
        password: str,
        *,
        timeout_s: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._session_id = session_id
        self._auth = httpx.BasicAuth(username, password)
        self._timeout_s = timeout_s
        self._client = client
        self._owns_client = client is None

    def url_for(self, path: str) -> str:
        return f"{self._base_url}/{path}/{self._session_id}"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def notify(self, path: str, payload: dict[str, Any]) -> bool:
        """Send ``payload``; return False if the request never completed."""
        url = self.url_for(path)
        try:
            response = await self._get_client().post(
                url, json=payload, auth=self._auth, timeout=self._timeout_s
            )
        except httpx.HTTPError as exc:
            logger.error(
                "Webhook delivery failed",
                url=url,
                success=payload.get("success"),
                error=str(exc) or type(exc).__name__,
            )
            return False
        logger.info(
            "Webhook delivered",
            url=url,
            status_code=response.status_code,
            success=payload.get("success"),
        )
        return True

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
