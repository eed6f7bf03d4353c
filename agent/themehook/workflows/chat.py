"""Chat jobs that run prompts against provisioned environments."""

from __future__ import annotations

from contextlib import aclosing
from datetime import datetime, timezone

import structlog

from themehook.errors import AgentRunError, EnvironmentNotFound
from themehook.models import ChatPayload
from themehook.runner.base import (
    ERROR,
    ITEM_COMPLETED,
    THREAD_STARTED,
    TURN_COMPLETED,
    TURN_FAILED,
    AgentEvent,
    event_error_message,
)
from themehook.store import EnvironmentStore, ProvisionedEnvironment
from themehook.webhooks import CHAT_PATH, CHAT_STREAMING_PATH, WebhookNotifier

logger = structlog.get_logger("themehook.workflows.chat")

FORWARDED_ITEM_TYPES = frozenset({"agent_message", "reasoning"})
FORWARDED_EVENT_TYPES = frozenset({THREAD_STARTED, TURN_COMPLETED})


def should_forward(event: AgentEvent) -> bool:
    """Decide whether a streamed agent event is worth a webhook.

    Only thread start, turn completion, and completed agent messages or
    reasoning items are relayed.
    """
    kind = event.get("type")
    if kind == ITEM_COMPLETED:
        item = event.get("item")
        return isinstance(item, dict) and item.get("type") in FORWARDED_ITEM_TYPES
    return kind in FORWARDED_EVENT_TYPES


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ChatWorkflows:
    """Background chat jobs; outcomes are reported only by webhook."""

    def __init__(self, store: EnvironmentStore, notifier: WebhookNotifier) -> None:
        self._store = store
        self._notifier = notifier

    def _environment(self, env_id: str) -> ProvisionedEnvironment:
        environment = self._store.get(env_id)
        if environment is None:
            raise EnvironmentNotFound(env_id)
        return environment

    async def chat(self, env_id: str, prompt: str, model: str | None = None) -> bool:
        """Run one prompt and send the final response to the chat webhook."""
        with structlog.contextvars.bound_contextvars(env_id=env_id):
            logger.info("Starting chat", prompt=prompt[:50])
            try:
                environment = self._environment(env_id)
                turn = await environment.session.run(prompt, model=model)
            except Exception as exc:
                logger.exception("Error in chat")
                payload = ChatPayload(success=False, env_id=env_id, error=str(exc))
                await self._notifier.notify(CHAT_PATH, payload.model_dump(exclude_none=True))
                return False
            payload = ChatPayload(
                success=True, env_id=env_id, response=turn.final_response, items=turn.items
            )
            await self._notifier.notify(CHAT_PATH, payload.model_dump(exclude_none=True))
            logger.info("Chat completed and webhook sent")
            return True

    async def chat_streaming(self, env_id: str, prompt: str, model: str | None = None) -> int:
        """Stream a prompt, sending one webhook per forwarded event.

        Returns the number of events forwarded. A failure at any point sends a
        single failure webhook after whatever events were already forwarded.
        """
        with structlog.contextvars.bound_contextvars(env_id=env_id):
            logger.info("Starting streaming chat", prompt=prompt[:50])
            event_count = 0
            try:
                environment = self._environment(env_id)
                events = environment.session.run_streamed(prompt, model=model)
                async with aclosing(events):
                    async for event in events:
                        kind = event.get("type")
                        if kind in (TURN_FAILED, ERROR):
                            raise AgentRunError(event_error_message(event))
                        if not should_forward(event):
                            continue
                        event_count += 1
                        payload = {
                            "success": True,
                            "env_id": env_id,
                            "event_number": event_count,
                            "timestamp": _timestamp(),
                            **event,
                        }
                        await self._notifier.notify(CHAT_STREAMING_PATH, payload)
                        logger.debug(
                            "Streaming event webhook sent", type=kind, event_number=event_count
                        )
            except Exception as exc:
                logger.exception("Error in streaming chat")
                await self._notifier.notify(
                    CHAT_STREAMING_PATH,
                    {
                        "success": False,
                        "env_id": env_id,
                        "error": str(exc),
                        "timestamp": _timestamp(),
                    },
                )
                return event_count
            logger.info("Streaming chat completed", total_events=event_count)
            return event_count
