"""Tests for the chat and streaming chat jobs."""

from __future__ import annotations

import pytest
from conftest import FakeAgentBackend, WebhookRecorder

from themehook.services import Services
from themehook.workflows.chat import should_forward

STREAM = [
    {"type": "thread.started", "thread_id": "t-1"},
    {"type": "turn.started"},
    {"type": "item.started", "item": {"id": "i0", "type": "reasoning", "text": ""}},
    {"type": "item.completed", "item": {"id": "i0", "type": "reasoning", "text": "thinking"}},
    {"type": "item.completed", "item": {"id": "i1", "type": "command_execution", "command": "ls"}},
    {"type": "item.completed", "item": {"id": "i2", "type": "agent_message", "text": "Updated header"}},
    {"type": "turn.completed", "usage": {"input_tokens": 10, "output_tokens": 5}},
]


def _provision(services: Services, backend: FakeAgentBackend, events: list[dict]) -> str:
    backend.events = events
    return services.store.create("/srv/themes/999", "gpt-5.1-codex-max").env_id


class TestShouldForward:
    @pytest.mark.parametrize(
        "event",
        [
            {"type": "thread.started", "thread_id": "t"},
            {"type": "turn.completed", "usage": {}},
            {"type": "item.completed", "item": {"type": "agent_message", "text": "hi"}},
            {"type": "item.completed", "item": {"type": "reasoning", "text": "hmm"}},
        ],
    )
    def test_forwarded(self, event: dict) -> None:
        assert should_forward(event)

    @pytest.mark.parametrize(
        "event",
        [
            {"type": "turn.started"},
            {"type": "item.started", "item": {"type": "agent_message"}},
            {"type": "item.updated", "item": {"type": "reasoning"}},
            {"type": "item.completed", "item": {"type": "file_change"}},
            {"type": "item.completed"},
            {"type": "something.new"},
        ],
    )
    def test_dropped(self, event: dict) -> None:
        assert not should_forward(event)


@pytest.mark.anyio
async def test_streaming_numbers_forwarded_events_consecutively(
    services: Services, backend: FakeAgentBackend, recorder: WebhookRecorder
) -> None:
    env_id = _provision(
        services,
        backend,
        [
            {"type": "thread.started", "thread_id": "t-1"},
            {"type": "item.completed", "item": {"type": "agent_message", "text": "Done"}},
            {"type": "turn.completed", "usage": {}},
        ],
    )

    forwarded = await services.chat.chat_streaming(env_id, "Change header color")

    assert forwarded == 3
    assert recorder.paths == ["/callbacks/chat-streaming/sess-42"] * 3
    payloads = recorder.payloads
    assert [p["event_number"] for p in payloads] == [1, 2, 3]
    assert [p["type"] for p in payloads] == ["thread.started", "item.completed", "turn.completed"]
    assert all(p["success"] is True and p["env_id"] == env_id for p in payloads)
    assert all(p["timestamp"].endswith("Z") for p in payloads)
    assert payloads[0]["thread_id"] == "t-1"
    assert payloads[1]["item"] == {"type": "agent_message", "text": "Done"}


@pytest.mark.anyio
async def test_streaming_skips_unforwarded_events(
    services: Services, backend: FakeAgentBackend, recorder: WebhookRecorder
) -> None:
    env_id = _provision(services, backend, STREAM)

    assert await services.chat.chat_streaming(env_id, "go") == 4

    assert [p["event_number"] for p in recorder.payloads] == [1, 2, 3, 4]
    kinds = [p.get("item", {}).get("type", p["type"]) for p in recorder.payloads]
    assert kinds == ["thread.started", "reasoning", "agent_message", "turn.completed"]


@pytest.mark.anyio
async def test_streaming_turn_failure_sends_failure_after_forwarded_events(
    services: Services, backend: FakeAgentBackend, recorder: WebhookRecorder
) -> None:
    env_id = _provision(
        services,
        backend,
        [
            {"type": "thread.started", "thread_id": "t-1"},
            {"type": "turn.failed", "error": {"message": "model overloaded"}},
            {"type": "turn.completed"},
        ],
    )

    assert await services.chat.chat_streaming(env_id, "go") == 1

    assert len(recorder.payloads) == 2
    failure = recorder.payloads[-1]
    assert failure["success"] is False
    assert failure["env_id"] == env_id
    assert failure["error"] == "model overloaded"
    assert "event_number" not in failure


@pytest.mark.anyio
async def test_streaming_unknown_environment_sends_single_failure(
    services: Services, recorder: WebhookRecorder
) -> None:
    assert await services.chat.chat_streaming("nope", "go") == 0

    assert len(recorder.payloads) == 1
    assert recorder.payloads[0]["success"] is False
    assert recorder.payloads[0]["error"] == "Environment not found: nope"


@pytest.mark.anyio
async def test_chat_posts_final_response_and_items(
    services: Services, backend: FakeAgentBackend, recorder: WebhookRecorder
) -> None:
    env_id = _provision(services, backend, STREAM)

    assert await services.chat.chat(env_id, "Change header color", model="o4-mini") is True

    assert recorder.paths == ["/callbacks/chat/sess-42"]
    payload = recorder.payloads[0]
    assert payload["success"] is True
    assert payload["env_id"] == env_id
    assert payload["response"] == "Updated header"
    assert [item["id"] for item in payload["items"]] == ["i0", "i1", "i2"]
    session = services.store.get(env_id).session
    assert session.prompts == [("Change header color", "o4-mini")]


@pytest.mark.anyio
async def test_chat_unknown_environment_reports_not_found(
    services: Services, recorder: WebhookRecorder
) -> None:
    assert await services.chat.chat("missing", "hi") is False

    assert recorder.paths == ["/callbacks/chat/sess-42"]
    assert recorder.payloads == [
        {"success": False, "env_id": "missing", "error": "Environment not found: missing"}
    ]


@pytest.mark.anyio
async def test_chat_agent_error_event_reports_failure(
    services: Services, backend: FakeAgentBackend, recorder: WebhookRecorder
) -> None:
    env_id = _provision(services, backend, [{"type": "error", "message": "stream disconnected"}])

    assert await services.chat.chat(env_id, "hi") is False

    assert recorder.payloads[0]["error"] == "stream disconnected"
