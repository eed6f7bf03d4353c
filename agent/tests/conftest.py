"""Shared fixtures and in-memory fakes for themehook tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from themehook.models import ThemeSummary
from themehook.process import CommandResult
from themehook.runner.base import AgentEvent, Turn, collect_turn
from themehook.services import Services
from themehook.settings import Settings
from themehook.store import EnvironmentStore
from themehook.tasks import TaskSupervisor
from themehook.threads import ThreadRegistry
from themehook.webhooks import WebhookNotifier
from themehook.workflows.chat import ChatWorkflows
from themehook.workflows.themes import ThemeWorkflows


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class FakeThemeCli:
    """ThemeCli double that records calls and populates directories on demand.

    ``populate_on`` is the 0-based pull attempt that writes a file; ``None``
    means no pull ever produces content.
    """

    def __init__(
        self,
        *,
        themes: list[ThemeSummary] | None = None,
        duplicate_result: str | Exception = "999",
        populate_on: int | None = 0,
        pull_returncode: int = 0,
    ) -> None:
        self.themes = themes or []
        self.duplicate_result = duplicate_result
        self.populate_on = populate_on
        self.pull_returncode = pull_returncode
        self.list_calls = 0
        self.duplicate_calls: list[tuple[str, str]] = []
        self.pull_calls: list[tuple[str, Path]] = []

    async def list_themes(self) -> list[ThemeSummary]:
        self.list_calls += 1
        return list(self.themes)

    async def duplicate_theme(self, theme_id: str, name: str) -> str:
        self.duplicate_calls.append((theme_id, name))
        if isinstance(self.duplicate_result, Exception):
            raise self.duplicate_result
        return self.duplicate_result

    async def pull_theme(self, theme_id: str, path: Path) -> CommandResult:
        attempt = len(self.pull_calls)
        self.pull_calls.append((theme_id, path))
        if self.populate_on is not None and attempt >= self.populate_on:
            (path / "layout").mkdir(exist_ok=True)
            (path / "layout" / "theme.liquid").write_text("{{ content_for_layout }}")
        return CommandResult(returncode=self.pull_returncode, stdout="", stderr="")


class FakeAgentSession:
    """AgentSession double that replays a scripted list of events."""

    def __init__(self, working_directory: str, model: str, events: list[AgentEvent]) -> None:
        self.working_directory = working_directory
        self.model = model
        self.events = events
        self.prompts: list[tuple[str, str | None]] = []
        self._thread_id: str | None = None

    @property
    def thread_id(self) -> str | None:
        return self._thread_id

    async def run(
        self,
        prompt: str,
        *,
        model: str | None = None,
        output_schema: dict[str, Any] | None = None,
    ) -> Turn:
        return await collect_turn(self.run_streamed(prompt, model=model))

    async def run_streamed(
        self,
        prompt: str,
        *,
        model: str | None = None,
        output_schema: dict[str, Any] | None = None,
    ):
        self.prompts.append((prompt, model))
        for event in self.events:
            if event.get("type") == "thread.started":
                self._thread_id = event.get("thread_id")
            yield dict(event)


class FakeAgentBackend:
    def __init__(self, events: list[AgentEvent] | None = None) -> None:
        self.events = events or []
        self.started: list[dict[str, Any]] = []

    def start_session(
        self,
        working_directory: str,
        *,
        model: str,
        full_access: bool = False,
        skip_git_repo_check: bool = False,
        thread_id: str | None = None,
    ) -> FakeAgentSession:
        self.started.append(
            {
                "working_directory": working_directory,
                "model": model,
                "full_access": full_access,
                "skip_git_repo_check": skip_git_repo_check,
                "thread_id": thread_id,
            }
        )
        session = FakeAgentSession(working_directory, model, self.events)
        session._thread_id = thread_id
        return session


class FakeLauncher:
    def __init__(self) -> None:
        self.launched: list[Path] = []

    async def launch(self, theme_path: Path) -> None:
        self.launched.append(theme_path)


class WebhookRecorder:
    """httpx.MockTransport handler capturing every webhook request."""

    def __init__(self, *, fail: bool = False, status_code: int = 200) -> None:
        self.requests: list[httpx.Request] = []
        self.fail = fail
        self.status_code = status_code

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail:
            raise httpx.ConnectError("receiver down", request=request)
        return httpx.Response(self.status_code, json={"ok": True})

    @property
    def payloads(self) -> list[dict]:
        return [json.loads(request.content) for request in self.requests]

    @property
    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


ENV = {
    "SHOPIFY_STORE_URL": "demo-store.myshopify.com",
    "SHOPIFY_THEME_PASSWORD": "shptka_theme_secret",
    "SHOPIFY_STORE_PASSWORD": "storefront",
    "SESSION_ID": "sess-42",
    "WEBHOOK_URL": "https://hooks.example.test/callbacks",
    "SERVICE_USERNAME": "svc",
    "SERVICE_PASSWORD": "hunter2",
}


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings.from_env(
        {
            **ENV,
            "THEME_DOWNLOAD_PATH": str(tmp_path / "themes"),
            "THEME_PULL_MAX_RETRIES": "3",
            "THEME_PULL_RETRY_DELAY_SECONDS": "10",
            "THEME_DUPLICATE_WAIT_SECONDS": "10",
        }
    )


@pytest.fixture
def recorder() -> WebhookRecorder:
    return WebhookRecorder()


@pytest.fixture
def notifier(settings: Settings, recorder: WebhookRecorder) -> WebhookNotifier:
    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return WebhookNotifier(
        settings.webhook_url,
        settings.session_id,
        settings.webhook_username,
        settings.webhook_password,
        client=client,
    )


@pytest.fixture
def backend() -> FakeAgentBackend:
    return FakeAgentBackend()


@pytest.fixture
def store(backend: FakeAgentBackend) -> EnvironmentStore:
    return EnvironmentStore(backend)


@pytest.fixture
def fake_cli() -> FakeThemeCli:
    return FakeThemeCli()


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def services(
    settings: Settings,
    fake_cli: FakeThemeCli,
    backend: FakeAgentBackend,
    store: EnvironmentStore,
    launcher: FakeLauncher,
    notifier: WebhookNotifier,
    sleeper: RecordingSleep,
) -> Services:
    return Services(
        settings=settings,
        store=store,
        notifier=notifier,
        tasks=TaskSupervisor(),
        themes=ThemeWorkflows(settings, fake_cli, store, launcher, notifier, sleep=sleeper),
        chat=ChatWorkflows(store, notifier),
        threads=ThreadRegistry(backend),
    )
