"""Wiring of the long-lived service objects shared by the API."""

from __future__ import annotations

from dataclasses import dataclass

from themehook.runner.codex_cli import CodexCliBackend
from themehook.settings import Settings
from themehook.shopify.cli import ShopifyThemeCli
from themehook.shopify.preview import PreviewLauncher
from themehook.store import EnvironmentStore
from themehook.tasks import TaskSupervisor
from themehook.threads import ThreadRegistry
from themehook.webhooks import WebhookNotifier
from themehook.workflows.chat import ChatWorkflows
from themehook.workflows.themes import ThemeWorkflows


@dataclass
class Services:
    """Everything a request handler may touch, built once per process."""

    settings: Settings
    store: EnvironmentStore
    notifier: WebhookNotifier
    tasks: TaskSupervisor
    themes: ThemeWorkflows
    chat: ChatWorkflows
    threads: ThreadRegistry


def build_services(settings: Settings) -> Services:
    """Construct the production object graph from validated settings."""
    cli = ShopifyThemeCli(
        settings.shopify_store_url,
        settings.shopify_theme_password,
        shopify_bin=settings.shopify_bin,
        pull_timeout_s=settings.theme_pull_timeout_seconds,
    )
    backend = CodexCliBackend(settings.codex_bin)
    store = EnvironmentStore(
        backend,
        skip_git_repo_check=settings.codex_skip_git_repo_check,
    )
    notifier = WebhookNotifier(
        settings.webhook_url,
        settings.session_id,
        settings.webhook_username,
        settings.webhook_password,
        timeout_s=settings.webhook_timeout_seconds,
    )
    launcher = PreviewLauncher(
        store_url=settings.shopify_store_url,
        theme_password=settings.shopify_theme_password,
        store_password=settings.shopify_store_password,
        port=settings.preview_port,
        shopify_bin=settings.shopify_bin,
    )
    return Services(
        settings=settings,
        store=store,
        notifier=notifier,
        tasks=TaskSupervisor(),
        themes=ThemeWorkflows(settings, cli, store, launcher, notifier),
        chat=ChatWorkflows(store, notifier),
        threads=ThreadRegistry(backend),
    )
