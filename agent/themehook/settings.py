"""Environment-backed service configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from themehook.errors import ConfigurationError

DEFAULT_CODEX_MODEL = "gpt-5.1-codex-max"

_REQUIRED = {
    "SHOPIFY_STORE_URL": "shopify_store_url",
    "SHOPIFY_THEME_PASSWORD": "shopify_theme_password",
    "SHOPIFY_STORE_PASSWORD": "shopify_store_password",
    "SESSION_ID": "session_id",
    "WEBHOOK_URL": "webhook_url",
    "SERVICE_USERNAME": "webhook_username",
    "SERVICE_PASSWORD": "webhook_password",
}

_OPTIONAL = {
    "THEME_DOWNLOAD_PATH": "theme_download_path",
    "PORT": "port",
    "THEME_PULL_MAX_RETRIES": "theme_pull_max_retries",
    "THEME_PULL_RETRY_DELAY_SECONDS": "theme_pull_retry_delay_seconds",
    "THEME_DUPLICATE_WAIT_SECONDS": "theme_duplicate_wait_seconds",
    "THEME_PULL_TIMEOUT_SECONDS": "theme_pull_timeout_seconds",
    "WEBHOOK_TIMEOUT_SECONDS": "webhook_timeout_seconds",
    "CODEX_MODEL": "codex_model",
    "CODEX_BIN": "codex_bin",
    "CODEX_SKIP_GIT_REPO_CHECK": "codex_skip_git_repo_check",
    "SHOPIFY_BIN": "shopify_bin",
    "PREVIEW_PORT": "preview_port",
}


class Settings(BaseModel):
    """Validated runtime configuration.

    Built once at startup with :meth:`from_env` and passed to every component
    that needs it.
    """

    shopify_store_url: str
    shopify_theme_password: str
    shopify_store_password: str
    session_id: str
    webhook_url: str
    webhook_username: str
    webhook_password: str

    theme_download_path: str = "./themes"
    port: int = Field(8000, gt=0, lt=65536)
    theme_pull_max_retries: int = Field(3, ge=0)
    theme_pull_retry_delay_seconds: float = Field(10, ge=0)
    theme_duplicate_wait_seconds: float = Field(10, ge=0)
    theme_pull_timeout_seconds: float = Field(300, gt=0)
    webhook_timeout_seconds: float = Field(10, gt=0)
    codex_model: str = DEFAULT_CODEX_MODEL
    codex_bin: str = "codex"
    codex_skip_git_repo_check: bool = False
    shopify_bin: str = "shopify"
    preview_port: int = Field(9292, gt=0, lt=65536)

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, *, dotenv: bool = True
    ) -> "Settings":
        """Load settings from the process environment.

        Args:
            environ: Mapping to read instead of ``os.environ`` (tests).
            dotenv: Load a ``.env`` file into ``os.environ`` first.

        Raises:
            ConfigurationError: If a required variable is absent or a value
                cannot be coerced to its declared type.
        """
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        missing = [name for name in _REQUIRED if not environ.get(name, "").strip()]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}",
                missing=missing,
            )

        values: dict[str, str] = {}
        for name, field in {**_REQUIRED, **_OPTIONAL}.items():
            raw = environ.get(name)
            if raw is not None and raw.strip():
                values[field] = raw.strip()
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    def download_root(self) -> Path:
        """Absolute directory that pulled themes are written under."""
        return Path(self.theme_download_path).expanduser().resolve()

    def theme_path(self, theme_id: str) -> Path:
        return self.download_root() / theme_id


class ProxySettings(BaseModel):
    """Ports for the standalone preview proxy, which needs no Shopify credentials."""

    proxy_port: int = Field(3005, gt=0, lt=65536)
    preview_port: int = Field(9292, gt=0, lt=65536)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ProxySettings":
        """Read ``PROXY_PORT`` and ``PREVIEW_PORT``.

        Raises:
            ConfigurationError: If a port is not an integer in range.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ
        values = {
            field: environ[name].strip()
            for name, field in (("PROXY_PORT", "proxy_port"), ("PREVIEW_PORT", "preview_port"))
            if environ.get(name, "").strip()
        }
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid proxy configuration: {exc}") from exc


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"


def log_format() -> str:
    return os.environ.get("LOG_FORMAT", "json").strip().lower() or "json"
