"""Exception hierarchy shared by the CLI adapters, workflows and API."""

from __future__ import annotations


class ThemeHookError(Exception):
    """Base class for all errors raised by themehook."""


class ConfigurationError(ThemeHookError):
    """Raised at startup when required configuration is missing or invalid."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = missing or []


class CliError(ThemeHookError):
    """Base class for failures reported by an external command-line tool."""


class CliOutputEmpty(CliError):
    """Both stdout and stderr of a CLI invocation were empty."""


class CliOutputMalformed(CliError):
    """CLI output was present but not the structured data we expected."""


class DuplicationFailed(CliError):
    """Theme duplication produced no usable theme identifier."""


class PullExhausted(ThemeHookError):
    """Every pull attempt left the local theme directory empty."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"Failed to pull theme after {attempts} attempts - directory remains empty"
        )
        self.attempts = attempts


class PreviewDirectoryMissing(ThemeHookError):
    """The pulled theme directory disappeared before the preview could start."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Theme directory not found: {path}")
        self.path = path


class EnvironmentNotFound(ThemeHookError):
    """No provisioned environment is registered under the requested id."""

    def __init__(self, env_id: str) -> None:
        super().__init__(f"Environment not found: {env_id}")
        self.env_id = env_id


class AgentRunError(ThemeHookError):
    """The coding agent reported a failed turn or exited abnormally."""
