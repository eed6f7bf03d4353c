"""structlog processor that masks credentials before they reach the log sink."""

from __future__ import annotations

import re
from typing import Any

REDACTED = "[REDACTED]"

_SENSITIVE_KEYS = ("authorization", "password", "token", "secret", "api_key")

_INLINE_PATTERNS = (
    re.compile(r"(?i)(authorization:\s*(?:basic|bearer)\s+)[^\s\"',]+"),
    re.compile(r"(?i)\b((?:basic|bearer)\s+)[A-Za-z0-9._~+/=-]{8,}"),
    re.compile(r"(?i)(--(?:password|store-password)[=\s]+)[^\s\"',]+"),
)


def _is_sensitive(key: object) -> bool:
    lowered = str(key).lower().replace("-", "_")
    return any(
        lowered == marker or lowered.endswith(f"_{marker}") for marker in _SENSITIVE_KEYS
    )


def _scrub_text(text: str) -> str:
    for pattern in _INLINE_PATTERNS:
        text = pattern.sub(lambda m: m.group(1) + REDACTED, text)
    return text


def _scrub(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: REDACTED if _is_sensitive(key) else _scrub(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(_scrub(item) for item in value)
    if isinstance(value, str):
        return _scrub_text(value)
    return value


def make_log_redactor():
    """Build a structlog processor that redacts secrets in the event dict."""

    def redact(_logger: Any, _method_name: str, event_dict: dict) -> dict:
        return _scrub(event_dict)

    return redact
