"""HTTP API for triggering theme and chat workflows."""

from __future__ import annotations

from themehook.api.deps import get_services
from themehook.api.router import router

__all__ = ["router", "get_services"]
