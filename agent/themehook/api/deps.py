"""Dependency helpers for API endpoints."""

from __future__ import annotations

from fastapi import Request

from themehook.services import Services


def get_services(request: Request) -> Services:
    """Return the service graph attached to the application at startup."""
    return request.app.state.services
