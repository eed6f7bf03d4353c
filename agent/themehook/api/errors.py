"""Helpers for raising errors in the API's error envelope."""

from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException

from themehook.models import ErrorDetail, ErrorResponse


def raise_http_error(code: str, message: str, status_code: int, details: object = None) -> NoReturn:
    """Raise an HTTPException with a structured error payload.

    Args:
        code: Stable error code string.
        message: Human-readable error message.
        status_code: HTTP status to return.
        details: Optional extra context.
    """
    raise HTTPException(
        status_code=status_code,
        detail=ErrorResponse(
            error=ErrorDetail(code=code, message=message, details=details)
        ).model_dump(),
    )
