"""Pydantic models for API requests, responses and webhook payloads."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class ThemeSummary(BaseModel):
    """One remote theme as reported by ``shopify theme list``."""
    name: str
    id: str
    role: str


class ThemeDownloadRequest(BaseModel):
    theme_id: str = Field(..., min_length=1)


class ChatRequest(BaseModel):
    """Prompt to run against a provisioned environment."""
    env_id: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1)
    model: Optional[str] = None


class EnvironmentRunRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    model: Optional[str] = None
    output_schema: Optional[dict[str, Any]] = None


class ThreadCreateRequest(BaseModel):
    """Options for an ad-hoc Codex thread; the directory defaults to the server's cwd."""
    working_directory: Optional[str] = None
    model: Optional[str] = None
    skip_git_repo_check: bool = True
    yolo_mode: bool = False


class ThreadStreamRequest(BaseModel):
    thread_id: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1)
    model: Optional[str] = None


class ThreadRunRequest(ThreadStreamRequest):
    output_schema: Optional[dict[str, Any]] = None


class ThreadResumeRequest(BaseModel):
    """Attach a new thread key to an existing Codex session id."""
    session_id: str = Field(..., min_length=1)
    working_directory: Optional[str] = None
    model: Optional[str] = None


class QuickRunRequest(ThreadCreateRequest):
    prompt: str = Field(..., min_length=1)
    output_schema: Optional[dict[str, Any]] = None


class AcceptedResponse(BaseModel):
    """Acknowledgement returned before background work completes."""
    success: bool = True
    message: str


class EnvironmentInfo(BaseModel):
    """Public view of a provisioned environment (no session handle)."""
    env_id: str
    working_directory: str
    model: str
    created_at: str


class ThemeListPayload(BaseModel):
    success: bool
    themes: list[ThemeSummary] = Field(default_factory=list)
    error: Optional[str] = None


class ThemeDownloadPayload(BaseModel):
    success: bool
    theme_id: Optional[str] = None
    env_id: Optional[str] = None
    error: Optional[str] = None


class ChatPayload(BaseModel):
    success: bool
    env_id: Optional[str] = None
    response: Optional[str] = None
    items: Optional[list[dict[str, Any]]] = None
    error: Optional[str] = None


class ErrorDetail(BaseModel):
    """Structured error payload for API responses."""
    code: str
    message: str
    details: Optional[Any]


class ErrorResponse(BaseModel):
    """Envelope for API error responses."""
    error: ErrorDetail
