"""Composition of the API routers."""

from __future__ import annotations

from fastapi import APIRouter

from themehook.api.chat import router as chat_router
from themehook.api.environments import router as environments_router
from themehook.api.themes import router as themes_router
from themehook.api.threads import router as threads_router

router = APIRouter()
router.include_router(themes_router)
router.include_router(chat_router)
router.include_router(environments_router, prefix="/api")
router.include_router(threads_router, prefix="/api")
