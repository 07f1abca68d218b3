"""Health check endpoint.

Always returns 200 so the platform keeps routing webhooks; dependency
status is reported in the body.
"""

from __future__ import annotations

import asyncio

import structlog
from fastapi import APIRouter

from tallybot.config import settings
from tallybot.utils.store import get_store

logger = structlog.get_logger()

router = APIRouter(tags=["health"])

VERSION = "0.1.0"
_CHECK_TIMEOUT = 3.0  # seconds


async def _check_redis() -> str:
    try:
        ok = await asyncio.wait_for(get_store().ping(), timeout=_CHECK_TIMEOUT)
    except asyncio.TimeoutError:
        logger.debug("health_redis_timeout")
        return "disconnected"
    return "connected" if ok else "disconnected"


@router.get("/health")
async def health_check() -> dict:
    return {
        "status": "ok",
        "version": VERSION,
        "environment": settings.environment,
        "redis": await _check_redis(),
        "gemini": "configured" if settings.gemini_api_key else "missing",
    }
