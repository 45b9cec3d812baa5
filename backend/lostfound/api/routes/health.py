"""Health check with a database connectivity probe.

Always returns 200 so load balancers keep routing; a failed probe shows
up as ``"database": "disconnected"`` in the body.
"""

import asyncio

import structlog
from fastapi import APIRouter, Depends, Request

from lostfound import __version__
from lostfound.api.deps import get_settings
from lostfound.config import Settings

logger = structlog.get_logger()

router = APIRouter(tags=["health"])

_CHECK_TIMEOUT = 3.0  # seconds


async def _check_database(request: Request) -> str:
    try:
        await asyncio.wait_for(request.app.state.database.ping(), timeout=_CHECK_TIMEOUT)
        return "connected"
    except Exception as exc:
        logger.debug("health_database_failed", error=str(exc))
        return "disconnected"


@router.get("/health")
async def health_check(request: Request, settings: Settings = Depends(get_settings)) -> dict:
    return {
        "status": "ok",
        "version": __version__,
        "environment": settings.environment,
        "database": await _check_database(request),
    }
