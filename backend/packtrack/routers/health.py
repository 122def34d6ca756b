"""Liveness and readiness checks."""

import logging
from datetime import datetime

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from packtrack.config import settings
from packtrack.utils.redis_client import get_redis

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Process is up; touches neither the database nor Redis."""
    return {
        "status": "ok",
        "service": "PackTrack",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.environment,
    }


async def _ping_database(request: Request) -> None:
    async with request.app.state.db.engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def _ping_redis(request: Request) -> None:
    await (await get_redis()).ping()


@router.get("/health/ready")
async def readiness_check(request: Request):
    """200 only when the database and Redis both answer, 503 otherwise."""
    checks = {"service": "ok"}
    for name, check in (("database", _ping_database), ("redis", _ping_redis)):
        try:
            await check(request)
            checks[name] = "ok"
        except Exception as e:
            logger.warning(f"Readiness check {name} failed: {e}")
            checks[name] = f"error: {str(e)[:100]}"

    healthy = all(value == "ok" for value in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "service": "PackTrack",
            "checks": checks,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )
