from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import APIRouter
from sqlalchemy import text
from src.core.config import get_settings
from src.infrastructure.db.session import get_session_factory

router = APIRouter(tags=["Observability"])
logger = structlog.get_logger()


async def check_database() -> dict[str, Any]:
    """Run a trivial query against the configured database."""
    try:
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        return {"status": "error", "message": str(exc)[:100]}
    return {"status": "ok"}


async def check_redis() -> dict[str, Any]:
    """Ping Redis when it carries rating events; otherwise report it unused."""
    settings = get_settings()
    if settings.event_backend != "redis":
        return {"status": "skipped"}
    try:
        import redis.asyncio as aioredis

        client = aioredis.from_url(settings.redis_url)
        try:
            await client.ping()
        finally:
            await client.aclose()
    except Exception as exc:  # noqa: BLE001
        return {"status": "error", "message": str(exc)[:100]}
    return {"status": "ok"}


@router.get("/health", summary="Service health probe")
async def health_check() -> dict[str, Any]:
    """Return service metadata and datastore status."""
    settings = get_settings()
    datastores = {"database": await check_database(), "redis": await check_redis()}
    healthy = all(item["status"] in ("ok", "skipped") for item in datastores.values())

    payload = {
        "service": settings.app_name,
        "version": settings.version,
        "status": "ok" if healthy else "degraded",
        "timestamp": datetime.now(UTC).isoformat(),
        "datastores": datastores,
    }
    if healthy:
        logger.info("health_probe", status=payload["status"])
    else:
        logger.warning("health_probe", status=payload["status"], datastores=datastores)
    return payload
