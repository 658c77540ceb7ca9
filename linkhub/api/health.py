"""Liveness and readiness probes.

/health answers "is the process alive?" and reports each backing service.
It stays 200 when degraded so the orchestrator does not restart a process
that is merely waiting on Redis.

/ready answers "should traffic come here?" and returns 503 when the
database is configured but unreachable: project reads and writes cannot
work without it.  Redis is optional (in-memory fallbacks exist).
"""

from __future__ import annotations

from fastapi import APIRouter, Response

from linkhub.core.config import SETTINGS
from linkhub.db.engine import engine, ping_database
from linkhub.db.redis import redis_pool

router = APIRouter(tags=["health"])


async def _redis_status() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except Exception:
        return "degraded"
    return "ok"


async def _database_status() -> str:
    if engine is None:
        return "not_configured"
    return "ok" if await ping_database() else "degraded"


@router.get("/health")
async def health() -> dict:
    checks = {
        "redis": await _redis_status(),
        "database": await _database_status(),
        "domain_provider": (
            "configured" if SETTINGS.domain_provider_configured else "in_memory"
        ),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if await _database_status() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
