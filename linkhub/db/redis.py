"""Redis connection management.

Mirrors engine.py: with REDIS_URL set we build one shared connection pool;
without it the pool is None and every consumer (reserved-key store, task
queue) falls back to its in-memory implementation.

Redis holds the data that is shared across API instances but not
relational: the reserved-slug set that operators edit at runtime, and the
domain_registration reconciliation queue read by the worker.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from linkhub.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis, mirrors lifespan_db()."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured, Redis features use in-memory fallbacks")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]  # redis stubs mistype async ping as bool
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        logger.exception("Redis connection failed on startup")
        # Keep serving: reserved-key lookups degrade to "not reserved" and the
        # static redirect map still applies.
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
