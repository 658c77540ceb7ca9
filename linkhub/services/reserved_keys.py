"""Reserved-slug store.

Operators keep a list of slugs that customers may not claim (brand names,
future product paths, abusive words).  The list changes at runtime without a
deploy, so it lives in Redis and every API instance reads the same set.

Slug policy only depends on the ReservedKeys protocol; tests and local dev
use the in-memory implementation.

Lookups compare the lowercased key: reserving "acme" also blocks "ACME".
If Redis cannot be reached the key is treated as not reserved.  The static
redirect map in slug_policy still applies, and a Redis outage should not
block project creation.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from linkhub.core.metrics import RESERVED_KEY_LOOKUPS
from linkhub.db.redis import redis_pool

logger = logging.getLogger(__name__)


@runtime_checkable
class ReservedKeys(Protocol):
    async def is_reserved(self, key: str) -> bool: ...
    async def add(self, *keys: str) -> None: ...
    async def remove(self, *keys: str) -> None: ...


class InMemoryReservedKeys:
    """Per-process reserved set for tests and local dev."""

    def __init__(self, keys: tuple[str, ...] = ()) -> None:
        self._keys: set[str] = {k.lower() for k in keys}

    async def is_reserved(self, key: str) -> bool:
        reserved = key.lower() in self._keys
        RESERVED_KEY_LOOKUPS.labels(result="reserved" if reserved else "free").inc()
        return reserved

    async def add(self, *keys: str) -> None:
        self._keys.update(k.lower() for k in keys)

    async def remove(self, *keys: str) -> None:
        self._keys.difference_update(k.lower() for k in keys)


class RedisReservedKeys:
    """Redis-set-backed store shared by every API instance."""

    _KEY = "reserved:keys"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def is_reserved(self, key: str) -> bool:
        try:
            reserved = bool(await self._redis.sismember(self._KEY, key.lower()))
        except Exception:
            logger.warning("Reserved-key lookup failed for key=%s", key, exc_info=True)
            RESERVED_KEY_LOOKUPS.labels(result="error").inc()
            return False
        RESERVED_KEY_LOOKUPS.labels(result="reserved" if reserved else "free").inc()
        return reserved

    async def add(self, *keys: str) -> None:
        if keys:
            await self._redis.sadd(self._KEY, *(k.lower() for k in keys))

    async def remove(self, *keys: str) -> None:
        if keys:
            await self._redis.srem(self._KEY, *(k.lower() for k in keys))


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    reserved_keys: ReservedKeys = RedisReservedKeys(redis_pool)
else:
    reserved_keys = InMemoryReservedKeys()
