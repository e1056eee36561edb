"""Redis connection management.

Mirrors engine.py: when REDIS_URL is configured a client is created at
import time; when it is unset ``redis_pool`` is None and the job guard
falls back to its in-memory implementation.  Redis only holds job leases,
so several scheduler processes can share one overlap guard.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from learnsync.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=10,
    )
else:
    redis_pool = None


async def ping_redis() -> bool:
    if redis_pool is None:
        return False
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except aioredis.RedisError:
        return False
    return True


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis, mirroring lifespan_db()."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured, job leases are process-local")
        yield
        return

    if await ping_redis():
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    else:
        # Lease attempts raise until Redis is back, so no job runs unguarded.
        logger.error("Redis unreachable on startup: %s", SETTINGS.redis_url)

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
