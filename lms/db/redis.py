"""Redis connection management.

Mirrors engine.py: a pool exists only when REDIS_URL is configured;
otherwise ``redis_pool`` is None and the cache falls back to memory.
Redis holds nothing durable here, only the progress-summary cache.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from lms.core.config import SETTINGS

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
    if redis_pool is None:
        logger.info("No REDIS_URL configured, caching in process memory")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        kwargs = redis_pool.connection_pool.connection_kwargs
        logger.info(
            "Redis connected: %s:%s", kwargs.get("host"), kwargs.get("port")
        )
    except Exception:
        # Start anyway; /health reports redis as degraded until it recovers.
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
