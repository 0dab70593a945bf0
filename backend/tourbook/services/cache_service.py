"""
Redis caching for the dashboard statistics.

CACHING STRATEGY
================

What we cache:
  - The dashboard stats response (JSON-serialized) under "stats:dashboard"

Why:
  - The stats aggregate every trip and booking; they are read far more often
    than trips change

Invalidation strategy:
  - Any trip create/update/delete and any booking or cancellation deletes the key
  - TTL-based expiry as a safety net (STATS_CACHE_TTL)

Why NOT cache trips or seat maps:
  - Booking needs the authoritative seat collection; stale seat data would
    show free seats that are already taken
"""

import json
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from tourbook.core.logging import get_logger
from tourbook.core.metrics import record_cache_operation

logger = get_logger(__name__)

DASHBOARD_STATS_KEY = "stats:dashboard"


class StatsCache:
    """Dashboard stats cache. Every method is a no-op when Redis is unavailable."""

    def __init__(self, client: Optional[redis.Redis], ttl: int):
        self.client = client
        self.ttl = ttl

    async def get_dashboard_stats(self) -> Optional[dict]:
        if self.client is None:
            return None
        try:
            data = await self.client.get(DASHBOARD_STATS_KEY)
        except RedisError as e:
            logger.error("cache_get_error", key=DASHBOARD_STATS_KEY, error=str(e))
            record_cache_operation("get", "error")
            return None

        if data:
            logger.debug("cache_hit", key=DASHBOARD_STATS_KEY)
            record_cache_operation("get", "hit")
            return json.loads(data)
        logger.debug("cache_miss", key=DASHBOARD_STATS_KEY)
        record_cache_operation("get", "miss")
        return None

    async def set_dashboard_stats(self, data: dict) -> None:
        if self.client is None:
            return
        try:
            await self.client.setex(DASHBOARD_STATS_KEY, self.ttl, json.dumps(data, default=str))
            record_cache_operation("set", "ok")
        except RedisError as e:
            logger.error("cache_set_error", key=DASHBOARD_STATS_KEY, error=str(e))
            record_cache_operation("set", "error")

    async def invalidate(self) -> None:
        if self.client is None:
            return
        try:
            await self.client.delete(DASHBOARD_STATS_KEY)
            record_cache_operation("invalidate", "ok")
        except RedisError as e:
            logger.error("cache_invalidation_error", error=str(e))
            record_cache_operation("invalidate", "error")

    async def stats(self) -> dict:
        """Redis keyspace statistics for the health endpoint."""
        if self.client is None:
            return {"status": "disabled"}
        try:
            info = await self.client.info("stats")
        except RedisError as e:
            return {"status": "error", "error": str(e)}

        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
