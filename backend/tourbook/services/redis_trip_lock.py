"""
Redis-backed trip lock for deployments with several application workers.
Implements TripLock using redis-py's asyncio Lock (SET NX PX + token check).

Circuit Breaker Pattern:
  On Redis failure the lock "fails open" to the in-process lock.
  The unique constraints on bookings and the trip version counter still
  reject a double booking that slips through, so a Redis outage degrades
  contention handling without risking overbooking.
"""

from typing import Any

import redis.asyncio as redis
from redis.exceptions import LockError, RedisError

from tourbook.core.exceptions import StoreError
from tourbook.core.logging import get_logger
from tourbook.services.interfaces.local_trip_lock import LocalTripLock
from tourbook.services.interfaces.trip_lock import TripLock

logger = get_logger(__name__)

LOCK_KEY_PREFIX = "trip-lock"


class RedisTripLock(TripLock):
    """
    Redis lock keyed `trip-lock:<trip_id>`.

    `timeout` bounds how long a crashed holder can block a trip;
    `blocking_timeout` bounds how long a caller waits before giving up.
    """

    def __init__(
        self,
        client: redis.Redis,
        timeout: float,
        blocking_timeout: float,
        fallback: LocalTripLock,
    ):
        self.client = client
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout
        self.fallback = fallback

    async def acquire(self, trip_id: int) -> Any:
        lock = self.client.lock(
            f"{LOCK_KEY_PREFIX}:{trip_id}",
            timeout=self.timeout,
            blocking_timeout=self.blocking_timeout,
        )
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            logger.warning("trip_lock_redis_unavailable", trip_id=trip_id, error=str(e))
            return ("local", await self.fallback.acquire(trip_id))

        if not acquired:
            logger.warning("trip_lock_timeout", trip_id=trip_id, waited=self.blocking_timeout)
            raise StoreError("Trip is busy, please retry")
        return ("redis", lock)

    async def release(self, trip_id: int, handle: Any) -> None:
        kind, lock = handle
        if kind == "local":
            await self.fallback.release(trip_id, lock)
            return
        try:
            await lock.release()
        except LockError as e:
            # Expired while held; the version check protected the write
            logger.warning("trip_lock_lost", trip_id=trip_id, error=str(e))
        except RedisError as e:
            logger.warning("trip_lock_release_failed", trip_id=trip_id, error=str(e))
