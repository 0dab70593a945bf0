"""
Trip lock strategy factory.
Configures which per-trip serialization strategy bookings use.
"""

from typing import Optional

import redis.asyncio as redis

from tourbook.core.config import Settings
from tourbook.core.logging import get_logger
from tourbook.services.interfaces.local_trip_lock import LocalTripLock
from tourbook.services.interfaces.trip_lock import TripLock
from tourbook.services.redis_trip_lock import RedisTripLock

logger = get_logger(__name__)


def build_trip_lock(settings: Settings, redis_client: Optional[redis.Redis] = None) -> TripLock:
    """
    Get the configured trip lock.

    Strategy selection via LOCK_STRATEGY:
    - local: asyncio lock per trip (single worker)
    - redis: Redis lock per trip (multiple workers); falls back to local
      when Redis is disabled or unreachable at startup
    """
    local = LocalTripLock(blocking_timeout=settings.LOCK_BLOCKING_TIMEOUT_SECONDS)

    if settings.LOCK_STRATEGY == "redis":
        if redis_client is None:
            logger.warning("trip_lock_fallback", reason="redis_unavailable", strategy="local")
            return local
        return RedisTripLock(
            redis_client,
            timeout=settings.LOCK_TIMEOUT_SECONDS,
            blocking_timeout=settings.LOCK_BLOCKING_TIMEOUT_SECONDS,
            fallback=local,
        )

    return local
