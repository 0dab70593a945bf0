"""
In-process trip lock: one asyncio.Lock per trip id.
"""

import asyncio
import weakref
from typing import Optional

from tourbook.core.exceptions import StoreError
from tourbook.services.interfaces.trip_lock import TripLock


class LocalTripLock(TripLock):
    """
    Serializes bookings per trip inside a single process.

    Use when:
    - One application worker
    - Tests and local development

    Locks live in a weak-value map, so a trip's lock disappears once nobody
    holds or waits for it.
    """

    def __init__(self, blocking_timeout: Optional[float] = None):
        self.blocking_timeout = blocking_timeout
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, trip_id: int) -> asyncio.Lock:
        lock = self._locks.get(trip_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[trip_id] = lock
        return lock

    async def acquire(self, trip_id: int) -> asyncio.Lock:
        lock = self._lock_for(trip_id)
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self.blocking_timeout)
        except asyncio.TimeoutError:
            raise StoreError("Trip is busy, please retry") from None
        return lock

    async def release(self, trip_id: int, handle: asyncio.Lock) -> None:
        handle.release()
