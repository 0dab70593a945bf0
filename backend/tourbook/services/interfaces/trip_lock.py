"""
Per-trip lock strategy interface.
Serializes the read-check-append-commit sequence of seat bookings for one trip.
"""

import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from tourbook.core.metrics import trip_lock_wait


class TripLock(ABC):
    """
    Interface for per-trip mutual exclusion.

    Implementations:
    - LocalTripLock: asyncio.Lock per trip, single process
    - RedisTripLock: Redis lock per trip, shared by every worker
    """

    @abstractmethod
    async def acquire(self, trip_id: int) -> Any:
        """
        Block until this caller owns the trip.

        Returns:
            A handle that must be passed back to release()

        Raises:
            StoreError if the lock cannot be obtained in time
        """

    @abstractmethod
    async def release(self, trip_id: int, handle: Any) -> None:
        """Give the trip back to the next waiter."""

    @asynccontextmanager
    async def hold(self, trip_id: int) -> AsyncIterator[None]:
        started = time.perf_counter()
        handle = await self.acquire(trip_id)
        trip_lock_wait.observe(time.perf_counter() - started)
        try:
            yield
        finally:
            await self.release(trip_id, handle)
