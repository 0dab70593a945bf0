"""
Seat booking endpoints with concurrency-safe seat assignment.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.api.deps import get_db, get_stats_cache, get_trip_lock
from tourbook.core.config import get_settings
from tourbook.schemas.booking import BookingCreate
from tourbook.schemas.trip import TripResponse
from tourbook.services.booking_service import book_seat, cancel_booking
from tourbook.services.cache_service import StatsCache
from tourbook.services.interfaces.trip_lock import TripLock

settings = get_settings()
router = APIRouter(prefix="/trips", tags=["Bookings"])


@router.post("/{trip_id}/book", response_model=TripResponse)
async def book_seat_endpoint(
    trip_id: int,
    booking_data: BookingCreate,
    db: AsyncSession = Depends(get_db),
    lock: TripLock = Depends(get_trip_lock),
    cache: StatsCache = Depends(get_stats_cache),
):
    """
    Book a seat for a patron.

    Bookings for the same trip are serialized, so when several requests race
    for one seat exactly one succeeds and the rest get a 409.
    """
    trip = await book_seat(
        db,
        lock,
        trip_id,
        booking_data.patron_id,
        booking_data.seat_number,
        booking_data.notes,
        max_attempts=settings.BOOKING_MAX_RETRIES,
    )
    await cache.invalidate()
    return trip


@router.delete("/{trip_id}/book/{seat_number}", response_model=TripResponse)
async def cancel_booking_endpoint(
    trip_id: int,
    seat_number: int = Path(..., ge=1),
    db: AsyncSession = Depends(get_db),
    lock: TripLock = Depends(get_trip_lock),
    cache: StatsCache = Depends(get_stats_cache),
):
    """Cancel the booking on a seat, freeing it for others."""
    trip = await cancel_booking(db, lock, trip_id, seat_number)
    await cache.invalidate()
    return trip
