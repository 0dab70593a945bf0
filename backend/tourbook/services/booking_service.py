"""
Booking service with concurrency-safe seat assignment.

CONCURRENCY STRATEGY: Per-trip Lock + Versioned Write
=====================================================

Problem:
  Two patrons try to book seat 5 on the same trip simultaneously.
  Both read the trip, both see seat 5 free, both append a booking.
  Result: Two bookings for one seat.

Solution:
  1. Every seat mutation for a trip runs under that trip's lock
     (asyncio lock in-process, Redis lock across workers), covering the
     whole read -> check -> append -> commit sequence.
  2. The commit itself is conditional. The trip row carries a SQLAlchemy
     version counter, so the UPDATE that accompanies the new booking only
     applies if nobody else wrote the trip since we read it. A version
     conflict rolls back and retries with fresh data.
  3. Unique constraints on (trip_id, seat_number) and (trip_id, patron_id)
     are the final safety net; a violation is re-read and reported as the
     matching domain error.

  Layer 1 keeps contention cheap (waiters queue instead of failing);
  layers 2 and 3 keep the invariant even if a lock is lost or bypassed.
"""

import time
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from tourbook.core.exceptions import (
    DuplicateBookingError,
    InvalidInputError,
    NotFoundError,
    SeatConflictError,
    StoreError,
    TourBookingError,
)
from tourbook.core.logging import get_logger
from tourbook.core.metrics import booking_cancellations, booking_latency, db_retries, record_booking_attempt
from tourbook.db.base import utcnow
from tourbook.models.trip import Trip
from tourbook.services.interfaces.trip_lock import TripLock
from tourbook.services.patron_service import get_active_patron
from tourbook.services.seat_ledger import SeatLedger
from tourbook.services.trip_service import get_trip

logger = get_logger(__name__)

MAX_RETRY_ATTEMPTS = 3


def _attempt_status(error: TourBookingError) -> str:
    if isinstance(error, SeatConflictError):
        return "conflict"
    if isinstance(error, DuplicateBookingError):
        return "duplicate"
    if isinstance(error, (InvalidInputError, NotFoundError)):
        return "invalid"
    return "error"


async def _classify_integrity_error(
    db: AsyncSession,
    trip_id: int,
    patron_id: int,
    seat_number: int,
) -> TourBookingError:
    """Re-read the trip to find out which constraint a concurrent writer claimed."""
    ledger = SeatLedger(await get_trip(db, trip_id, refresh=True))
    if not ledger.is_seat_available(seat_number):
        return SeatConflictError(seat_number)
    if ledger.find_patron_booking(patron_id) is not None:
        return DuplicateBookingError(patron_id)
    return StoreError("Booking could not be saved. Please try again.")


async def book_seat(
    db: AsyncSession,
    lock: TripLock,
    trip_id: int,
    patron_id: int,
    seat_number: int,
    notes: Optional[str] = None,
    max_attempts: int = MAX_RETRY_ATTEMPTS,
) -> Trip:
    """
    Book one seat on a trip for an active patron.
    Retries up to `max_attempts` times on trip version conflicts.
    """
    started = time.perf_counter()
    try:
        async with lock.hold(trip_id):
            trip = await _book_seat_locked(
                db, trip_id, patron_id, seat_number, notes, max_attempts
            )
    except TourBookingError as e:
        record_booking_attempt(_attempt_status(e))
        logger.warning(
            "booking_failed",
            trip_id=trip_id,
            patron_id=patron_id,
            seat_number=seat_number,
            reason=type(e).__name__,
            detail=e.message,
        )
        raise
    finally:
        booking_latency.observe(time.perf_counter() - started)

    record_booking_attempt("success")
    return trip


async def _book_seat_locked(
    db: AsyncSession,
    trip_id: int,
    patron_id: int,
    seat_number: int,
    notes: Optional[str],
    max_attempts: int,
) -> Trip:
    for attempt in range(1, max_attempts + 1):
        # Step 1: Read current trip state and the patron
        trip = await get_trip(db, trip_id, refresh=True)
        patron = await get_active_patron(db, patron_id)

        # Step 2: Seat ledger checks bounds, availability and duplicates
        booking = SeatLedger(trip).book_seat(patron.id, seat_number, notes)
        booking.patron = patron
        # Touching the trip row makes the flush a version-checked UPDATE
        trip.updated_at = utcnow()

        # Step 3: Conditional commit
        try:
            await db.commit()
        except StaleDataError:
            await db.rollback()
            db_retries.inc()
            logger.info(
                "booking_retry",
                trip_id=trip_id,
                attempt=attempt,
                reason="version_conflict",
            )
            continue
        except IntegrityError:
            await db.rollback()
            raise await _classify_integrity_error(db, trip_id, patron_id, seat_number)

        logger.info(
            "booking_created",
            booking_id=booking.id,
            trip_id=trip_id,
            patron_id=patron_id,
            seat_number=seat_number,
            attempt=attempt,
        )
        return await get_trip(db, trip_id, refresh=True)

    raise StoreError("Booking failed due to high demand. Please try again.")


async def cancel_booking(
    db: AsyncSession,
    lock: TripLock,
    trip_id: int,
    seat_number: int,
) -> Trip:
    """
    Cancel the booking holding `seat_number`.
    The booking row is removed, freeing the seat immediately.
    """
    async with lock.hold(trip_id):
        trip = await get_trip(db, trip_id, refresh=True)
        booking = SeatLedger(trip).cancel_booking(seat_number)
        trip.updated_at = utcnow()

        try:
            await db.commit()
        except StaleDataError:
            await db.rollback()
            logger.warning("booking_cancel_conflict", trip_id=trip_id, seat_number=seat_number)
            raise StoreError("Trip was modified concurrently. Please try again.") from None

    booking_cancellations.inc()
    logger.info(
        "booking_cancelled",
        trip_id=trip_id,
        seat_number=seat_number,
        patron_id=booking.patron_id,
        payment_status=booking.payment_status,
    )
    return await get_trip(db, trip_id, refresh=True)


async def get_seat_ledger(db: AsyncSession, trip_id: int) -> SeatLedger:
    """Read-only ledger for seat maps; no lock needed."""
    return SeatLedger(await get_trip(db, trip_id))
