"""
Trip service handling CRUD, listing and dashboard statistics.

Mutations that can race with seat bookings (capacity and status changes,
deletion) take the same per-trip lock the booking service uses.
"""

import datetime as dt
import math
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from tourbook.core.exceptions import InvalidInputError, NotFoundError, StoreError
from tourbook.core.logging import get_logger
from tourbook.models.booking import Booking
from tourbook.models.trip import Trip, TripStatus
from tourbook.schemas.trip import DashboardStats, TripCreate, TripResponse, TripUpdate
from tourbook.services.interfaces.trip_lock import TripLock
from tourbook.services.seat_ledger import SeatLedger

logger = get_logger(__name__)

SORTABLE_FIELDS = {
    "date": Trip.date,
    "destination": Trip.destination,
    "price": Trip.price,
    "bus_capacity": Trip.bus_capacity,
    "status": Trip.status,
    "created_at": Trip.created_at,
}

UPCOMING_LIST_SIZE = 5


def departure_datetime(date: dt.date, time: str) -> dt.datetime:
    hours, minutes = (int(part) for part in time.split(":"))
    return dt.datetime.combine(date, dt.time(hours, minutes))


def ensure_future_departure(date: dt.date, time: str, now: Optional[dt.datetime] = None) -> None:
    now = now or dt.datetime.now()
    if departure_datetime(date, time) <= now:
        raise InvalidInputError("Trip date must be in the future", field="date")


async def get_trip(db: AsyncSession, trip_id: int, refresh: bool = False) -> Trip:
    """
    Get a single trip with its bookings.

    `refresh` re-reads the row and collection even if the trip is already in
    the session, which booking paths need to see other requests' commits.
    """
    query = select(Trip).where(Trip.id == trip_id)
    if refresh:
        query = query.execution_options(populate_existing=True)
    result = await db.execute(query)
    trip = result.scalar_one_or_none()

    if not trip:
        raise NotFoundError("Trip not found")
    return trip


async def create_trip(db: AsyncSession, trip_data: TripCreate) -> Trip:
    ensure_future_departure(trip_data.date, trip_data.time)

    trip = Trip(**trip_data.model_dump(), status=TripStatus.SCHEDULED.value)
    db.add(trip)
    await db.commit()

    logger.info(
        "trip_created",
        trip_id=trip.id,
        destination=trip.destination,
        date=str(trip.date),
        seats=trip.bus_capacity,
    )
    return await get_trip(db, trip.id, refresh=True)


async def update_trip(
    db: AsyncSession,
    lock: TripLock,
    trip_id: int,
    trip_data: TripUpdate,
) -> Trip:
    """
    Apply the fields present in `trip_data`.

    Capacity may not drop below the current booking count, status follows the
    trip state machine, and a changed date/time must still be in the future.
    """
    changes = trip_data.model_dump(exclude_unset=True)

    async with lock.hold(trip_id):
        trip = await get_trip(db, trip_id, refresh=True)
        ledger = SeatLedger(trip)

        if "bus_capacity" in changes:
            ledger.check_capacity_change(changes["bus_capacity"])
        if "status" in changes:
            ledger.check_status_transition(TripStatus(changes["status"]))
        if "date" in changes or "time" in changes:
            ensure_future_departure(changes.get("date", trip.date), changes.get("time", trip.time))

        for field, value in changes.items():
            setattr(trip, field, value)

        try:
            await db.commit()
        except StaleDataError:
            await db.rollback()
            logger.warning("trip_update_conflict", trip_id=trip_id)
            raise StoreError("Trip was modified concurrently. Please try again.") from None

    logger.info("trip_updated", trip_id=trip_id, fields=sorted(changes))
    return await get_trip(db, trip_id, refresh=True)


async def delete_trip(db: AsyncSession, lock: TripLock, trip_id: int) -> None:
    """Delete a trip that has no bookings left."""
    async with lock.hold(trip_id):
        trip = await get_trip(db, trip_id, refresh=True)
        SeatLedger(trip).check_deletable()

        await db.delete(trip)
        try:
            await db.commit()
        except StaleDataError:
            await db.rollback()
            logger.warning("trip_delete_conflict", trip_id=trip_id)
            raise StoreError("Trip was modified concurrently. Please try again.") from None

    logger.info("trip_deleted", trip_id=trip_id)


async def list_trips(
    db: AsyncSession,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    status: Optional[TripStatus] = None,
    date_from: Optional[dt.date] = None,
    date_to: Optional[dt.date] = None,
    sort_by: str = "date",
    sort_order: str = "asc",
) -> tuple[list[Trip], int, int]:
    """
    List trips with filters and pagination.
    Uses the ix_trips_date_status index for date range + status filters.
    Returns (trips, total, total_pages).
    """
    query = select(Trip)

    if search:
        query = query.where(
            or_(
                Trip.destination.icontains(search, autoescape=True),
                Trip.departure_location.icontains(search, autoescape=True),
            )
        )
    if status is not None:
        query = query.where(Trip.status == TripStatus(status).value)
    if date_from is not None:
        query = query.where(Trip.date >= date_from)
    if date_to is not None:
        query = query.where(Trip.date <= date_to)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    column = SORTABLE_FIELDS.get(sort_by, Trip.date)
    order = column.desc() if sort_order == "desc" else column.asc()
    result = await db.execute(
        query.order_by(order, Trip.time, Trip.id).offset((page - 1) * limit).limit(limit)
    )
    trips = list(result.scalars().all())

    return trips, total, math.ceil(total / limit)


async def get_dashboard_stats(db: AsyncSession, today: Optional[dt.date] = None) -> dict:
    """
    Aggregate counts and revenue across all trips.
    Returned as a JSON-ready dict so it can be cached as-is.
    """
    today = today or dt.date.today()
    upcoming = (Trip.date >= today, Trip.status == TripStatus.SCHEDULED.value)

    total_trips = await db.scalar(select(func.count(Trip.id)))
    upcoming_trips = await db.scalar(select(func.count(Trip.id)).where(*upcoming))
    completed_trips = await db.scalar(
        select(func.count(Trip.id)).where(Trip.status == TripStatus.COMPLETED.value)
    )
    total_bookings = await db.scalar(select(func.count(Booking.id)))
    total_revenue = await db.scalar(
        select(func.coalesce(func.sum(Trip.price), 0)).select_from(Booking).join(
            Trip, Booking.trip_id == Trip.id
        )
    )

    result = await db.execute(
        select(Trip).where(*upcoming).order_by(Trip.date, Trip.time).limit(UPCOMING_LIST_SIZE)
    )
    upcoming_list = result.scalars().all()

    stats = DashboardStats(
        total_trips=total_trips or 0,
        upcoming_trips=upcoming_trips or 0,
        completed_trips=completed_trips or 0,
        total_bookings=total_bookings or 0,
        total_revenue=float(total_revenue or 0),
        upcoming_trips_list=[TripResponse.model_validate(trip) for trip in upcoming_list],
    )
    return stats.model_dump(mode="json")
