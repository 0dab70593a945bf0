"""
Trip endpoints: CRUD, listing, seat map and dashboard stats.
"""

import datetime as dt
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.api.deps import get_db, get_stats_cache, get_trip_lock
from tourbook.core.config import get_settings
from tourbook.core.logging import get_logger
from tourbook.models.trip import TripStatus
from tourbook.schemas.booking import MessageResponse, SeatResponse
from tourbook.schemas.patron import PatronSummary
from tourbook.schemas.trip import (
    DashboardStats,
    SeatMapResponse,
    TripCreate,
    TripListResponse,
    TripResponse,
    TripUpdate,
)
from tourbook.services import trip_service
from tourbook.services.booking_service import get_seat_ledger
from tourbook.services.cache_service import StatsCache
from tourbook.services.interfaces.trip_lock import TripLock

logger = get_logger(__name__)
settings = get_settings()
router = APIRouter(prefix="/trips", tags=["Trips"])


@router.get("/", response_model=TripListResponse)
async def list_trips_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: Optional[str] = Query(None, max_length=100),
    trip_status: Optional[TripStatus] = Query(None, alias="status"),
    date_from: Optional[dt.date] = Query(None),
    date_to: Optional[dt.date] = Query(None),
    sort_by: Literal["date", "destination", "price", "bus_capacity", "status", "created_at"] = Query("date"),
    sort_order: Literal["asc", "desc"] = Query("asc"),
    db: AsyncSession = Depends(get_db),
):
    """List trips, searchable by destination or departure location."""
    trips, total, total_pages = await trip_service.list_trips(
        db, page, limit, search, trip_status, date_from, date_to, sort_by, sort_order
    )
    return TripListResponse(
        trips=[TripResponse.model_validate(t) for t in trips],
        total_pages=total_pages,
        current_page=page,
        total_trips=total,
    )


@router.get("/dashboard/stats", response_model=DashboardStats)
async def dashboard_stats_endpoint(
    db: AsyncSession = Depends(get_db),
    cache: StatsCache = Depends(get_stats_cache),
):
    """
    Totals for the operator dashboard.
    Cached in Redis; any trip or booking change invalidates the entry.
    """
    cached = await cache.get_dashboard_stats()
    if cached:
        logger.info("dashboard_stats_cache_hit")
        cached["cached"] = True
        return DashboardStats(**cached)

    stats = await trip_service.get_dashboard_stats(db)
    await cache.set_dashboard_stats(stats)
    return DashboardStats(**stats)


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip_endpoint(trip_id: int, db: AsyncSession = Depends(get_db)):
    return await trip_service.get_trip(db, trip_id)


@router.post("/", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip_endpoint(
    trip_data: TripCreate,
    db: AsyncSession = Depends(get_db),
    cache: StatsCache = Depends(get_stats_cache),
):
    """Schedule a trip. The departure must be in the future."""
    trip = await trip_service.create_trip(db, trip_data)
    await cache.invalidate()
    return trip


@router.put("/{trip_id}", response_model=TripResponse)
async def update_trip_endpoint(
    trip_id: int,
    trip_data: TripUpdate,
    db: AsyncSession = Depends(get_db),
    lock: TripLock = Depends(get_trip_lock),
    cache: StatsCache = Depends(get_stats_cache),
):
    """
    Update trip fields. Capacity cannot drop below the current bookings and
    status changes follow scheduled -> in-progress -> completed / cancelled.
    """
    trip = await trip_service.update_trip(db, lock, trip_id, trip_data)
    await cache.invalidate()
    return trip


@router.delete("/{trip_id}", response_model=MessageResponse)
async def delete_trip_endpoint(
    trip_id: int,
    db: AsyncSession = Depends(get_db),
    lock: TripLock = Depends(get_trip_lock),
    cache: StatsCache = Depends(get_stats_cache),
):
    """Delete a trip. Refused while any seat is still booked."""
    await trip_service.delete_trip(db, lock, trip_id)
    await cache.invalidate()
    return MessageResponse(message="Trip deleted successfully")


@router.get("/{trip_id}/seats", response_model=SeatMapResponse)
async def seat_map_endpoint(trip_id: int, db: AsyncSession = Depends(get_db)):
    """Seat-by-seat occupancy with revenue and fill rate."""
    ledger = await get_seat_ledger(db, trip_id)
    seat_map = [
        SeatResponse(
            seat_number=seat.seat_number,
            is_booked=seat.is_booked,
            patron=PatronSummary.model_validate(seat.booking.patron) if seat.is_booked else None,
        )
        for seat in ledger.seat_map()
    ]
    return SeatMapResponse(
        trip=TripResponse.model_validate(ledger.trip),
        seat_map=seat_map,
        available_seats=ledger.available_seats,
        total_revenue=ledger.total_revenue,
        booking_percentage=ledger.booking_percentage,
    )
