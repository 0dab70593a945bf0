"""
Patron service: CRUD, soft delete and search.

Phone uniqueness among active patrons compares numbers with separators
removed. It is checked here first and backed by a partial unique index, so
a racing duplicate still fails at flush time.
"""

import math
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tourbook.core.exceptions import DuplicatePhoneError, HasActiveBookingsError, NotFoundError
from tourbook.core.logging import get_logger
from tourbook.models.booking import Booking
from tourbook.models.patron import Patron, normalize_phone
from tourbook.models.trip import Trip, TripStatus
from tourbook.schemas.patron import PatronCreate, PatronUpdate

logger = get_logger(__name__)

SORTABLE_FIELDS = {
    "name": Patron.name,
    "phone": Patron.phone,
    "created_at": Patron.created_at,
}

# Trips whose seats still matter when a patron is retired
OPEN_TRIP_STATUSES = (TripStatus.SCHEDULED.value, TripStatus.IN_PROGRESS.value)

QUICK_SEARCH_MIN_LENGTH = 2
QUICK_SEARCH_LIMIT = 10


async def get_patron(db: AsyncSession, patron_id: int) -> Patron:
    """Get a patron by ID, active or not."""
    patron = await db.get(Patron, patron_id)
    if patron is None:
        raise NotFoundError("Patron not found")
    return patron


async def get_active_patron(db: AsyncSession, patron_id: int) -> Patron:
    """Get a patron that can still hold bookings."""
    patron = await db.get(Patron, patron_id, populate_existing=True)
    if patron is None or not patron.is_active:
        raise NotFoundError("Patron not found")
    return patron


async def find_active_patron_by_phone(
    db: AsyncSession,
    phone: str,
    exclude_id: Optional[int] = None,
) -> Optional[Patron]:
    query = select(Patron).where(
        Patron.phone_key == normalize_phone(phone), Patron.is_active.is_(True)
    )
    if exclude_id is not None:
        query = query.where(Patron.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none()


async def _flush_patron(db: AsyncSession, patron: Patron) -> None:
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race with another request registering the same phone
        await db.rollback()
        raise DuplicatePhoneError(patron.phone) from None
    await db.commit()


async def create_patron(db: AsyncSession, patron_data: PatronCreate) -> Patron:
    if await find_active_patron_by_phone(db, patron_data.phone):
        logger.warning("patron_create_failed", reason="phone_exists", phone=patron_data.phone)
        raise DuplicatePhoneError(patron_data.phone)

    patron = Patron(**patron_data.model_dump(), is_active=True)
    db.add(patron)
    await _flush_patron(db, patron)

    logger.info("patron_created", patron_id=patron.id, name=patron.name)
    return patron


async def update_patron(db: AsyncSession, patron_id: int, patron_data: PatronUpdate) -> Patron:
    """Apply the fields present in `patron_data`; a changed phone is re-checked."""
    patron = await get_patron(db, patron_id)
    changes = patron_data.model_dump(exclude_unset=True)

    new_phone = changes.get("phone")
    if new_phone is not None and normalize_phone(new_phone) != patron.phone_key and patron.is_active:
        if await find_active_patron_by_phone(db, new_phone, exclude_id=patron.id):
            logger.warning("patron_update_failed", reason="phone_exists", patron_id=patron_id)
            raise DuplicatePhoneError(new_phone)

    for field, value in changes.items():
        setattr(patron, field, value)
    await _flush_patron(db, patron)

    logger.info("patron_updated", patron_id=patron.id, fields=sorted(changes))
    return patron


async def deactivate_patron(db: AsyncSession, patron_id: int) -> Patron:
    """
    Soft delete: flip `is_active` off.
    Refused while the patron holds a seat on a scheduled or in-progress trip.
    """
    patron = await get_patron(db, patron_id)

    open_bookings = await db.scalar(
        select(func.count(Booking.id))
        .join(Trip, Booking.trip_id == Trip.id)
        .where(Booking.patron_id == patron_id, Trip.status.in_(OPEN_TRIP_STATUSES))
    )
    if open_bookings:
        logger.warning("patron_delete_failed", patron_id=patron_id, open_bookings=open_bookings)
        raise HasActiveBookingsError(
            "Cannot delete patron with bookings on upcoming trips. Cancel those bookings first."
        )

    patron.is_active = False
    await db.commit()

    logger.info("patron_deactivated", patron_id=patron_id)
    return patron


async def list_patrons(
    db: AsyncSession,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    sort_by: str = "name",
    sort_order: str = "asc",
) -> tuple[list[Patron], int, int]:
    """
    List active patrons with search and pagination.
    Returns (patrons, total, total_pages).
    """
    query = select(Patron).where(Patron.is_active.is_(True))

    if search:
        query = query.where(
            or_(
                Patron.name.icontains(search, autoescape=True),
                Patron.phone.icontains(search, autoescape=True),
                Patron.address.icontains(search, autoescape=True),
            )
        )

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    column = SORTABLE_FIELDS.get(sort_by, Patron.name)
    order = column.desc() if sort_order == "desc" else column.asc()
    result = await db.execute(
        query.order_by(order, Patron.id).offset((page - 1) * limit).limit(limit)
    )
    patrons = list(result.scalars().all())

    return patrons, total, math.ceil(total / limit)


async def quick_search_patrons(db: AsyncSession, q: Optional[str]) -> list[Patron]:
    """Name/phone lookup for booking forms; short queries return nothing."""
    if not q or len(q) < QUICK_SEARCH_MIN_LENGTH:
        return []

    result = await db.execute(
        select(Patron)
        .where(
            Patron.is_active.is_(True),
            or_(
                Patron.name.icontains(q, autoescape=True),
                Patron.phone.icontains(q, autoescape=True),
            ),
        )
        .order_by(Patron.name)
        .limit(QUICK_SEARCH_LIMIT)
    )
    return list(result.scalars().all())
