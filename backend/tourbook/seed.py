"""
Load sample patrons, trips and bookings.

    python -m tourbook.seed            # only into an empty database
    python -m tourbook.seed --reset    # drop and recreate all tables first

Everything goes through the service layer, so the same validation and
booking rules apply as for API traffic.
"""

import argparse
import asyncio
import datetime as dt
from typing import Optional

from sqlalchemy import func, select

from tourbook.core.config import get_settings
from tourbook.core.logging import get_logger, setup_logging
from tourbook.db.session import Database
from tourbook.models.booking import PaymentStatus
from tourbook.models.patron import Patron
from tourbook.schemas.patron import PatronCreate
from tourbook.schemas.trip import TripCreate
from tourbook.services.booking_service import book_seat
from tourbook.services.interfaces.local_trip_lock import LocalTripLock
from tourbook.services.patron_service import create_patron
from tourbook.services.seat_ledger import SeatLedger
from tourbook.services.trip_service import create_trip

logger = get_logger(__name__)

SAMPLE_PATRONS = [
    {
        "name": "Mary Johnson",
        "phone": "410-555-0123",
        "address": "123 Main St, Baltimore, MD 21201",
        "email": "mary.johnson@email.com",
        "emergency_contact": {"name": "John Johnson", "phone": "410-555-0124", "relationship": "Spouse"},
        "notes": "Prefers front seats",
    },
    {
        "name": "Robert Smith",
        "phone": "410-555-0456",
        "address": "456 Oak Ave, Randallstown, MD 21133",
        "email": "robert.smith@email.com",
        "emergency_contact": {"name": "Sarah Smith", "phone": "410-555-0457", "relationship": "Daughter"},
    },
    {
        "name": "Patricia Davis",
        "phone": "410-555-0789",
        "address": "789 Pine Rd, Towson, MD 21204",
        "email": "patricia.davis@email.com",
        "emergency_contact": {"name": "Michael Davis", "phone": "410-555-0790", "relationship": "Son"},
        "notes": "Wheelchair accessible seating needed",
    },
    {
        "name": "James Wilson",
        "phone": "410-555-0321",
        "address": "321 Elm St, Catonsville, MD 21228",
        "email": "james.wilson@email.com",
    },
    {
        "name": "Linda Brown",
        "phone": "410-555-0654",
        "address": "654 Maple Dr, Dundalk, MD 21222",
        "email": "linda.brown@email.com",
        "emergency_contact": {"name": "David Brown", "phone": "410-555-0655", "relationship": "Husband"},
    },
]

MIKE = {"name": "Mike Johnson", "phone": "410-555-1000", "license": "CDL-12345"}
SARAH = {"name": "Sarah Williams", "phone": "410-555-1001", "license": "CDL-12346"}

# (days from today, trip fields)
SAMPLE_TRIPS = [
    (14, {
        "destination": "Delaware Park Casino",
        "time": "09:00",
        "bus_capacity": 45,
        "price": 35,
        "departure_location": "Superior Tours Office, Baltimore",
        "return_time": "18:00",
        "description": "Day trip to Delaware Park Casino with lunch included",
        "driver": MIKE,
        "bus": {"number": "ST-001", "model": "MCI J4500", "capacity": 45},
    }),
    (21, {
        "destination": "Midway Slots & Simulcast",
        "time": "10:30",
        "bus_capacity": 45,
        "price": 40,
        "departure_location": "Superior Tours Office, Baltimore",
        "return_time": "19:30",
        "description": "Casino trip with buffet dinner",
        "driver": SARAH,
        "bus": {"number": "ST-002", "model": "MCI J4500", "capacity": 45},
    }),
    (35, {
        "destination": "Hollywood Casino Perryville",
        "time": "08:00",
        "bus_capacity": 45,
        "price": 45,
        "departure_location": "Superior Tours Office, Baltimore",
        "return_time": "20:00",
        "description": "Extended casino trip with premium amenities",
        "driver": MIKE,
        "bus": {"number": "ST-001", "model": "MCI J4500", "capacity": 45},
    }),
]

# Bookings on the first trip: (patron index, seat, payment status)
SAMPLE_BOOKINGS = [
    (0, 1, PaymentStatus.PAID),
    (1, 5, PaymentStatus.PAID),
    (2, 12, PaymentStatus.PENDING),
]


async def seed(database: Database, reset: bool = False, today: Optional[dt.date] = None) -> dict:
    """
    Populate `database` with the sample data.
    Returns counts of what was created; an already-populated database is left alone
    unless `reset` is set.
    """
    today = today or dt.date.today()

    if reset:
        await database.drop_all()
        logger.info("seed_tables_dropped")
    await database.create_all()

    async with database.session() as db:
        existing = await db.scalar(select(func.count(Patron.id)))
        if existing and not reset:
            logger.warning("seed_skipped", reason="database_not_empty", patrons=existing)
            return {"patrons": 0, "trips": 0, "bookings": 0}

        patrons = [await create_patron(db, PatronCreate(**data)) for data in SAMPLE_PATRONS]
        trips = [
            await create_trip(db, TripCreate(date=today + dt.timedelta(days=days), **data))
            for days, data in SAMPLE_TRIPS
        ]

        lock = LocalTripLock()
        first_trip = trips[0]
        for patron_index, seat_number, payment_status in SAMPLE_BOOKINGS:
            first_trip = await book_seat(
                db, lock, first_trip.id, patrons[patron_index].id, seat_number
            )
            SeatLedger(first_trip).find_booking(seat_number).payment_status = payment_status.value
        await db.commit()

    counts = {"patrons": len(patrons), "trips": len(trips), "bookings": len(SAMPLE_BOOKINGS)}
    logger.info("seed_completed", **counts)
    return counts


async def main(reset: bool) -> None:
    settings = get_settings()
    setup_logging(settings)

    database = Database.from_settings(settings)
    try:
        await seed(database, reset=reset)
    finally:
        await database.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Load sample tour booking data")
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables first")
    args = parser.parse_args()
    asyncio.run(main(args.reset))
