"""
Tests for booking endpoints including concurrency scenarios.
"""

import asyncio

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from tourbook.core.exceptions import StoreError
from tourbook.main import app
from tourbook.models.booking import Booking
from tourbook.schemas.patron import PatronCreate
from tourbook.services import booking_service, patron_service, trip_service
from tourbook.services.interfaces.local_trip_lock import LocalTripLock
from tourbook.services.interfaces.trip_lock import TripLock


class UnguardedTripLock(TripLock):
    """Lets every caller in at once, leaving only the storage guards."""

    async def acquire(self, trip_id: int):
        return None

    async def release(self, trip_id: int, handle) -> None:
        pass


def book(client: AsyncClient, trip_id: int, patron_id: int, seat_number: int, **extra):
    return client.post(
        f"/api/v1/trips/{trip_id}/book",
        json={"patron_id": patron_id, "seat_number": seat_number, **extra},
    )


async def make_patrons(db: AsyncSession, count: int) -> list:
    return [
        await patron_service.create_patron(
            db, PatronCreate(name=f"Racer {i:02d}", phone=f"410-555-20{i:02d}")
        )
        for i in range(count)
    ]


@pytest.mark.asyncio
async def test_book_seat(client: AsyncClient, test_trip, patron_a):
    """Successful booking returns the trip with the new booking."""
    response = await book(client, test_trip.id, patron_a.id, 3, notes="Window seat")

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == test_trip.id
    assert data["available_seats"] == 44
    assert data["total_revenue"] == 35.0
    assert len(data["bookings"]) == 1

    booking = data["bookings"][0]
    assert booking["seat_number"] == 3
    assert booking["status"] == "confirmed"
    assert booking["payment_status"] == "pending"
    assert booking["notes"] == "Window seat"
    assert booking["patron"] == {"id": patron_a.id, "name": "Mary Johnson", "phone": "410-555-0123"}


@pytest.mark.asyncio
async def test_two_seat_trip_scenario(client: AsyncClient, small_trip, patron_a, patron_b):
    """Book, conflict, fill, cancel and delete a two-seat trip."""
    trip_id = small_trip.id

    response = await book(client, trip_id, patron_a.id, 1)
    assert response.status_code == 200
    assert response.json()["available_seats"] == 1

    response = await book(client, trip_id, patron_b.id, 1)
    assert response.status_code == 409
    assert response.json()["detail"] == "Seat is already booked"

    response = await book(client, trip_id, patron_b.id, 2)
    assert response.status_code == 200
    assert response.json()["available_seats"] == 0
    assert response.json()["booking_percentage"] == 100

    response = await client.delete(f"/api/v1/trips/{trip_id}/book/1")
    assert response.status_code == 200
    assert response.json()["available_seats"] == 1

    response = await client.delete(f"/api/v1/trips/{trip_id}")
    assert response.status_code == 409
    assert "existing bookings" in response.json()["detail"]

    response = await client.delete(f"/api/v1/trips/{trip_id}/book/2")
    assert response.status_code == 200
    assert response.json()["bookings"] == []

    response = await client.delete(f"/api/v1/trips/{trip_id}")
    assert response.status_code == 200
    assert response.json() == {"message": "Trip deleted successfully"}

    response = await client.get(f"/api/v1/trips/{trip_id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_failed_booking_leaves_trip_unchanged(client: AsyncClient, small_trip, patron_a, patron_b):
    await book(client, small_trip.id, patron_a.id, 1)

    response = await book(client, small_trip.id, patron_b.id, 1)
    assert response.status_code == 409

    trip = (await client.get(f"/api/v1/trips/{small_trip.id}")).json()
    assert [(b["seat_number"], b["patron_id"]) for b in trip["bookings"]] == [(1, patron_a.id)]
    assert trip["available_seats"] + len(trip["bookings"]) == trip["bus_capacity"]


@pytest.mark.asyncio
async def test_duplicate_booking(client: AsyncClient, test_trip, patron_a):
    """Same patron booking a second seat on one trip returns 409."""
    response1 = await book(client, test_trip.id, patron_a.id, 1)
    assert response1.status_code == 200

    response2 = await book(client, test_trip.id, patron_a.id, 2)
    assert response2.status_code == 409
    assert response2.json()["detail"] == "Patron is already booked on this trip"


@pytest.mark.asyncio
async def test_seat_outside_bus(client: AsyncClient, test_trip, patron_a):
    """Seat numbers beyond capacity are a validation error."""
    response = await book(client, test_trip.id, patron_a.id, 46)

    assert response.status_code == 400
    assert response.json()["field"] == "seat_number"


@pytest.mark.asyncio
@pytest.mark.parametrize("seat_number", [0, -3])
async def test_non_positive_seat_fails_schema(client: AsyncClient, test_trip, patron_a, seat_number):
    response = await book(client, test_trip.id, patron_a.id, seat_number)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_book_unknown_trip(client: AsyncClient, patron_a):
    response = await book(client, 99999, patron_a.id, 1)

    assert response.status_code == 404
    assert response.json()["detail"] == "Trip not found"


@pytest.mark.asyncio
async def test_book_unknown_patron(client: AsyncClient, test_trip):
    response = await book(client, test_trip.id, 99999, 1)

    assert response.status_code == 404
    assert response.json()["detail"] == "Patron not found"


@pytest.mark.asyncio
async def test_inactive_patron_cannot_book(client: AsyncClient, test_trip, patron_a):
    assert (await client.delete(f"/api/v1/patrons/{patron_a.id}")).status_code == 200

    response = await book(client, test_trip.id, patron_a.id, 1)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cancel_unbooked_seat(client: AsyncClient, test_trip, patron_a):
    """Cancelling a free seat is a 404 and never touches other bookings."""
    await book(client, test_trip.id, patron_a.id, 1)

    response = await client.delete(f"/api/v1/trips/{test_trip.id}/book/7")
    assert response.status_code == 404
    assert response.json()["detail"] == "Booking not found"

    trip = (await client.get(f"/api/v1/trips/{test_trip.id}")).json()
    assert [b["seat_number"] for b in trip["bookings"]] == [1]


@pytest.mark.asyncio
async def test_cancelled_seat_can_be_rebooked(client: AsyncClient, small_trip, patron_a, patron_b):
    await book(client, small_trip.id, patron_a.id, 1)
    await client.delete(f"/api/v1/trips/{small_trip.id}/book/1")

    response = await book(client, small_trip.id, patron_b.id, 1)

    assert response.status_code == 200
    assert response.json()["bookings"][0]["patron_id"] == patron_b.id


@pytest.mark.asyncio
async def test_seat_map(client: AsyncClient, small_trip, patron_a):
    await book(client, small_trip.id, patron_a.id, 2)

    response = await client.get(f"/api/v1/trips/{small_trip.id}/seats")

    assert response.status_code == 200
    data = response.json()
    assert data["trip"]["id"] == small_trip.id
    assert data["available_seats"] == 1
    assert data["total_revenue"] == 40.0
    assert data["booking_percentage"] == 50
    assert data["seat_map"] == [
        {"seat_number": 1, "is_booked": False, "patron": None},
        {
            "seat_number": 2,
            "is_booked": True,
            "patron": {"id": patron_a.id, "name": "Mary Johnson", "phone": "410-555-0123"},
        },
    ]


@pytest.mark.asyncio
async def test_concurrent_booking_same_seat(client: AsyncClient, db_session: AsyncSession, test_trip):
    """
    CRITICAL TEST: Many patrons race for the same seat.
    Exactly one booking may succeed; everyone else gets a seat conflict.
    """
    patrons = await make_patrons(db_session, 10)

    responses = await asyncio.gather(
        *(book(client, test_trip.id, patron.id, 5) for patron in patrons)
    )

    status_codes = sorted(r.status_code for r in responses)
    assert status_codes == [200] + [409] * 9
    assert all(
        r.json()["detail"] == "Seat is already booked" for r in responses if r.status_code == 409
    )

    trip = (await client.get(f"/api/v1/trips/{test_trip.id}")).json()
    assert [b["seat_number"] for b in trip["bookings"]] == [5]
    assert trip["available_seats"] == 44


@pytest.mark.asyncio
async def test_concurrent_booking_different_seats(client: AsyncClient, db_session: AsyncSession, small_trip):
    """Five patrons race for a two-seat bus: never more bookings than seats."""
    patrons = await make_patrons(db_session, 5)

    responses = await asyncio.gather(
        *(book(client, small_trip.id, patron.id, i % 2 + 1) for i, patron in enumerate(patrons))
    )

    assert sum(r.status_code == 200 for r in responses) == 2
    assert sum(r.status_code == 409 for r in responses) == 3

    trip = (await client.get(f"/api/v1/trips/{small_trip.id}")).json()
    assert sorted(b["seat_number"] for b in trip["bookings"]) == [1, 2]
    assert trip["available_seats"] == 0


@pytest.mark.asyncio
async def test_seat_uniqueness_enforced_by_database(db_session: AsyncSession, small_trip, patron_a, patron_b):
    """Even without the service layer, one seat can hold only one booking."""
    db_session.add(Booking(trip_id=small_trip.id, patron_id=patron_a.id, seat_number=1))
    await db_session.commit()

    db_session.add(Booking(trip_id=small_trip.id, patron_id=patron_b.id, seat_number=1))
    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()


@pytest.mark.asyncio
async def test_concurrent_booking_same_seat_without_trip_lock(
    client: AsyncClient, db_session: AsyncSession, test_trip
):
    """With the trip lock out of the way, the version check and unique constraints still hold."""
    app.state.trip_lock = UnguardedTripLock()
    patrons = await make_patrons(db_session, 6)

    responses = await asyncio.gather(
        *(book(client, test_trip.id, patron.id, 5) for patron in patrons)
    )

    status_codes = sorted(r.status_code for r in responses)
    assert status_codes == [200] + [409] * 5
    assert all(
        r.json()["detail"] == "Seat is already booked" for r in responses if r.status_code == 409
    )

    trip = (await client.get(f"/api/v1/trips/{test_trip.id}")).json()
    assert [b["seat_number"] for b in trip["bookings"]] == [5]


@pytest.mark.asyncio
async def test_booking_gives_up_after_repeated_version_conflicts(
    db_session: AsyncSession, test_trip, patron_a, monkeypatch
):
    commits = []

    async def stale_commit():
        commits.append(1)
        raise StaleDataError("UPDATE statement on table 'trips' expected to update 1 row(s); 0 were matched.")

    monkeypatch.setattr(db_session, "commit", stale_commit)
    trip_id = test_trip.id

    with pytest.raises(StoreError) as exc_info:
        await booking_service.book_seat(
            db_session, LocalTripLock(), trip_id, patron_a.id, 5, max_attempts=3
        )

    assert exc_info.value.message == "Booking failed due to high demand. Please try again."
    assert len(commits) == 3

    trip = await trip_service.get_trip(db_session, trip_id, refresh=True)
    assert trip.bookings == []
