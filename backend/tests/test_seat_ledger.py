"""
Unit tests for the seat ledger on in-memory trips (no database).
"""

import pytest

from tourbook.core.exceptions import (
    BookingNotFoundError,
    CapacityViolationError,
    DuplicateBookingError,
    HasActiveBookingsError,
    InvalidStatusTransitionError,
    SeatConflictError,
    SeatOutOfRangeError,
)
from tourbook.models.trip import Trip, TripStatus
from tourbook.services.seat_ledger import SeatLedger


def make_ledger(capacity: int = 2, price: float = 35.0, status: str = "scheduled") -> SeatLedger:
    trip = Trip(
        id=1,
        destination="Delaware Park Casino",
        bus_capacity=capacity,
        price=price,
        departure_location="Baltimore",
        status=status,
    )
    return SeatLedger(trip)


def seat_numbers(ledger: SeatLedger) -> list[int]:
    return [b.seat_number for b in ledger.bookings]


def test_book_seat_appends_confirmed_pending_booking():
    ledger = make_ledger(capacity=10)

    booking = ledger.book_seat(patron_id=7, seat_number=3, notes="Front please")

    assert booking.seat_number == 3
    assert booking.patron_id == 7
    assert booking.status == "confirmed"
    assert booking.payment_status == "pending"
    assert booking.notes == "Front please"
    assert booking.booking_date is not None
    assert ledger.booking_count == 1
    assert ledger.available_seats == 9


def test_booked_seat_is_not_available():
    ledger = make_ledger()
    assert ledger.is_seat_available(1)

    ledger.book_seat(patron_id=1, seat_number=1)

    assert not ledger.is_seat_available(1)
    assert ledger.is_seat_available(2)


def test_booking_taken_seat_raises_and_leaves_collection_unchanged():
    ledger = make_ledger()
    ledger.book_seat(patron_id=1, seat_number=1)

    with pytest.raises(SeatConflictError):
        ledger.book_seat(patron_id=2, seat_number=1)

    assert seat_numbers(ledger) == [1]
    assert ledger.find_booking(1).patron_id == 1


def test_patron_cannot_hold_two_seats_on_one_trip():
    ledger = make_ledger(capacity=5)
    ledger.book_seat(patron_id=1, seat_number=1)

    with pytest.raises(DuplicateBookingError):
        ledger.book_seat(patron_id=1, seat_number=2)

    assert seat_numbers(ledger) == [1]


def test_seat_conflict_reported_before_duplicate_patron():
    ledger = make_ledger()
    ledger.book_seat(patron_id=1, seat_number=1)

    with pytest.raises(SeatConflictError):
        ledger.book_seat(patron_id=1, seat_number=1)


@pytest.mark.parametrize("seat_number", [0, -1, 3, 61])
def test_seat_outside_bus_is_rejected(seat_number):
    ledger = make_ledger(capacity=2)

    with pytest.raises(SeatOutOfRangeError) as exc_info:
        ledger.book_seat(patron_id=1, seat_number=seat_number)

    assert exc_info.value.field == "seat_number"
    assert ledger.booking_count == 0


def test_full_trip_rejects_every_seat():
    ledger = make_ledger(capacity=2)
    ledger.book_seat(patron_id=1, seat_number=1)
    ledger.book_seat(patron_id=2, seat_number=2)

    assert ledger.available_seats == 0
    for seat in (1, 2):
        with pytest.raises(SeatConflictError):
            ledger.book_seat(patron_id=3, seat_number=seat)
    with pytest.raises(SeatOutOfRangeError):
        ledger.book_seat(patron_id=3, seat_number=3)
    assert ledger.booking_count <= ledger.capacity


def test_cancel_booking_frees_the_seat():
    ledger = make_ledger()
    ledger.book_seat(patron_id=1, seat_number=1)
    ledger.book_seat(patron_id=2, seat_number=2)

    cancelled = ledger.cancel_booking(1)

    assert cancelled.patron_id == 1
    assert seat_numbers(ledger) == [2]
    assert ledger.available_seats + ledger.booking_count == ledger.capacity
    # The freed seat can be taken again, even by the same patron
    ledger.book_seat(patron_id=1, seat_number=1)
    assert sorted(seat_numbers(ledger)) == [1, 2]


def test_cancel_unbooked_seat_raises_and_changes_nothing():
    ledger = make_ledger()
    ledger.book_seat(patron_id=1, seat_number=1)

    with pytest.raises(BookingNotFoundError):
        ledger.cancel_booking(2)

    assert seat_numbers(ledger) == [1]


def test_derived_figures():
    ledger = make_ledger(capacity=3, price=40.0)
    assert ledger.total_revenue == 0
    assert ledger.booking_percentage == 0

    ledger.book_seat(patron_id=1, seat_number=1)
    ledger.book_seat(patron_id=2, seat_number=2)

    assert ledger.available_seats == 1
    assert ledger.total_revenue == 80.0
    assert ledger.booking_percentage == 67


@pytest.mark.parametrize(
    "capacity, booked, percentage",
    [(8, 1, 13), (40, 1, 3), (8, 3, 38), (200, 1, 1), (4, 1, 25), (45, 45, 100)],
)
def test_booking_percentage_rounds_halves_up(capacity, booked, percentage):
    ledger = make_ledger(capacity=capacity)
    for seat in range(1, booked + 1):
        ledger.book_seat(patron_id=seat, seat_number=seat)

    assert ledger.booking_percentage == percentage


def test_capacity_change_guard():
    ledger = make_ledger(capacity=5)
    ledger.book_seat(patron_id=1, seat_number=1)
    ledger.book_seat(patron_id=2, seat_number=4)

    with pytest.raises(CapacityViolationError):
        ledger.check_capacity_change(1)

    # Reducing to exactly the booking count is allowed
    ledger.check_capacity_change(2)
    ledger.check_capacity_change(10)


def test_trip_with_bookings_is_not_deletable():
    ledger = make_ledger()
    ledger.check_deletable()

    ledger.book_seat(patron_id=1, seat_number=2)
    with pytest.raises(HasActiveBookingsError):
        ledger.check_deletable()

    ledger.cancel_booking(2)
    ledger.check_deletable()


def test_seat_map_lists_every_seat():
    ledger = make_ledger(capacity=4)
    ledger.book_seat(patron_id=9, seat_number=3)

    seat_map = ledger.seat_map()

    assert [s.seat_number for s in seat_map] == [1, 2, 3, 4]
    assert [s.is_booked for s in seat_map] == [False, False, True, False]
    assert seat_map[2].booking.patron_id == 9


def test_seat_map_keeps_booked_seats_above_reduced_capacity():
    ledger = make_ledger(capacity=5)
    ledger.book_seat(patron_id=1, seat_number=5)
    ledger.trip.bus_capacity = 2

    seat_map = ledger.seat_map()

    assert len(seat_map) == 5
    assert seat_map[-1].is_booked


@pytest.mark.parametrize(
    "current,target",
    [
        (TripStatus.SCHEDULED, TripStatus.IN_PROGRESS),
        (TripStatus.SCHEDULED, TripStatus.CANCELLED),
        (TripStatus.IN_PROGRESS, TripStatus.COMPLETED),
        (TripStatus.COMPLETED, TripStatus.COMPLETED),
        (TripStatus.SCHEDULED, TripStatus.SCHEDULED),
    ],
)
def test_allowed_status_transitions(current, target):
    make_ledger(status=current.value).check_status_transition(target)


@pytest.mark.parametrize(
    "current,target",
    [
        (TripStatus.SCHEDULED, TripStatus.COMPLETED),
        (TripStatus.IN_PROGRESS, TripStatus.SCHEDULED),
        (TripStatus.IN_PROGRESS, TripStatus.CANCELLED),
        (TripStatus.COMPLETED, TripStatus.SCHEDULED),
        (TripStatus.CANCELLED, TripStatus.SCHEDULED),
    ],
)
def test_rejected_status_transitions(current, target):
    with pytest.raises(InvalidStatusTransitionError):
        make_ledger(status=current.value).check_status_transition(target)
