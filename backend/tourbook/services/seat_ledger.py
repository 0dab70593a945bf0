"""
Seat ledger: the booking-consistency core for a single trip.

The ledger works on a loaded Trip and its in-memory booking collection. It
enforces seat uniqueness, seat bounds and one-booking-per-patron, and derives
the seat map and occupancy figures. It does no I/O and never logs; callers
hold the per-trip lock, persist the mutated trip and report outcomes.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from tourbook.core.exceptions import (
    BookingNotFoundError,
    CapacityViolationError,
    DuplicateBookingError,
    HasActiveBookingsError,
    InvalidStatusTransitionError,
    SeatConflictError,
    SeatOutOfRangeError,
)
from tourbook.models.booking import Booking, BookingStatus, PaymentStatus
from tourbook.models.trip import Trip, TripStatus

# Allowed status moves; re-setting the current status is always accepted
STATUS_TRANSITIONS: dict[TripStatus, frozenset[TripStatus]] = {
    TripStatus.SCHEDULED: frozenset({TripStatus.IN_PROGRESS, TripStatus.CANCELLED}),
    TripStatus.IN_PROGRESS: frozenset({TripStatus.COMPLETED}),
    TripStatus.COMPLETED: frozenset(),
    TripStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class SeatStatus:
    seat_number: int
    booking: Optional[Booking] = None

    @property
    def is_booked(self) -> bool:
        return self.booking is not None


class SeatLedger:
    def __init__(self, trip: Trip):
        self.trip = trip

    @property
    def bookings(self) -> list[Booking]:
        return self.trip.bookings

    @property
    def capacity(self) -> int:
        return self.trip.bus_capacity

    @property
    def booking_count(self) -> int:
        return len(self.bookings)

    @property
    def available_seats(self) -> int:
        return self.trip.available_seats

    @property
    def total_revenue(self) -> float:
        return self.trip.total_revenue

    @property
    def booking_percentage(self) -> int:
        return self.trip.booking_percentage

    def find_booking(self, seat_number: int) -> Optional[Booking]:
        for booking in self.bookings:
            if booking.seat_number == seat_number:
                return booking
        return None

    def find_patron_booking(self, patron_id: int) -> Optional[Booking]:
        for booking in self.bookings:
            if booking.patron_id == patron_id:
                return booking
        return None

    def is_seat_available(self, seat_number: int) -> bool:
        """True when no booking holds `seat_number`. Does not check bounds."""
        return self.find_booking(seat_number) is None

    def check_seat_in_range(self, seat_number: int) -> None:
        if not 1 <= seat_number <= self.capacity:
            raise SeatOutOfRangeError(seat_number, self.capacity)

    def book_seat(
        self,
        patron_id: int,
        seat_number: int,
        notes: Optional[str] = None,
    ) -> Booking:
        """
        Assign `seat_number` to `patron_id`.

        Every check runs before the collection is touched, so a raised error
        leaves the ledger exactly as it was.
        """
        self.check_seat_in_range(seat_number)
        if not self.is_seat_available(seat_number):
            raise SeatConflictError(seat_number)
        if self.find_patron_booking(patron_id) is not None:
            raise DuplicateBookingError(patron_id)

        booking = Booking(
            patron_id=patron_id,
            seat_number=seat_number,
            booking_date=datetime.now(timezone.utc),
            status=BookingStatus.CONFIRMED.value,
            payment_status=PaymentStatus.PENDING.value,
            notes=notes,
        )
        self.bookings.append(booking)
        return booking

    def cancel_booking(self, seat_number: int) -> Booking:
        """Remove the booking holding `seat_number` and return it."""
        booking = self.find_booking(seat_number)
        if booking is None:
            raise BookingNotFoundError(seat_number)
        self.bookings.remove(booking)
        return booking

    def check_capacity_change(self, new_capacity: int) -> None:
        if new_capacity < self.booking_count:
            raise CapacityViolationError(new_capacity, self.booking_count)

    def check_deletable(self) -> None:
        if self.booking_count > 0:
            raise HasActiveBookingsError(
                "Cannot delete trip with existing bookings. Cancel all bookings first."
            )

    def check_status_transition(self, new_status: TripStatus) -> None:
        current = TripStatus(self.trip.status)
        if new_status == current:
            return
        if new_status not in STATUS_TRANSITIONS[current]:
            raise InvalidStatusTransitionError(current.value, new_status.value)

    def seat_map(self) -> list[SeatStatus]:
        by_seat = {booking.seat_number: booking for booking in self.bookings}
        # Seats above a reduced capacity stay visible until cancelled
        last_seat = max([self.capacity, *by_seat.keys()])
        return [SeatStatus(seat, by_seat.get(seat)) for seat in range(1, last_seat + 1)]
