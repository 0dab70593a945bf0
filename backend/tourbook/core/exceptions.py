"""
Domain error taxonomy.

Services and the seat ledger raise these; the API layer maps them to HTTP
responses via the handlers in tourbook.api.errors. Nothing here logs.
"""

from typing import Optional


class TourBookingError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class InvalidInputError(TourBookingError):
    """A field constraint the schema layer cannot express was violated."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class SeatOutOfRangeError(InvalidInputError):
    def __init__(self, seat_number: int, capacity: int):
        self.seat_number = seat_number
        self.capacity = capacity
        super().__init__(
            f"Seat {seat_number} is outside this trip's seats (1-{capacity})",
            field="seat_number",
        )


class InvalidStatusTransitionError(InvalidInputError):
    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot change trip status from {from_status} to {to_status}",
            field="status",
        )


class NotFoundError(TourBookingError):
    status_code = 404


class BookingNotFoundError(NotFoundError):
    def __init__(self, seat_number: int):
        self.seat_number = seat_number
        super().__init__("Booking not found")


class ConflictError(TourBookingError):
    status_code = 409


class DuplicatePhoneError(ConflictError):
    def __init__(self, phone: str):
        self.phone = phone
        super().__init__("A patron with this phone number already exists")


class SeatConflictError(ConflictError):
    def __init__(self, seat_number: int):
        self.seat_number = seat_number
        super().__init__("Seat is already booked")


class DuplicateBookingError(ConflictError):
    def __init__(self, patron_id: int):
        self.patron_id = patron_id
        super().__init__("Patron is already booked on this trip")


class CapacityViolationError(ConflictError):
    def __init__(self, requested: int, booked: int):
        self.requested = requested
        self.booked = booked
        super().__init__(
            f"Cannot reduce bus capacity below {booked} (current bookings)"
        )


class HasActiveBookingsError(ConflictError):
    pass


class StoreError(TourBookingError):
    """Persistence failure: connectivity, write conflicts, lock timeouts."""

    status_code = 503
