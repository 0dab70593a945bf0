from tourbook.models.patron import Patron
from tourbook.models.trip import Trip, TripStatus
from tourbook.models.booking import Booking, BookingStatus, PaymentStatus

__all__ = ["Patron", "Trip", "TripStatus", "Booking", "BookingStatus", "PaymentStatus"]
