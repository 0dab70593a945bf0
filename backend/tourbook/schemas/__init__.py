from tourbook.schemas.patron import (
    PatronCreate, PatronUpdate, PatronResponse, PatronSummary, PatronListResponse, PatronSearchResponse,
)
from tourbook.schemas.booking import BookingCreate, BookingResponse, SeatResponse, MessageResponse
from tourbook.schemas.trip import (
    TripCreate, TripUpdate, TripResponse, TripListResponse, DashboardStats, SeatMapResponse,
)

__all__ = [
    "PatronCreate", "PatronUpdate", "PatronResponse", "PatronSummary", "PatronListResponse",
    "PatronSearchResponse",
    "BookingCreate", "BookingResponse", "SeatResponse", "MessageResponse",
    "TripCreate", "TripUpdate", "TripResponse", "TripListResponse", "DashboardStats", "SeatMapResponse",
]
