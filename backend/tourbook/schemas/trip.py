"""
Pydantic schemas for trip-related request/response validation.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from tourbook.models.trip import MAX_BUS_CAPACITY, TripStatus
from tourbook.schemas.booking import BookingResponse, SeatResponse

TIME_PATTERN = r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$"


def pad_time(value: Optional[str]) -> Optional[str]:
    """Zero-pad the hour ("9:05" -> "09:05") so stored times sort correctly."""
    if value is None:
        return None
    hours, minutes = value.split(":")
    return f"{int(hours):02d}:{minutes}"


class DriverInfo(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=32)
    license: Optional[str] = Field(None, max_length=50)


class BusInfo(BaseModel):
    number: Optional[str] = Field(None, max_length=50)
    model: Optional[str] = Field(None, max_length=100)
    capacity: Optional[int] = Field(None, ge=1, le=MAX_BUS_CAPACITY)


class TripCreate(BaseModel):
    destination: str = Field(..., min_length=2, max_length=100)
    date: dt.date
    time: str = Field(..., pattern=TIME_PATTERN)
    bus_capacity: int = Field(..., ge=1, le=MAX_BUS_CAPACITY)
    price: float = Field(..., ge=0)
    departure_location: str = Field(..., min_length=2, max_length=100)
    return_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    description: Optional[str] = Field(None, max_length=500)
    driver: Optional[DriverInfo] = None
    bus: Optional[BusInfo] = None

    model_config = {"str_strip_whitespace": True}

    @field_validator("time", "return_time")
    @classmethod
    def pad_times(cls, v: Optional[str]) -> Optional[str]:
        return pad_time(v)


class TripUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""

    destination: Optional[str] = Field(None, min_length=2, max_length=100)
    date: Optional[dt.date] = None
    time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    bus_capacity: Optional[int] = Field(None, ge=1, le=MAX_BUS_CAPACITY)
    price: Optional[float] = Field(None, ge=0)
    departure_location: Optional[str] = Field(None, min_length=2, max_length=100)
    return_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    description: Optional[str] = Field(None, max_length=500)
    status: Optional[TripStatus] = None
    driver: Optional[DriverInfo] = None
    bus: Optional[BusInfo] = None

    model_config = {"str_strip_whitespace": True, "use_enum_values": True}

    @field_validator("time", "return_time")
    @classmethod
    def pad_times(cls, v: Optional[str]) -> Optional[str]:
        return pad_time(v)

    @model_validator(mode="after")
    def required_fields_not_null(self) -> "TripUpdate":
        required = ("destination", "date", "time", "bus_capacity", "price", "departure_location", "status")
        for name in required:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class TripResponse(BaseModel):
    id: int
    destination: str
    date: dt.date
    time: str
    bus_capacity: int
    price: float
    departure_location: str
    return_time: Optional[str]
    description: Optional[str]
    status: TripStatus
    driver: Optional[DriverInfo]
    bus: Optional[BusInfo]
    bookings: list[BookingResponse]
    available_seats: int
    total_revenue: float
    booking_percentage: int
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}


class TripListResponse(BaseModel):
    trips: list[TripResponse]
    total_pages: int
    current_page: int
    total_trips: int


class DashboardStats(BaseModel):
    total_trips: int
    upcoming_trips: int
    completed_trips: int
    total_bookings: int
    total_revenue: float
    upcoming_trips_list: list[TripResponse]
    cached: bool = False


class SeatMapResponse(BaseModel):
    trip: TripResponse
    seat_map: list[SeatResponse]
    available_seats: int
    total_revenue: float
    booking_percentage: int
