"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from tourbook.models.booking import BookingStatus, PaymentStatus
from tourbook.schemas.patron import PatronSummary


class BookingCreate(BaseModel):
    patron_id: int = Field(..., gt=0)
    seat_number: int = Field(..., ge=1)
    notes: Optional[str] = Field(None, max_length=500)


class BookingResponse(BaseModel):
    id: int
    patron_id: int
    seat_number: int
    booking_date: datetime
    status: BookingStatus
    payment_status: PaymentStatus
    notes: Optional[str]
    patron: Optional[PatronSummary]

    model_config = {"from_attributes": True}


class SeatResponse(BaseModel):
    seat_number: int
    is_booked: bool
    patron: Optional[PatronSummary] = None


class MessageResponse(BaseModel):
    message: str
