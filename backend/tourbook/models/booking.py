"""
Booking model: one seat on one trip assigned to one patron.

Key design decisions:
- Unique constraint on (trip_id, seat_number) is the storage-level guard
  against two bookings for the same seat
- Unique constraint on (trip_id, patron_id) prevents duplicate bookings
- Cancellation deletes the row; `status` exists for pending/confirmed workflows
"""

import enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from tourbook.db.base import Base, utcnow


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PAID = "paid"
    PENDING = "pending"
    REFUNDED = "refunded"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    patron_id = Column(Integer, ForeignKey("patrons.id"), nullable=False, index=True)
    seat_number = Column(Integer, nullable=False)
    booking_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    notes = Column(String(500), nullable=True)

    trip = relationship("Trip", back_populates="bookings")
    patron = relationship("Patron", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("trip_id", "seat_number", name="uq_booking_trip_seat"),
        UniqueConstraint("trip_id", "patron_id", name="uq_booking_trip_patron"),
        CheckConstraint("seat_number >= 1", name="check_booking_seat_positive"),
        CheckConstraint(
            "status IN ('confirmed', 'pending', 'cancelled')", name="check_booking_status"
        ),
        CheckConstraint(
            "payment_status IN ('paid', 'pending', 'refunded')", name="check_booking_payment_status"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, trip={self.trip_id}, seat={self.seat_number}, "
            f"patron={self.patron_id})>"
        )
