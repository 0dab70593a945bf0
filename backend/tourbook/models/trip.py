"""
Trip model: one scheduled excursion with a fixed seat inventory.

Key design decisions:
- Bookings are owned by the trip (cascade delete-orphan) and always loaded
  with it, so the seat ledger works on the full collection in memory
- Occupancy and revenue are computed from the collection on read, never stored
- `version` is a SQLAlchemy version counter: every flush that touches the trip
  row is a conditional UPDATE, and a concurrent writer makes it fail with
  StaleDataError instead of silently overwriting
"""

import enum

from sqlalchemy import JSON, CheckConstraint, Column, Date, Index, Integer, Numeric, String
from sqlalchemy.orm import relationship

from tourbook.db.base import Base, TimestampMixin

MAX_BUS_CAPACITY = 60


class TripStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Trip(Base, TimestampMixin):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True)
    destination = Column(String(100), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)  # HH:MM
    bus_capacity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    departure_location = Column(String(100), nullable=False)
    return_time = Column(String(5), nullable=True)
    description = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default=TripStatus.SCHEDULED.value)
    driver = Column(JSON, nullable=True)  # {name, phone, license}
    bus = Column(JSON, nullable=True)  # {number, model, capacity}

    version = Column(Integer, nullable=False)

    bookings = relationship(
        "Booking",
        back_populates="trip",
        cascade="all, delete-orphan",
        order_by="Booking.id",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(
            f"bus_capacity >= 1 AND bus_capacity <= {MAX_BUS_CAPACITY}",
            name="check_trip_bus_capacity_range",
        ),
        CheckConstraint("price >= 0", name="check_trip_price_non_negative"),
        CheckConstraint(
            "status IN ('scheduled', 'in-progress', 'completed', 'cancelled')",
            name="check_trip_status",
        ),
        Index("ix_trips_date_status", "date", "status"),
        Index("ix_trips_destination", "destination"),
    )

    @property
    def booking_count(self) -> int:
        return len(self.bookings)

    @property
    def available_seats(self) -> int:
        return self.bus_capacity - self.booking_count

    @property
    def total_revenue(self) -> float:
        return self.booking_count * (self.price or 0)

    @property
    def booking_percentage(self) -> int:
        if not self.bus_capacity:
            return 0
        # Halves round up: 1 of 8 seats is 13%
        return (self.booking_count * 200 + self.bus_capacity) // (self.bus_capacity * 2)

    def __repr__(self) -> str:
        return (
            f"<Trip(id={self.id}, destination={self.destination}, "
            f"booked={self.booking_count}/{self.bus_capacity})>"
        )
