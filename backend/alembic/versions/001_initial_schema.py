"""Initial schema: patrons, trips, bookings with indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "patrons",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(32), nullable=False),
        sa.Column("phone_key", sa.String(17), nullable=False),
        sa.Column("address", sa.String(200), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("emergency_contact", sa.JSON(), nullable=True),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_patrons_id", "patrons", ["id"])
    op.create_index("ix_patrons_name_phone", "patrons", ["name", "phone"])
    # Retired patrons keep their number; only active rows must be unique
    op.create_index(
        "uq_patrons_active_phone",
        "patrons",
        ["phone_key"],
        unique=True,
        postgresql_where=sa.text("is_active"),
        sqlite_where=sa.text("is_active = 1"),
    )

    op.create_table(
        "trips",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("destination", sa.String(100), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.String(5), nullable=False),
        sa.Column("bus_capacity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("departure_location", sa.String(100), nullable=False),
        sa.Column("return_time", sa.String(5), nullable=True),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'scheduled'")),
        sa.Column("driver", sa.JSON(), nullable=True),
        sa.Column("bus", sa.JSON(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "bus_capacity >= 1 AND bus_capacity <= 60", name="check_trip_bus_capacity_range"
        ),
        sa.CheckConstraint("price >= 0", name="check_trip_price_non_negative"),
        sa.CheckConstraint(
            "status IN ('scheduled', 'in-progress', 'completed', 'cancelled')",
            name="check_trip_status",
        ),
    )
    op.create_index("ix_trips_id", "trips", ["id"])
    # Listings filter by date range and status together
    op.create_index("ix_trips_date_status", "trips", ["date", "status"])
    op.create_index("ix_trips_destination", "trips", ["destination"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "trip_id", sa.Integer(), sa.ForeignKey("trips.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("patron_id", sa.Integer(), sa.ForeignKey("patrons.id"), nullable=False),
        sa.Column("seat_number", sa.Integer(), nullable=False),
        sa.Column("booking_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("notes", sa.String(500), nullable=True),
        # One seat, one booking: the storage-level guard against double booking
        sa.UniqueConstraint("trip_id", "seat_number", name="uq_booking_trip_seat"),
        sa.UniqueConstraint("trip_id", "patron_id", name="uq_booking_trip_patron"),
        sa.CheckConstraint("seat_number >= 1", name="check_booking_seat_positive"),
        sa.CheckConstraint(
            "status IN ('confirmed', 'pending', 'cancelled')", name="check_booking_status"
        ),
        sa.CheckConstraint(
            "payment_status IN ('paid', 'pending', 'refunded')", name="check_booking_payment_status"
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_trip_id", "bookings", ["trip_id"])
    op.create_index("ix_bookings_patron_id", "bookings", ["patron_id"])


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("trips")
    op.drop_table("patrons")
