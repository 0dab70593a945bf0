"""
Patron model: a customer who may hold seat bookings.

Key design decisions:
- Soft delete via `is_active`; rows are never physically removed
- `phone` keeps the number as entered; `phone_key` holds it with separators
  removed and carries the uniqueness rule
- Partial unique index on `phone_key` restricted to active rows, so a retired
  patron's number can be reused by a new active patron
"""

import re

from sqlalchemy import JSON, Boolean, Column, Index, Integer, String, text
from sqlalchemy.orm import validates

from tourbook.db.base import Base, TimestampMixin

PHONE_SEPARATORS = re.compile(r"[\s().-]")


def normalize_phone(phone: str) -> str:
    """Comparison form of a phone number: `(410) 555-0123` -> `4105550123`."""
    return PHONE_SEPARATORS.sub("", phone)


class Patron(Base, TimestampMixin):
    __tablename__ = "patrons"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(32), nullable=False)
    phone_key = Column(String(17), nullable=False)
    address = Column(String(200), nullable=True)
    email = Column(String(255), nullable=True)
    emergency_contact = Column(JSON, nullable=True)  # {name, phone, relationship}
    notes = Column(String(500), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("ix_patrons_name_phone", "name", "phone"),
        Index(
            "uq_patrons_active_phone",
            "phone_key",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    @validates("phone")
    def _sync_phone_key(self, key, value):
        self.phone_key = normalize_phone(value)
        return value

    @property
    def full_info(self) -> str:
        return f"{self.name} - {self.phone}"

    def __repr__(self) -> str:
        return f"<Patron(id={self.id}, name={self.name}, active={self.is_active})>"
