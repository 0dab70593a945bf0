from tourbook.db.base import Base, TimestampMixin
from tourbook.db.session import Database

__all__ = ["Base", "TimestampMixin", "Database"]
