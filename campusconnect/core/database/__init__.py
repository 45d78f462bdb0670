"""
Database infrastructure: declarative base, async engine/session service
and subsystem bootstrap.
"""

from campusconnect.core.database.base import Base, IdMixin, TimestampMixin, as_utc, utc_now
from campusconnect.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)

__all__ = [
    "Base",
    "IdMixin",
    "TimestampMixin",
    "as_utc",
    "utc_now",
    "DatabaseService",
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
]
