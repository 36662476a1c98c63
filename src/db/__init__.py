"""Database module."""
from src.db.base import (
    Base,
    UUIDMixin,
    TimestampMixin,
    create_engine,
    create_session_maker,
)

__all__ = [
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "create_engine",
    "create_session_maker",
]
