"""Error handling module."""
from src.errors.exceptions import (
    MarketEngineError,
    DatabaseError,
    FetchError,
    MarketNotFoundError,
    PersistError,
    CacheError,
)

__all__ = [
    "MarketEngineError",
    "DatabaseError",
    "FetchError",
    "MarketNotFoundError",
    "PersistError",
    "CacheError",
]
