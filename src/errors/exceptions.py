"""Custom exception hierarchy for market engine errors."""
from typing import Optional
from uuid import UUID


class MarketEngineError(Exception):
    """Base exception for all market engine errors."""

    def __init__(self, message: str, *args, **kwargs):
        """Initialize error with message."""
        self.message = message
        super().__init__(message, *args, **kwargs)


class DatabaseError(MarketEngineError):
    """Raised when database operations fail."""
    pass


class FetchError(DatabaseError):
    """Raised when products, overrides or markets cannot be read."""
    pass


class MarketNotFoundError(FetchError):
    """Raised when a market does not exist for the given owner."""

    def __init__(self, market_id: UUID, owner_id: Optional[UUID] = None):
        self.market_id = market_id
        self.owner_id = owner_id
        super().__init__(f"Market {market_id} not found for owner {owner_id}")


class PersistError(DatabaseError):
    """Raised when an override or market override write does not land."""
    pass


class CacheError(MarketEngineError):
    """Raised when the dashboard cache cannot be read, written or invalidated."""
    pass
