"""Store collaborator used by the recalculation orchestrator and dashboard.

Implementations raise FetchError / MarketNotFoundError on reads and
PersistError on writes; callers convert those into Failure values.
"""
from datetime import datetime
from typing import List, Optional, Protocol, Sequence
from uuid import UUID

from src.models.market import MarketOverrideRecord, MarketSnapshot, MarketStatistics
from src.models.product import Product, ProductOverride


class MarketStore(Protocol):
    """Owner-scoped access to markets, products and overrides."""

    async def get_market(self, owner_id: UUID, market_id: UUID) -> MarketSnapshot:
        ...

    async def fetch_products_for_market(self, market_id: UUID, owner_id: UUID) -> List[Product]:
        ...

    async def fetch_overrides_for_products(
        self, product_ids: Sequence[UUID], owner_id: UUID
    ) -> List[ProductOverride]:
        ...

    async def get_market_override(
        self, owner_id: UUID, market_id: UUID
    ) -> Optional[MarketOverrideRecord]:
        ...

    async def upsert_market_override(
        self,
        owner_id: UUID,
        market_id: UUID,
        keyword: str,
        statistics: MarketStatistics,
        reason: str,
        recalculated_at: datetime,
    ) -> MarketOverrideRecord:
        """Insert or replace the single row for (owner_id, market_id)."""
        ...

    async def find_market_ids_for_products(
        self, product_ids: Sequence[UUID], owner_id: UUID
    ) -> List[UUID]:
        ...

    async def upsert_product_overrides(
        self, owner_id: UUID, overrides: Sequence[ProductOverride]
    ) -> List[ProductOverride]:
        """Insert or replace one row per (owner_id, product_id)."""
        ...

    async def delete_product_overrides(self, owner_id: UUID, product_ids: Sequence[UUID]) -> int:
        ...

    async def delete_market_overrides(self, owner_id: UUID, market_id: Optional[UUID] = None) -> int:
        """Delete one market override, or all of the owner's when market_id is None."""
        ...

    async def fetch_markets_for_owner(self, owner_id: UUID) -> List[MarketSnapshot]:
        ...

    async def fetch_market_overrides_for_owner(self, owner_id: UUID) -> List[MarketOverrideRecord]:
        ...
