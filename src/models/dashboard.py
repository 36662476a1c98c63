"""Pydantic models for the per-owner dashboard snapshot held in Redis."""
from datetime import datetime, timezone
from typing import List
from uuid import UUID

from pydantic import BaseModel, Field

from src.models.market import MarketStatistics
from src.models.product import EffectiveProduct


class DashboardMarket(BaseModel):
    """A market with its effective products and the statistics shown for it.

    Attributes:
        market_id: Market identifier
        keyword: Research keyword the market groups products under
        statistics: Persisted market override if one exists, otherwise
            computed on the fly from the effective products
        has_overrides: True when a persisted market override was applied
        products: Effective products (overrides applied)
    """

    market_id: UUID
    keyword: str
    statistics: MarketStatistics
    has_overrides: bool = False
    products: List[EffectiveProduct] = Field(default_factory=list)


class DashboardStats(BaseModel):
    """Headline numbers for the dashboard cards."""

    markets_analyzed: int = 0
    total_products: int = 0
    high_grade_markets: int = 0
    avg_market_revenue: int = 0
    overridden_products: int = 0


class DashboardSnapshot(BaseModel):
    """Everything the dashboard renders for one owner."""

    owner_id: UUID
    stats: DashboardStats
    markets: List[DashboardMarket] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    cached: bool = False

    def to_json(self) -> str:
        """Serialize to JSON string for Redis storage."""
        return self.model_dump_json(exclude={"cached"})

    @classmethod
    def from_json(cls, data: str | bytes) -> "DashboardSnapshot":
        """Deserialize from JSON string."""
        return cls.model_validate_json(data)
