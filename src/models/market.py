"""Pydantic models for market statistics and persisted market overrides."""
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.models.product import ConsistencyRating, RiskClassification


# Averages stored as whole numbers in market_overrides
ROUNDED_AVERAGES = ("avg_monthly_sales", "avg_reviews", "avg_bsr")

# Decimal places of the Numeric market_overrides columns
AVERAGE_SCALES = {
    "avg_price": 2,
    "avg_monthly_revenue": 2,
    "avg_daily_revenue": 2,
    "avg_profit_margin": 4,
    "avg_profit_per_unit": 2,
    "avg_rating": 2,
    "avg_cpc": 2,
    "avg_launch_budget": 2,
    "avg_cogs": 2,
}

AVERAGE_FIELDS = (
    "avg_price",
    "avg_monthly_sales",
    "avg_monthly_revenue",
    "avg_daily_revenue",
    "avg_profit_margin",
    "avg_profit_per_unit",
    "avg_reviews",
    "avg_rating",
    "avg_bsr",
    "avg_cpc",
    "avg_launch_budget",
    "avg_cogs",
)


class MarketStatistics(BaseModel):
    """Aggregated statistics for one market.

    Attributes:
        avg_*: Arithmetic means over valid products (price > 0 and
            monthly revenue > 0); 0 when there are none
        market_grade: Grade bucket for the market averages
        market_risk_classification: Plurality risk class of valid products
        market_consistency_rating: Plurality consistency of valid products
        opportunity_score: 0-100 normalization of composite_score
        composite_score: Grading engine composite the grade was bucketed from
        total_products_analyzed: All products in the market
        products_verified: Valid products that fed the averages
    """

    avg_price: float = 0.0
    avg_monthly_sales: float = 0.0
    avg_monthly_revenue: float = 0.0
    avg_daily_revenue: float = 0.0
    avg_profit_margin: float = 0.0
    avg_profit_per_unit: float = 0.0
    avg_reviews: float = 0.0
    avg_rating: float = 0.0
    avg_bsr: float = 0.0
    avg_cpc: float = 0.0
    avg_launch_budget: float = 0.0
    avg_cogs: float = 0.0

    market_grade: str = "F1"
    market_risk_classification: RiskClassification = RiskClassification.NO_RISK
    market_consistency_rating: ConsistencyRating = ConsistencyRating.CONSISTENT
    opportunity_score: int = Field(default=0, ge=0, le=100)
    composite_score: float = Field(default=0.0, ge=0)

    total_products_analyzed: int = Field(default=0, ge=0)
    products_verified: int = Field(default=0, ge=0)

    model_config = {"frozen": True}

    def to_override_data(self) -> Dict[str, Any]:
        """Column values for the market_overrides table, rounded as stored."""
        data = self.model_dump(mode="json", exclude={"composite_score"})
        for key in ROUNDED_AVERAGES:
            data[key] = round(data[key])
        for key, places in AVERAGE_SCALES.items():
            data[key] = round(data[key], places)
        return data


class MarketSnapshot(BaseModel):
    """A market row with its denormalized aggregate snapshot.

    The snapshot is written at research time and may be partial, so every
    aggregate is optional here.
    """

    id: UUID
    owner_id: UUID
    keyword: str = Field(..., max_length=500)
    research_date: Optional[datetime] = None

    avg_price: Optional[float] = None
    avg_monthly_sales: Optional[float] = None
    avg_monthly_revenue: Optional[float] = None
    avg_daily_revenue: Optional[float] = None
    avg_profit_margin: Optional[float] = None
    avg_profit_per_unit: Optional[float] = None
    avg_reviews: Optional[float] = None
    avg_rating: Optional[float] = None
    avg_bsr: Optional[float] = None
    avg_cpc: Optional[float] = None
    avg_launch_budget: Optional[float] = None
    avg_cogs: Optional[float] = None

    market_grade: Optional[str] = None
    market_risk_classification: Optional[RiskClassification] = None
    market_consistency_rating: Optional[ConsistencyRating] = None
    opportunity_score: Optional[int] = None
    total_products_analyzed: Optional[int] = None
    products_verified: Optional[int] = None


class MarketOverrideRecord(BaseModel):
    """Persisted result of a market recalculation.

    One row per (owner_id, market_id); rewrites replace the row.
    """

    id: Optional[UUID] = None
    owner_id: UUID
    market_id: UUID
    keyword: str = ""

    avg_price: float = 0.0
    avg_monthly_sales: float = 0.0
    avg_monthly_revenue: float = 0.0
    avg_daily_revenue: float = 0.0
    avg_profit_margin: float = 0.0
    avg_profit_per_unit: float = 0.0
    avg_reviews: float = 0.0
    avg_rating: float = 0.0
    avg_bsr: float = 0.0
    avg_cpc: float = 0.0
    avg_launch_budget: float = 0.0
    avg_cogs: float = 0.0

    market_grade: str = "F1"
    market_risk_classification: RiskClassification = RiskClassification.NO_RISK
    market_consistency_rating: ConsistencyRating = ConsistencyRating.CONSISTENT
    opportunity_score: int = 0
    total_products_analyzed: int = 0
    products_verified: int = 0

    override_reason: str = ""
    recalculation_date: datetime

    model_config = {"frozen": True}

    @classmethod
    def from_statistics(
        cls,
        owner_id: UUID,
        market_id: UUID,
        keyword: str,
        statistics: MarketStatistics,
        reason: str,
        recalculated_at: datetime,
        record_id: Optional[UUID] = None,
    ) -> "MarketOverrideRecord":
        """Build the row written by an upsert."""
        return cls(
            id=record_id,
            owner_id=owner_id,
            market_id=market_id,
            keyword=keyword,
            override_reason=reason,
            recalculation_date=recalculated_at,
            **statistics.to_override_data(),
        )
