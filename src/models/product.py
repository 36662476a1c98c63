"""Pydantic models for products, user overrides and effective products.

A ``None`` value on any numeric field means "absent", which is not the same
thing as zero: overrides only win where they carry a value, and aggregates
decide explicitly how absent values are counted.
"""
import math
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class RiskClassification(str, Enum):
    """Product risk classes, mildest first."""
    NO_RISK = "NoRisk"
    ELECTRIC = "Electric"
    BREAKABLE = "Breakable"
    BANNED = "Banned"


class ConsistencyRating(str, Enum):
    """Demand consistency classes, steadiest first."""
    CONSISTENT = "Consistent"
    SEASONAL = "Seasonal"
    TRENDY = "Trendy"


# Legacy labels still found in stored AI analysis rows
_RISK_ALIASES = {
    "safe": RiskClassification.NO_RISK,
    "none": RiskClassification.NO_RISK,
    "no risk": RiskClassification.NO_RISK,
    "norisk": RiskClassification.NO_RISK,
    "electric": RiskClassification.ELECTRIC,
    "breakable": RiskClassification.BREAKABLE,
    "banned": RiskClassification.BANNED,
    "prohibited": RiskClassification.BANNED,
}

_CONSISTENCY_ALIASES = {
    "consistent": ConsistencyRating.CONSISTENT,
    "seasonal": ConsistencyRating.SEASONAL,
    "trendy": ConsistencyRating.TRENDY,
}


def parse_risk_classification(value) -> Optional[RiskClassification]:
    """Normalize a stored risk label, rejecting unknown labels."""
    if value is None or isinstance(value, RiskClassification):
        return value
    key = str(value).strip().lower()
    if key not in _RISK_ALIASES:
        raise ValueError(f"Unknown risk classification: {value!r}")
    return _RISK_ALIASES[key]


def parse_consistency_rating(value) -> Optional[ConsistencyRating]:
    """Normalize a stored consistency label, rejecting unknown labels."""
    if value is None or isinstance(value, ConsistencyRating):
        return value
    key = str(value).strip().lower()
    if key not in _CONSISTENCY_ALIASES:
        raise ValueError(f"Unknown consistency rating: {value!r}")
    return _CONSISTENCY_ALIASES[key]


# Fields copied from an override onto the product when the override sets them.
# avg_cpc, profit_estimate and grade are handled separately by the merge engine.
OVERRIDABLE_FIELDS: Tuple[str, ...] = (
    "title",
    "brand",
    "price",
    "bsr",
    "reviews",
    "rating",
    "monthly_sales",
    "monthly_revenue",
    "cogs",
    "margin",
    "daily_revenue",
    "fulfillment_fee",
    "launch_budget",
    "profit_per_unit",
    "weight",
    "variations",
    "risk_classification",
    "consistency_rating",
    "opportunity_score",
)


class KeywordMetric(BaseModel):
    """A keyword linked to a product, with its cost-per-click."""

    keyword: str = Field(..., max_length=500)
    cpc: Optional[float] = Field(default=None, ge=0)
    search_volume: Optional[int] = Field(default=None, ge=0)

    model_config = {"frozen": True}


class Product(BaseModel):
    """Base product snapshot as read from the store.

    Immutable per fetch. Numeric fields are optional because ingestion does
    not always fill them.
    """

    id: UUID
    market_id: Optional[UUID] = None
    asin: Optional[str] = Field(default=None, max_length=20)
    title: Optional[str] = None
    brand: Optional[str] = None

    price: Optional[float] = None
    reviews: Optional[int] = None
    rating: Optional[float] = None
    bsr: Optional[int] = None

    monthly_sales: Optional[float] = None
    monthly_revenue: Optional[float] = None
    cogs: Optional[float] = None
    margin: Optional[float] = None
    profit_estimate: Optional[float] = None

    daily_revenue: Optional[float] = None
    fulfillment_fee: Optional[float] = None
    launch_budget: Optional[float] = None
    profit_per_unit: Optional[float] = None
    weight: Optional[float] = None
    variations: Optional[int] = None

    risk_classification: RiskClassification = RiskClassification.NO_RISK
    consistency_rating: ConsistencyRating = ConsistencyRating.CONSISTENT
    opportunity_score: Optional[float] = Field(default=None, description="AI opportunity seed (0-10)")
    grade: Optional[str] = None

    keywords: List[KeywordMetric] = Field(default_factory=list)

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("risk_classification", mode="before")
    @classmethod
    def normalize_risk(cls, v):
        if v is None:
            return RiskClassification.NO_RISK
        return parse_risk_classification(v)

    @field_validator("consistency_rating", mode="before")
    @classmethod
    def normalize_consistency(cls, v):
        if v is None:
            return ConsistencyRating.CONSISTENT
        return parse_consistency_rating(v)

    @property
    def keyword_cpc(self) -> Optional[float]:
        """Mean CPC of linked keywords that carry a positive CPC."""
        # Zero or missing keyword CPCs are skipped, not averaged in as 0 (see DESIGN.md)
        cpcs = [kw.cpc for kw in self.keywords if kw.cpc is not None and kw.cpc > 0]
        if not cpcs:
            return None
        return math.fsum(cpcs) / len(cpcs)

    @property
    def is_valid_for_aggregation(self) -> bool:
        """Positive price and positive monthly revenue."""
        return (self.price or 0) > 0 and (self.monthly_revenue or 0) > 0


class ProductOverride(BaseModel):
    """Sparse user patch for one product.

    Keyed by (owner_id, product_id). Every data field is optional; only
    fields carrying a value take precedence over the base product.
    """

    id: Optional[UUID] = None
    owner_id: UUID
    product_id: UUID
    asin: Optional[str] = None

    title: Optional[str] = None
    brand: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    bsr: Optional[int] = Field(default=None, ge=0)
    reviews: Optional[int] = Field(default=None, ge=0)
    rating: Optional[float] = Field(default=None, ge=0, le=5)

    monthly_sales: Optional[float] = Field(default=None, ge=0)
    monthly_revenue: Optional[float] = Field(default=None, ge=0)
    cogs: Optional[float] = Field(default=None, ge=0)
    margin: Optional[float] = None
    profit_estimate: Optional[float] = None

    daily_revenue: Optional[float] = Field(default=None, ge=0)
    fulfillment_fee: Optional[float] = Field(default=None, ge=0)
    launch_budget: Optional[float] = Field(default=None, ge=0)
    profit_per_unit: Optional[float] = None
    weight: Optional[float] = Field(default=None, ge=0)
    variations: Optional[int] = Field(default=None, ge=0)

    avg_cpc: Optional[float] = Field(default=None, ge=0)

    risk_classification: Optional[RiskClassification] = None
    consistency_rating: Optional[ConsistencyRating] = None
    opportunity_score: Optional[float] = None
    grade: Optional[str] = None

    override_reason: str = Field(default="", max_length=1000)
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"frozen": True}

    @field_validator("risk_classification", mode="before")
    @classmethod
    def normalize_risk(cls, v):
        return parse_risk_classification(v)

    @field_validator("consistency_rating", mode="before")
    @classmethod
    def normalize_consistency(cls, v):
        return parse_consistency_rating(v)

    @field_validator("grade")
    @classmethod
    def validate_grade(cls, v: Optional[str]) -> Optional[str]:
        """Manual grades must be one of the 41 buckets."""
        if v is None:
            return v
        # Imported here to avoid a circular import with src.models.grading
        from src.models.grading import GRADE_ORDER

        v = v.strip().upper()
        if v not in GRADE_ORDER:
            raise ValueError(f"Grade must be one of A10..F1, got {v!r}")
        return v


class EffectiveProduct(Product):
    """A product after its override (if any) has been applied.

    Computed on every read and never persisted.
    """

    has_overrides: bool = False
    override: Optional[ProductOverride] = None
    overridden_fields: Tuple[str, ...] = ()
    cpc_override: Optional[float] = None

    def as_product(self) -> Product:
        """Drop override metadata and return the plain product view."""
        return Product.model_validate(self.model_dump(include=set(Product.model_fields)))
