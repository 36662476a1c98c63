"""Pydantic validation models."""

from src.models.product import (
    RiskClassification,
    ConsistencyRating,
    KeywordMetric,
    Product,
    ProductOverride,
    EffectiveProduct,
    OVERRIDABLE_FIELDS,
)
from src.models.grading import (
    GRADE_ORDER,
    ScoringInputs,
    ScoreBreakdown,
    GradeResult,
)
from src.models.market import (
    MarketStatistics,
    MarketSnapshot,
    MarketOverrideRecord,
)
from src.models.results import (
    FailureKind,
    Failure,
    RecalculationDebug,
    RecalculationOutcome,
    OverrideWriteOutcome,
)
from src.models.dashboard import (
    DashboardMarket,
    DashboardStats,
    DashboardSnapshot,
)

__all__ = [
    # Products and overrides
    "RiskClassification",
    "ConsistencyRating",
    "KeywordMetric",
    "Product",
    "ProductOverride",
    "EffectiveProduct",
    "OVERRIDABLE_FIELDS",
    # Grading
    "GRADE_ORDER",
    "ScoringInputs",
    "ScoreBreakdown",
    "GradeResult",
    # Markets
    "MarketStatistics",
    "MarketSnapshot",
    "MarketOverrideRecord",
    # Outcomes
    "FailureKind",
    "Failure",
    "RecalculationDebug",
    "RecalculationOutcome",
    "OverrideWriteOutcome",
    # Dashboard
    "DashboardMarket",
    "DashboardStats",
    "DashboardSnapshot",
]
