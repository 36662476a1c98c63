"""Market aggregation service.

Reduces a market's effective products (overrides already applied) into
market-level statistics and grades the result.

Key Functions:
    - aggregate: Averages, plurality classifications and market grade
    - plurality_vote: Most common label with a fixed tie-break priority
    - market_scoring_inputs: Grading inputs built from market averages

Only valid products (price > 0 and monthly revenue > 0) feed the averages;
total_products_analyzed still counts every product. Sums use math.fsum so
the result does not depend on the order products arrive in.
"""
import math
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, TypeVar

import structlog

from src.config import AggregationSettings, get_aggregation_settings
from src.models.grading import ScoringInputs
from src.models.market import MarketStatistics
from src.models.product import ConsistencyRating, EffectiveProduct, RiskClassification
from src.services.aggregation.cpc import estimate_product_cpc
from src.services.grading.engine import grade

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Tie-break priority, most severe first
RISK_PRIORITY = (
    RiskClassification.BANNED,
    RiskClassification.BREAKABLE,
    RiskClassification.ELECTRIC,
    RiskClassification.NO_RISK,
)
CONSISTENCY_PRIORITY = (
    ConsistencyRating.TRENDY,
    ConsistencyRating.SEASONAL,
    ConsistencyRating.CONSISTENT,
)

# Market statistic -> product field it averages
_AVERAGED_FIELDS: Dict[str, str] = {
    "avg_price": "price",
    "avg_monthly_sales": "monthly_sales",
    "avg_monthly_revenue": "monthly_revenue",
    "avg_daily_revenue": "daily_revenue",
    "avg_profit_margin": "margin",
    "avg_profit_per_unit": "profit_per_unit",
    "avg_reviews": "reviews",
    "avg_rating": "rating",
    "avg_bsr": "bsr",
    "avg_launch_budget": "launch_budget",
    "avg_cogs": "cogs",
}


def _mean(values: Iterable[Optional[float]], count: int) -> float:
    """Mean with absent values counted as zero; 0 for an empty set."""
    if count == 0:
        return 0.0
    return math.fsum(v or 0.0 for v in values) / count


def plurality_vote(labels: Sequence[T], priority: Sequence[T], default: T) -> T:
    """Most common label; ties go to the label listed first in ``priority``."""
    if not labels:
        return default
    counts = Counter(labels)
    top = max(counts.values())
    for label in priority:
        if counts.get(label) == top:
            return label
    return default


def market_scoring_inputs(
    averages: Dict[str, float],
    risk: RiskClassification,
    consistency: ConsistencyRating,
) -> ScoringInputs:
    """Grading inputs for a market; monthly profit is avg revenue x avg margin."""
    return ScoringInputs(
        monthly_profit=averages["avg_monthly_revenue"] * averages["avg_profit_margin"],
        price=averages["avg_price"],
        margin=averages["avg_profit_margin"],
        reviews=averages["avg_reviews"],
        avg_cpc=averages["avg_cpc"],
        risk_classification=risk,
        consistency_rating=consistency,
        profit_per_unit=averages["avg_profit_per_unit"],
        bsr=averages["avg_bsr"],
        rating=averages["avg_rating"],
    )


def aggregate(
    products: List[EffectiveProduct],
    settings: Optional[AggregationSettings] = None,
) -> MarketStatistics:
    """Aggregate effective products into market statistics.

    Args:
        products: Effective products of one market (any order)
        settings: CPC estimate constants; defaults to AGG_* environment

    Returns:
        MarketStatistics; an empty or all-invalid input yields zero
        averages, NoRisk/Consistent and grade F1
    """
    settings = settings or get_aggregation_settings()
    valid = [p for p in products if p.is_valid_for_aggregation]
    count = len(valid)

    averages = {
        stat: _mean((getattr(p, field) for p in valid), count)
        for stat, field in _AVERAGED_FIELDS.items()
    }
    averages["avg_cpc"] = _mean(
        (estimate_product_cpc(p, p.cpc_override, settings) for p in valid), count
    )

    risk = plurality_vote(
        [p.risk_classification for p in valid], RISK_PRIORITY, RiskClassification.NO_RISK
    )
    consistency = plurality_vote(
        [p.consistency_rating for p in valid], CONSISTENCY_PRIORITY, ConsistencyRating.CONSISTENT
    )

    result = grade(market_scoring_inputs(averages, risk, consistency))

    logger.debug(
        "market_aggregated",
        total_products=len(products),
        products_verified=count,
        market_grade=result.grade,
    )

    return MarketStatistics(
        **averages,
        market_grade=result.grade,
        market_risk_classification=risk,
        market_consistency_rating=consistency,
        opportunity_score=result.opportunity_score,
        composite_score=result.score,
        total_products_analyzed=len(products),
        products_verified=count,
    )
