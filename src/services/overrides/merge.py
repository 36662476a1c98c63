"""Override merge engine.

Applies a user's sparse override to a base product, field by field. Any
override field that carries a value wins; otherwise the base value is kept.
The merge never substitutes zero or a display default for an absent value.

Key Functions:
    - merge_product: One base product + optional override -> EffectiveProduct
    - merge_all: Batch merge with a single override index
    - get_overridden_fields: Fields where the override differs from the base
    - merge_market_with_override: Persisted market override over a snapshot
"""
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

import structlog

from src.models.market import AVERAGE_FIELDS, MarketOverrideRecord, MarketSnapshot, MarketStatistics
from src.models.product import OVERRIDABLE_FIELDS, EffectiveProduct, Product, ProductOverride
from src.services.aggregation.cpc import estimate_product_cpc
from src.services.grading.engine import grade, scoring_inputs_for_product

logger = structlog.get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _dynamic_profit(monthly_revenue: Optional[float], margin: Optional[float]) -> Optional[float]:
    """Monthly profit from merged revenue and margin, when both are positive."""
    if monthly_revenue and margin and monthly_revenue > 0 and margin > 0:
        return float(round(monthly_revenue * margin))
    return None


def get_overridden_fields(base: Product, override: Optional[ProductOverride]) -> List[str]:
    """Names of fields where the override sets a value different from the base."""
    if override is None:
        return []
    fields = [
        name
        for name in OVERRIDABLE_FIELDS
        if getattr(override, name) is not None and getattr(override, name) != getattr(base, name)
    ]
    if override.profit_estimate is not None and override.profit_estimate != base.profit_estimate:
        fields.append("profit_estimate")
    if override.grade is not None and override.grade != base.grade:
        fields.append("grade")
    if override.avg_cpc is not None:
        fields.append("avg_cpc")
    return fields


def merge_product(base: Product, override: Optional[ProductOverride]) -> EffectiveProduct:
    """Merge one base product with its override.

    Args:
        base: Product as read from the store
        override: The owner's override for this product, if any

    Returns:
        EffectiveProduct. Without an override it equals the base with
        has_overrides=False. With one, profit_estimate and grade are
        refreshed from the merged values unless the override sets them.
    """
    if override is None:
        return EffectiveProduct(**base.model_dump())

    if override.product_id != base.id:
        logger.warning(
            "override_target_mismatch",
            product_id=str(base.id),
            override_product_id=str(override.product_id),
        )
        return EffectiveProduct(**base.model_dump())

    data = base.model_dump()
    for name in OVERRIDABLE_FIELDS:
        value = getattr(override, name)
        if value is not None:
            data[name] = value

    if override.profit_estimate is not None:
        data["profit_estimate"] = override.profit_estimate
    else:
        dynamic = _dynamic_profit(data["monthly_revenue"], data["margin"])
        if dynamic is not None:
            data["profit_estimate"] = dynamic

    effective = EffectiveProduct(
        **data,
        has_overrides=True,
        override=override,
        overridden_fields=tuple(get_overridden_fields(base, override)),
        cpc_override=override.avg_cpc,
    )

    if override.grade is not None:
        new_grade = override.grade
    else:
        cpc = estimate_product_cpc(effective, effective.cpc_override)
        new_grade = grade(scoring_inputs_for_product(effective, cpc)).grade

    return effective.model_copy(update={"grade": new_grade})


def _recency_key(override: ProductOverride) -> Tuple[datetime, str, str]:
    # Equal timestamps fall back to the row id, then the override contents
    return (override.updated_at or _EPOCH, str(override.id or ""), override.model_dump_json())


def _index_overrides(overrides: Iterable[ProductOverride]) -> Dict[UUID, ProductOverride]:
    """Map product id -> override; the latest updated_at wins on duplicates.

    Ties resolve the same way whatever the input order.
    """
    index: Dict[UUID, ProductOverride] = {}
    for override in overrides:
        current = index.get(override.product_id)
        if current is None or _recency_key(override) > _recency_key(current):
            index[override.product_id] = override
    return index


def merge_all(
    products: List[Product],
    overrides: List[ProductOverride],
) -> List[EffectiveProduct]:
    """Merge every product with its override, preserving product order."""
    index = _index_overrides(overrides)
    product_ids = {p.id for p in products}

    orphaned = [str(pid) for pid in index if pid not in product_ids]
    if orphaned:
        logger.warning("overrides_without_product", product_ids=orphaned)

    return [merge_product(p, index.get(p.id)) for p in products]


def merge_market_with_override(
    snapshot: MarketSnapshot,
    market_override: Optional[MarketOverrideRecord],
) -> MarketStatistics:
    """Statistics shown for a market.

    Persisted market override values take precedence over the snapshot;
    absent snapshot values fall back to the MarketStatistics defaults.
    """
    names = list(AVERAGE_FIELDS) + [
        "market_grade",
        "market_risk_classification",
        "market_consistency_rating",
        "opportunity_score",
        "total_products_analyzed",
        "products_verified",
    ]
    source = market_override if market_override is not None else snapshot
    data = {}
    for name in names:
        value = getattr(source, name)
        if value is not None:
            data[name] = value
    return MarketStatistics(**data)
