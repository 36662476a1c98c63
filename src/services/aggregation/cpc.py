"""Per-product cost-per-click resolution."""
from typing import Optional

from src.config import AggregationSettings, get_aggregation_settings
from src.models.product import Product


def estimate_cpc_from_price(price: Optional[float], settings: AggregationSettings) -> float:
    """clamp(price * cpc_price_ratio, cpc_min, cpc_max); absent price counts as zero."""
    raw = (price or 0.0) * settings.cpc_price_ratio
    return max(settings.cpc_min, min(raw, settings.cpc_max))


def estimate_product_cpc(
    product: Product,
    cpc_override: Optional[float] = None,
    settings: Optional[AggregationSettings] = None,
) -> float:
    """Resolve the CPC used for one product.

    Precedence: explicit CPC override, then the mean of positive keyword
    CPCs, then the price-derived estimate.
    """
    if cpc_override is not None:
        return cpc_override
    keyword_cpc = product.keyword_cpc
    if keyword_cpc is not None:
        return keyword_cpc
    return estimate_cpc_from_price(product.price, settings or get_aggregation_settings())
