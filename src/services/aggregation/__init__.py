"""Market aggregation package."""

from src.services.aggregation.cpc import estimate_cpc_from_price, estimate_product_cpc
from src.services.aggregation.service import aggregate, plurality_vote

__all__ = [
    "aggregate",
    "plurality_vote",
    "estimate_product_cpc",
    "estimate_cpc_from_price",
]
