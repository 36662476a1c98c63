"""Override merge package."""

from src.services.overrides.merge import (
    get_overridden_fields,
    merge_all,
    merge_market_with_override,
    merge_product,
)

__all__ = [
    "merge_product",
    "merge_all",
    "get_overridden_fields",
    "merge_market_with_override",
]
