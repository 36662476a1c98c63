"""Database models for markets, products and user overrides."""
from src.db.models.market import Market
from src.db.models.product import Product
from src.db.models.keyword import Keyword, ProductKeyword
from src.db.models.product_override import ProductOverride
from src.db.models.market_override import MarketOverride

__all__ = [
    # Research data
    "Market",
    "Product",
    "Keyword",
    "ProductKeyword",
    # User overrides
    "ProductOverride",
    "MarketOverride",
]
