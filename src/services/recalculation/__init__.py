"""Market recalculation package."""

from src.services.recalculation.orchestrator import DEFAULT_REASON, MarketRecalculator
from src.services.recalculation.store import MarketStore

__all__ = ["MarketRecalculator", "MarketStore", "DEFAULT_REASON"]
