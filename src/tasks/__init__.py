"""Queue task definitions for the market override engine.

This module contains arq task functions for:
    - recalculate_market_task: Recalculate one market
    - apply_product_overrides_task: Save overrides and recalculate affected markets
    - delete_product_overrides_task: Remove overrides and recalculate
    - delete_market_overrides_task: Remove persisted market overrides
    - get_dashboard_task: Read-through dashboard snapshot
"""
from src.tasks.recalculation_tasks import (
    recalculate_market_task,
    apply_product_overrides_task,
    delete_product_overrides_task,
    delete_market_overrides_task,
    get_dashboard_task,
)

__all__ = [
    "recalculate_market_task",
    "apply_product_overrides_task",
    "delete_product_overrides_task",
    "delete_market_overrides_task",
    "get_dashboard_task",
]
