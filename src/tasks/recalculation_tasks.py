"""Queue tasks for override writes and market recalculation.

This module is the thin request-handling layer over the core services:
    - recalculate_market_task: Recalculate one market for an owner
    - apply_product_overrides_task: Save product overrides and recalculate affected markets
    - delete_product_overrides_task: Remove product overrides and recalculate
    - delete_market_overrides_task: Remove one or all persisted market overrides
    - get_dashboard_task: Read-through dashboard snapshot

Services are built once by the worker's on_startup hook and read from ctx.
Every task returns a JSON-serializable dict; failures are reported with
status "error" and an error_kind instead of raising.
"""
import time
import uuid
from typing import Any, Dict, List, Optional

import structlog
from pydantic import ValidationError

from src.models.product import ProductOverride
from src.models.results import Failure
from src.services.dashboard import DashboardService
from src.services.recalculation import MarketRecalculator

logger = structlog.get_logger(__name__)

INVALID_REQUEST = "invalid_request"


def _invalid(task_id: str, message: str) -> Dict[str, Any]:
    return {
        "task_id": task_id,
        "status": "error",
        "error_kind": INVALID_REQUEST,
        "message": message,
    }


def _parse_uuid(value: Optional[str]) -> Optional[uuid.UUID]:
    if value is None:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _failure_response(task_id: str, failure: Failure) -> Dict[str, Any]:
    return {"task_id": task_id, **failure.to_dict()}


async def recalculate_market_task(
    ctx: Dict[str, Any],
    task_id: str,
    market_id: str,
    owner_id: str,
    reason: Optional[str] = None,
    **kwargs
) -> Dict[str, Any]:
    """Recalculate a market from its effective products.

    Args:
        ctx: Worker context (contains the recalculator)
        task_id: Unique task identifier for logging
        market_id: Market UUID string
        owner_id: Authenticated owner UUID string
        reason: Override reason stored on the market override

    Returns:
        Dictionary with status, grade, statistics and
        debug {previous_grade, new_grade}, or an error payload
    """
    start_time = time.time()
    parsed_market_id = _parse_uuid(market_id)
    parsed_owner_id = _parse_uuid(owner_id)
    if parsed_market_id is None or parsed_owner_id is None:
        logger.warning("invalid_recalculation_request", task_id=task_id, market_id=market_id)
        return _invalid(task_id, "market_id and owner_id must be UUIDs")

    log = logger.bind(task_id=task_id, market_id=market_id, owner_id=owner_id)
    log.info("recalculate_market_task_started")

    recalculator: MarketRecalculator = ctx["recalculator"]
    result = await recalculator.recalculate_market(parsed_market_id, parsed_owner_id, reason)

    duration = round(time.time() - start_time, 3)
    if isinstance(result, Failure):
        log.warning("recalculate_market_task_failed", error_kind=result.kind.value, duration_seconds=duration)
        return _failure_response(task_id, result)

    log.info("recalculate_market_task_completed", grade=result.grade, duration_seconds=duration)
    return {"task_id": task_id, **result.to_response()}


async def apply_product_overrides_task(
    ctx: Dict[str, Any],
    task_id: str,
    owner_id: str,
    overrides: List[Dict[str, Any]],
    reason: Optional[str] = None,
    **kwargs
) -> Dict[str, Any]:
    """Save product overrides and recalculate every affected market.

    Args:
        ctx: Worker context (contains the recalculator)
        task_id: Unique task identifier for logging
        owner_id: Authenticated owner UUID string
        overrides: Override payloads (product_id plus any overridable fields)
        reason: Override reason for the recalculated markets

    Returns:
        Dictionary with status ("success" or "partial_success"),
        overrides_written, affected_markets and failures
    """
    parsed_owner_id = _parse_uuid(owner_id)
    if parsed_owner_id is None:
        return _invalid(task_id, "owner_id must be a UUID")

    log = logger.bind(task_id=task_id, owner_id=owner_id, override_count=len(overrides))

    try:
        parsed = [ProductOverride(**{**payload, "owner_id": parsed_owner_id}) for payload in overrides]
    except ValidationError as e:
        log.warning("invalid_override_payload", error=str(e))
        return _invalid(task_id, f"Invalid override payload: {e}")

    log.info("apply_product_overrides_task_started")
    recalculator: MarketRecalculator = ctx["recalculator"]
    result = await recalculator.apply_product_overrides(parsed_owner_id, parsed, reason)

    if isinstance(result, Failure):
        log.warning("apply_product_overrides_task_failed", error_kind=result.kind.value)
        return _failure_response(task_id, result)

    response = result.to_response()
    log.info(
        "apply_product_overrides_task_completed",
        status=response["status"],
        markets_recalculated=response["markets_recalculated"],
    )
    return {"task_id": task_id, **response}


async def delete_product_overrides_task(
    ctx: Dict[str, Any],
    task_id: str,
    owner_id: str,
    product_ids: List[str],
    **kwargs
) -> Dict[str, Any]:
    """Remove product overrides and recalculate the affected markets."""
    parsed_owner_id = _parse_uuid(owner_id)
    if parsed_owner_id is None:
        return _invalid(task_id, "owner_id must be a UUID")

    parsed_ids: List[uuid.UUID] = []
    for pid_str in product_ids:
        pid = _parse_uuid(pid_str)
        if pid is None:
            logger.warning("invalid_product_id", task_id=task_id, product_id=pid_str)
        else:
            parsed_ids.append(pid)
    if not parsed_ids:
        return _invalid(task_id, "No valid product IDs provided")

    recalculator: MarketRecalculator = ctx["recalculator"]
    result = await recalculator.delete_product_overrides(parsed_owner_id, parsed_ids)
    if isinstance(result, Failure):
        return _failure_response(task_id, result)
    return {"task_id": task_id, **result.to_response()}


async def delete_market_overrides_task(
    ctx: Dict[str, Any],
    task_id: str,
    owner_id: str,
    market_id: Optional[str] = None,
    **kwargs
) -> Dict[str, Any]:
    """Delete one market override, or all of the owner's when market_id is omitted."""
    parsed_owner_id = _parse_uuid(owner_id)
    parsed_market_id = _parse_uuid(market_id)
    if parsed_owner_id is None or (market_id is not None and parsed_market_id is None):
        return _invalid(task_id, "owner_id and market_id must be UUIDs")

    recalculator: MarketRecalculator = ctx["recalculator"]
    result = await recalculator.delete_market_overrides(parsed_owner_id, parsed_market_id)
    if isinstance(result, Failure):
        return _failure_response(task_id, result)

    logger.info("delete_market_overrides_task_completed", task_id=task_id, deleted=result)
    return {
        "task_id": task_id,
        "status": "success",
        "deleted": result,
        "market_id": market_id,
    }


async def get_dashboard_task(
    ctx: Dict[str, Any],
    task_id: str,
    owner_id: str,
    **kwargs
) -> Dict[str, Any]:
    """Dashboard snapshot for an owner, served from cache when fresh."""
    parsed_owner_id = _parse_uuid(owner_id)
    if parsed_owner_id is None:
        return _invalid(task_id, "owner_id must be a UUID")

    dashboard: DashboardService = ctx["dashboard"]
    result = await dashboard.get_dashboard(parsed_owner_id)
    if isinstance(result, Failure):
        return _failure_response(task_id, result)
    return {
        "task_id": task_id,
        "status": "success",
        "cached": result.cached,
        "dashboard": result.model_dump(mode="json"),
    }
