"""arq worker configuration for processing tasks.

This module configures the arq worker with:
    - recalculate_market_task: Market recalculation
    - apply_product_overrides_task: Override writes with recalculation
    - delete_product_overrides_task: Override removal with recalculation
    - delete_market_overrides_task: Market override removal
    - get_dashboard_task: Dashboard read path

The database engine, store, cache and services are built once in
on_startup and shared through the worker context.
"""
from arq.connections import RedisSettings, ArqRedis
from typing import Dict, Any
import structlog

from src.config import get_settings, configure_logging
from src.db.base import create_engine, create_session_maker
from src.db.repository import SqlMarketStore
from src.services.cache import DashboardCache
from src.services.dashboard import DashboardService
from src.services.recalculation import MarketRecalculator
from src.tasks.recalculation_tasks import (
    recalculate_market_task,
    apply_product_overrides_task,
    delete_product_overrides_task,
    delete_market_overrides_task,
    get_dashboard_task,
)

settings = get_settings()

# Configure logging
configure_logging(settings.log_level)
logger = structlog.get_logger(__name__)


async def startup(ctx: Dict[str, Any]) -> None:
    """Build shared services into the worker context.

    arq has already placed its Redis pool in ctx["redis"]; the dashboard
    cache reuses that connection.
    """
    redis: ArqRedis = ctx["redis"]
    engine = create_engine(settings)
    store = SqlMarketStore(create_session_maker(engine))
    cache = DashboardCache(redis, ttl_seconds=settings.dashboard_cache_ttl_seconds)

    ctx["engine"] = engine
    ctx["store"] = store
    ctx["cache"] = cache
    ctx["recalculator"] = MarketRecalculator(store=store, cache=cache)
    ctx["dashboard"] = DashboardService(store=store, cache=cache)

    logger.info(
        "worker_started",
        queue_name=settings.queue_name,
        environment=settings.environment,
        cache_ttl_seconds=settings.dashboard_cache_ttl_seconds,
    )


async def shutdown(ctx: Dict[str, Any]) -> None:
    """Dispose of the database engine."""
    engine = ctx.get("engine")
    if engine is not None:
        await engine.dispose()
    logger.info("worker_stopped")


class WorkerSettings:
    """arq worker configuration settings.

    This class is imported by arq CLI: `python -m arq src.worker.WorkerSettings`

    Registered Tasks:
        - recalculate_market_task: Recalculate one market for an owner
        - apply_product_overrides_task: Save overrides, recalculate affected markets
        - delete_product_overrides_task: Remove overrides, recalculate affected markets
        - delete_market_overrides_task: Remove one or all market overrides
        - get_dashboard_task: Read-through dashboard snapshot
    """

    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    queue_name = settings.queue_name
    max_jobs = settings.max_workers
    job_timeout = settings.job_timeout
    keep_result = 3600  # Keep results for 1 hour
    max_tries = settings.max_tries

    functions = [
        recalculate_market_task,
        apply_product_overrides_task,
        delete_product_overrides_task,
        delete_market_overrides_task,
        get_dashboard_task,
    ]

    # Lifecycle hooks
    on_startup = startup
    on_shutdown = shutdown
