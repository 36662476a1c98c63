"""Dashboard read path.

Read-through: a cached snapshot is served as-is; on a miss every market is
rebuilt from the store with overrides applied, and the snapshot is written
back with the configured TTL.
"""
import math
from collections import defaultdict
from typing import Dict, List, Union
from uuid import UUID

import structlog

from src.errors import CacheError, DatabaseError
from src.models.dashboard import DashboardMarket, DashboardSnapshot, DashboardStats
from src.models.market import MarketOverrideRecord
from src.models.results import Failure, FailureKind
from src.services.aggregation.service import aggregate
from src.services.cache import DashboardCache
from src.services.grading.engine import is_high_grade
from src.services.overrides.merge import merge_all, merge_market_with_override
from src.services.recalculation.store import MarketStore

logger = structlog.get_logger(__name__)


def compute_stats(markets: List[DashboardMarket]) -> DashboardStats:
    """Headline numbers over every market of an owner."""
    if not markets:
        return DashboardStats()
    revenues = [m.statistics.avg_monthly_revenue for m in markets]
    return DashboardStats(
        markets_analyzed=len(markets),
        total_products=sum(len(m.products) for m in markets),
        high_grade_markets=sum(1 for m in markets if is_high_grade(m.statistics.market_grade)),
        avg_market_revenue=round(math.fsum(revenues) / len(revenues)),
        overridden_products=sum(1 for m in markets for p in m.products if p.has_overrides),
    )


class DashboardService:
    """Builds and caches the per-owner dashboard snapshot."""

    def __init__(self, store: MarketStore, cache: DashboardCache) -> None:
        self._store = store
        self._cache = cache

    async def get_dashboard(self, owner_id: UUID) -> Union[DashboardSnapshot, Failure]:
        log = logger.bind(owner_id=str(owner_id))

        try:
            cached = await self._cache.get(owner_id)
        except CacheError as e:
            # Treated as a miss
            log.warning("dashboard_cache_read_failed", error=e.message)
            cached = None
        if cached is not None:
            log.debug("dashboard_cache_hit")
            return cached

        try:
            snapshot = await self._build(owner_id)
        except DatabaseError as e:
            log.error("dashboard_fetch_failed", error=str(e))
            return Failure(FailureKind.FETCH_FAILURE, str(e))

        try:
            await self._cache.set(snapshot)
        except CacheError as e:
            log.warning("dashboard_cache_write_failed", error=e.message)

        log.info(
            "dashboard_built",
            markets=snapshot.stats.markets_analyzed,
            products=snapshot.stats.total_products,
        )
        return snapshot

    async def _build(self, owner_id: UUID) -> DashboardSnapshot:
        markets = await self._store.fetch_markets_for_owner(owner_id)
        market_overrides: Dict[UUID, MarketOverrideRecord] = {
            record.market_id: record
            for record in await self._store.fetch_market_overrides_for_owner(owner_id)
        }

        products_by_market = {}
        all_ids: List[UUID] = []
        for market in markets:
            products = await self._store.fetch_products_for_market(market.id, owner_id)
            products_by_market[market.id] = products
            all_ids.extend(p.id for p in products)

        overrides = await self._store.fetch_overrides_for_products(all_ids, owner_id) if all_ids else []
        overrides_by_product = defaultdict(list)
        for override in overrides:
            overrides_by_product[override.product_id].append(override)

        dashboard_markets = []
        for market in markets:
            products = products_by_market[market.id]
            market_product_overrides = [o for p in products for o in overrides_by_product.get(p.id, [])]
            effective = merge_all(products, market_product_overrides)

            record = market_overrides.get(market.id)
            if record is not None:
                statistics = merge_market_with_override(market, record)
            else:
                statistics = aggregate(effective)

            dashboard_markets.append(
                DashboardMarket(
                    market_id=market.id,
                    keyword=market.keyword,
                    statistics=statistics,
                    has_overrides=record is not None,
                    products=effective,
                )
            )

        return DashboardSnapshot(
            owner_id=owner_id,
            stats=compute_stats(dashboard_markets),
            markets=dashboard_markets,
        )
