"""Market recalculation orchestrator.

Pipeline per market:
    fetch market -> fetch products -> fetch overrides -> merge -> aggregate
    -> upsert market override -> invalidate dashboard cache

Store and cache failures never escape as exceptions: each step maps its
error onto a Failure value so callers can tell "nothing to do" apart from
"something broke". A failed write leaves the previous market override and
the cache untouched. A recalculation that reproduces the stored values keeps
that row as-is, so repeated runs over unchanged inputs return the identical
market override.
"""
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Union
from uuid import UUID

import structlog

from src.errors import CacheError, DatabaseError, MarketNotFoundError
from src.models.market import MarketOverrideRecord, MarketStatistics
from src.models.product import ProductOverride
from src.models.results import (
    Failure,
    FailureKind,
    OverrideWriteOutcome,
    RecalculationDebug,
    RecalculationOutcome,
    RecalculationResult,
)
from src.services.aggregation.service import aggregate
from src.services.cache import DashboardCache
from src.services.overrides.merge import merge_all
from src.services.recalculation.store import MarketStore

logger = structlog.get_logger(__name__)

DEFAULT_REASON = "Recalculated from product overrides"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_unchanged(
    previous: Optional[MarketOverrideRecord],
    keyword: str,
    statistics: MarketStatistics,
    reason: str,
) -> bool:
    """True when the stored market override already holds these values."""
    if previous is None:
        return False
    candidate = MarketOverrideRecord.from_statistics(
        previous.owner_id,
        previous.market_id,
        keyword,
        statistics,
        reason,
        previous.recalculation_date,
        record_id=previous.id,
    )
    return candidate.model_dump() == previous.model_dump()


class MarketRecalculator:
    """Keeps persisted market overrides consistent with product overrides.

    Usage:
        recalculator = MarketRecalculator(store=SqlMarketStore(session_factory), cache=cache)
        result = await recalculator.recalculate_market(market_id, owner_id)
        if isinstance(result, Failure):
            ...
    """

    def __init__(
        self,
        store: MarketStore,
        cache: DashboardCache,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Args:
            store: Persistent store collaborator
            cache: Dashboard cache to invalidate after writes
            clock: Source of recalculation timestamps (defaults to UTC now)
        """
        self._store = store
        self._cache = cache
        self._clock = clock or _utcnow

    async def recalculate_market(
        self,
        market_id: UUID,
        owner_id: UUID,
        reason: Optional[str] = None,
    ) -> RecalculationResult:
        """Recalculate one market from its effective products.

        Returns:
            RecalculationOutcome on success, otherwise a Failure describing
            the step that failed
        """
        result = await self._recalculate(market_id, owner_id, reason or DEFAULT_REASON)
        if isinstance(result, Failure):
            return result

        cache_failure = await self._invalidate(owner_id, market_id)
        return cache_failure or result

    async def recalculate_affected_markets(
        self,
        product_ids: Sequence[UUID],
        owner_id: UUID,
        reason: Optional[str] = None,
    ) -> List[RecalculationResult]:
        """Recalculate every market containing any of the products.

        The cache is invalidated once after all markets were processed.
        """
        results = await self._recalculate_for_products(product_ids, owner_id, reason or DEFAULT_REASON)
        if any(isinstance(r, RecalculationOutcome) for r in results):
            cache_failure = await self._invalidate(owner_id)
            if cache_failure:
                results.append(cache_failure)
        return results

    async def apply_product_overrides(
        self,
        owner_id: UUID,
        overrides: Sequence[ProductOverride],
        reason: Optional[str] = None,
    ) -> Union[OverrideWriteOutcome, Failure]:
        """Write product overrides, then recalculate the affected markets.

        The cache is invalidated whenever the override write landed, even if
        a market recalculation failed afterwards.
        """
        log = logger.bind(owner_id=str(owner_id))

        foreign = [o for o in overrides if o.owner_id != owner_id]
        if foreign:
            log.warning("overrides_for_other_owner_skipped", count=len(foreign))
        overrides = [o for o in overrides if o.owner_id == owner_id]
        if not overrides:
            return OverrideWriteOutcome(owner_id=owner_id)

        try:
            written = await self._store.upsert_product_overrides(owner_id, overrides)
        except DatabaseError as e:
            log.error("product_override_write_failed", error=str(e))
            return Failure(FailureKind.PERSIST_FAILURE, str(e))

        log.info("product_overrides_written", count=len(written))
        return await self._after_override_change(
            owner_id,
            [o.product_id for o in written],
            len(written),
            reason or DEFAULT_REASON,
        )

    async def delete_product_overrides(
        self,
        owner_id: UUID,
        product_ids: Sequence[UUID],
        reason: Optional[str] = None,
    ) -> Union[OverrideWriteOutcome, Failure]:
        """Remove product overrides and recalculate the affected markets."""
        log = logger.bind(owner_id=str(owner_id))
        try:
            deleted = await self._store.delete_product_overrides(owner_id, product_ids)
        except DatabaseError as e:
            log.error("product_override_delete_failed", error=str(e))
            return Failure(FailureKind.PERSIST_FAILURE, str(e))

        log.info("product_overrides_deleted", count=deleted)
        return await self._after_override_change(
            owner_id, list(product_ids), deleted, reason or "Product overrides removed"
        )

    async def delete_market_overrides(
        self,
        owner_id: UUID,
        market_id: Optional[UUID] = None,
    ) -> Union[int, Failure]:
        """Delete one market override (or all of the owner's) and invalidate.

        Returns:
            Number of rows deleted, or a Failure
        """
        log = logger.bind(owner_id=str(owner_id), market_id=str(market_id) if market_id else None)
        try:
            deleted = await self._store.delete_market_overrides(owner_id, market_id)
        except DatabaseError as e:
            log.error("market_override_delete_failed", error=str(e))
            return Failure(FailureKind.PERSIST_FAILURE, str(e), market_id)

        log.info("market_overrides_deleted", count=deleted)
        cache_failure = await self._invalidate(owner_id, market_id)
        return cache_failure or deleted

    async def _after_override_change(
        self,
        owner_id: UUID,
        product_ids: List[UUID],
        rows: int,
        reason: str,
    ) -> OverrideWriteOutcome:
        results = await self._recalculate_for_products(product_ids, owner_id, reason)
        recalculations = [r for r in results if isinstance(r, RecalculationOutcome)]
        failures = [r.to_dict() for r in results if isinstance(r, Failure)]

        cache_failure = await self._invalidate(owner_id)
        if cache_failure:
            failures.append(cache_failure.to_dict())

        return OverrideWriteOutcome(
            owner_id=owner_id,
            overrides_written=rows,
            recalculations=recalculations,
            failures=failures,
            cache_invalidated=cache_failure is None,
        )

    async def _recalculate_for_products(
        self,
        product_ids: Sequence[UUID],
        owner_id: UUID,
        reason: str,
    ) -> List[RecalculationResult]:
        if not product_ids:
            return []
        try:
            market_ids = await self._store.find_market_ids_for_products(product_ids, owner_id)
        except DatabaseError as e:
            logger.error("affected_markets_lookup_failed", owner_id=str(owner_id), error=str(e))
            return [Failure(FailureKind.FETCH_FAILURE, str(e))]

        results: List[RecalculationResult] = []
        for market_id in market_ids:
            results.append(await self._recalculate(market_id, owner_id, reason))
        return results

    async def _recalculate(self, market_id: UUID, owner_id: UUID, reason: str) -> RecalculationResult:
        log = logger.bind(owner_id=str(owner_id), market_id=str(market_id))
        log.info("market_recalculation_started")

        try:
            market = await self._store.get_market(owner_id, market_id)
            previous = await self._store.get_market_override(owner_id, market_id)
            products = await self._store.fetch_products_for_market(market_id, owner_id)
            overrides = await self._store.fetch_overrides_for_products(
                [p.id for p in products], owner_id
            )
        except MarketNotFoundError as e:
            log.warning("market_not_found")
            return Failure(FailureKind.MARKET_NOT_FOUND, e.message, market_id)
        except DatabaseError as e:
            log.error("market_fetch_failed", error=str(e))
            return Failure(FailureKind.FETCH_FAILURE, str(e), market_id)

        effective = merge_all(products, overrides)
        statistics = aggregate(effective)

        if _is_unchanged(previous, market.keyword, statistics, reason):
            # Same inputs keep the stored row, recalculation_date included
            log.debug("market_override_unchanged")
            record = previous
        else:
            try:
                record = await self._store.upsert_market_override(
                    owner_id,
                    market_id,
                    market.keyword,
                    statistics,
                    reason,
                    self._clock(),
                )
            except DatabaseError as e:
                log.error("market_override_write_failed", error=str(e))
                return Failure(FailureKind.PERSIST_FAILURE, str(e), market_id)

        previous_grade = previous.market_grade if previous else market.market_grade
        overridden = sum(1 for p in effective if p.has_overrides)

        log.info(
            "market_recalculated",
            previous_grade=previous_grade,
            new_grade=statistics.market_grade,
            products_verified=statistics.products_verified,
            overridden_products=overridden,
        )

        return RecalculationOutcome(
            market_id=market_id,
            keyword=market.keyword,
            market_override=record,
            statistics=statistics,
            overridden_product_count=overridden,
            debug=RecalculationDebug(previous_grade=previous_grade, new_grade=statistics.market_grade),
        )

    async def _invalidate(self, owner_id: UUID, market_id: Optional[UUID] = None) -> Optional[Failure]:
        try:
            await self._cache.invalidate(owner_id)
        except CacheError as e:
            logger.error("dashboard_cache_invalidation_failed", owner_id=str(owner_id), error=e.message)
            return Failure(FailureKind.CACHE_FAILURE, e.message, market_id)
        return None
