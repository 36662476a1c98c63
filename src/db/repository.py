"""SQLAlchemy implementation of the MarketStore collaborator.

Every query is scoped to the owner. Rows are converted to strict domain
models on the way out; a row that does not fit the schema is reported as a
FetchError instead of being passed on half-parsed.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

import structlog
from pydantic import ValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload, sessionmaker

from src.db.models import (
    Market as MarketRow,
    MarketOverride as MarketOverrideRow,
    Product as ProductRow,
    ProductKeyword,
    ProductOverride as ProductOverrideRow,
)
from src.errors import FetchError, MarketNotFoundError, PersistError
from src.models.market import AVERAGE_FIELDS, MarketOverrideRecord, MarketSnapshot, MarketStatistics
from src.models.product import (
    KeywordMetric,
    Product,
    ProductOverride,
    parse_consistency_rating,
    parse_risk_classification,
)

logger = structlog.get_logger(__name__)

_PRODUCT_COLUMNS = (
    "asin", "title", "brand", "price", "reviews", "rating", "bsr",
    "monthly_sales", "monthly_revenue", "cogs", "margin", "profit_estimate",
    "daily_revenue", "fulfillment_fee", "launch_budget", "profit_per_unit",
    "weight", "variations", "risk_classification", "consistency_rating",
    "opportunity_score", "grade",
)

_OVERRIDE_COLUMNS = _PRODUCT_COLUMNS + ("avg_cpc", "override_reason", "notes")

_MARKET_STAT_COLUMNS = AVERAGE_FIELDS + (
    "market_grade",
    "market_risk_classification",
    "market_consistency_rating",
    "opportunity_score",
    "total_products_analyzed",
    "products_verified",
)


def product_from_row(row: ProductRow) -> Product:
    """Convert a product row (keyword links loaded) to the domain model."""
    data = {name: getattr(row, name) for name in _PRODUCT_COLUMNS}
    data["keywords"] = [
        KeywordMetric(
            keyword=link.keyword.keyword,
            cpc=link.keyword.cpc,
            search_volume=link.keyword.search_volume,
        )
        for link in row.keyword_links
    ]
    return Product(id=row.id, market_id=row.market_id, **data)


def override_from_row(row: ProductOverrideRow) -> ProductOverride:
    data = {name: getattr(row, name) for name in _OVERRIDE_COLUMNS}
    return ProductOverride(
        id=row.id,
        owner_id=row.user_id,
        product_id=row.product_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        **data,
    )


def market_from_row(row: MarketRow) -> MarketSnapshot:
    data = {name: getattr(row, name) for name in _MARKET_STAT_COLUMNS}
    data["market_risk_classification"] = parse_risk_classification(row.market_risk_classification)
    data["market_consistency_rating"] = parse_consistency_rating(row.market_consistency_rating)
    return MarketSnapshot(
        id=row.id,
        owner_id=row.user_id,
        keyword=row.keyword,
        research_date=row.research_date,
        **data,
    )


def market_override_from_row(row: MarketOverrideRow) -> MarketOverrideRecord:
    data = {name: getattr(row, name) for name in _MARKET_STAT_COLUMNS}
    data["market_risk_classification"] = parse_risk_classification(row.market_risk_classification)
    data["market_consistency_rating"] = parse_consistency_rating(row.market_consistency_rating)
    return MarketOverrideRecord(
        id=row.id,
        owner_id=row.user_id,
        market_id=row.market_id,
        keyword=row.keyword,
        override_reason=row.override_reason,
        recalculation_date=row.recalculation_date,
        **data,
    )


def override_values(owner_id: UUID, override: ProductOverride) -> Dict[str, Any]:
    """Column values for one user_product_overrides row."""
    values: Dict[str, Any] = {"user_id": owner_id, "product_id": override.product_id}
    for name in _OVERRIDE_COLUMNS:
        value = getattr(override, name)
        values[name] = value.value if isinstance(value, Enum) else value
    return values


class SqlMarketStore:
    """PostgreSQL-backed store.

    Usage:
        session_maker = create_session_maker(create_engine(settings))
        store = SqlMarketStore(session_maker)
        products = await store.fetch_products_for_market(market_id, owner_id)
    """

    def __init__(self, session_maker: sessionmaker) -> None:
        self._session_maker = session_maker

    async def get_market(self, owner_id: UUID, market_id: UUID) -> MarketSnapshot:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(MarketRow)
                    .where(MarketRow.id == market_id)
                    .where(MarketRow.user_id == owner_id)
                )
                row = result.scalar_one_or_none()
                if row is None:
                    raise MarketNotFoundError(market_id, owner_id)
                return market_from_row(row)
        except (SQLAlchemyError, ValidationError, ValueError) as e:
            logger.error("get_market_failed", market_id=str(market_id), error=str(e))
            raise FetchError(f"Failed to fetch market {market_id}: {e}") from e

    async def fetch_products_for_market(self, market_id: UUID, owner_id: UUID) -> List[Product]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(ProductRow)
                    .options(selectinload(ProductRow.keyword_links).joinedload(ProductKeyword.keyword))
                    .where(ProductRow.market_id == market_id)
                    .where(ProductRow.user_id == owner_id)
                    .order_by(ProductRow.created_at, ProductRow.id)
                )
                return [product_from_row(row) for row in result.scalars().all()]
        except (SQLAlchemyError, ValidationError, ValueError) as e:
            logger.error("fetch_products_failed", market_id=str(market_id), error=str(e))
            raise FetchError(f"Failed to fetch products for market {market_id}: {e}") from e

    async def fetch_overrides_for_products(
        self, product_ids: Sequence[UUID], owner_id: UUID
    ) -> List[ProductOverride]:
        if not product_ids:
            return []
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(ProductOverrideRow)
                    .where(ProductOverrideRow.user_id == owner_id)
                    .where(ProductOverrideRow.product_id.in_(list(product_ids)))
                )
                return [override_from_row(row) for row in result.scalars().all()]
        except (SQLAlchemyError, ValidationError, ValueError) as e:
            logger.error("fetch_overrides_failed", product_count=len(product_ids), error=str(e))
            raise FetchError(f"Failed to fetch product overrides: {e}") from e

    async def get_market_override(
        self, owner_id: UUID, market_id: UUID
    ) -> Optional[MarketOverrideRecord]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(MarketOverrideRow)
                    .where(MarketOverrideRow.user_id == owner_id)
                    .where(MarketOverrideRow.market_id == market_id)
                )
                row = result.scalar_one_or_none()
                return market_override_from_row(row) if row else None
        except (SQLAlchemyError, ValidationError, ValueError) as e:
            logger.error("get_market_override_failed", market_id=str(market_id), error=str(e))
            raise FetchError(f"Failed to fetch market override {market_id}: {e}") from e

    async def upsert_market_override(
        self,
        owner_id: UUID,
        market_id: UUID,
        keyword: str,
        statistics: MarketStatistics,
        reason: str,
        recalculated_at: datetime,
    ) -> MarketOverrideRecord:
        """INSERT ... ON CONFLICT (user_id, market_id) DO UPDATE."""
        values = {
            "user_id": owner_id,
            "market_id": market_id,
            "keyword": keyword,
            "override_reason": reason,
            "recalculation_date": recalculated_at,
            **statistics.to_override_data(),
        }
        stmt = insert(MarketOverrideRow).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[MarketOverrideRow.user_id, MarketOverrideRow.market_id],
            set_={
                **{k: stmt.excluded[k] for k in values if k not in ("user_id", "market_id")},
                "updated_at": func.now(),
            },
        ).returning(MarketOverrideRow)

        try:
            async with self._session_maker() as session:
                async with session.begin():
                    result = await session.execute(stmt)
                    row = result.scalar_one()
                    record = market_override_from_row(row)
        except (SQLAlchemyError, ValidationError, ValueError) as e:
            logger.error("upsert_market_override_failed", market_id=str(market_id), error=str(e))
            raise PersistError(f"Failed to save market override {market_id}: {e}") from e

        logger.debug("market_override_upserted", market_id=str(market_id), grade=record.market_grade)
        return record

    async def find_market_ids_for_products(
        self, product_ids: Sequence[UUID], owner_id: UUID
    ) -> List[UUID]:
        if not product_ids:
            return []
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(ProductRow.market_id)
                    .where(ProductRow.id.in_(list(product_ids)))
                    .where(ProductRow.user_id == owner_id)
                    .where(ProductRow.market_id.is_not(None))
                    .distinct()
                    .order_by(ProductRow.market_id)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("find_affected_markets_failed", error=str(e))
            raise FetchError(f"Failed to find markets for products: {e}") from e

    async def upsert_product_overrides(
        self, owner_id: UUID, overrides: Sequence[ProductOverride]
    ) -> List[ProductOverride]:
        """INSERT ... ON CONFLICT (user_id, product_id) DO UPDATE."""
        if not overrides:
            return []
        rows = [override_values(owner_id, o) for o in overrides]
        stmt = insert(ProductOverrideRow).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=[ProductOverrideRow.user_id, ProductOverrideRow.product_id],
            set_={
                **{name: stmt.excluded[name] for name in _OVERRIDE_COLUMNS},
                "updated_at": func.now(),
            },
        ).returning(ProductOverrideRow)

        try:
            async with self._session_maker() as session:
                async with session.begin():
                    result = await session.execute(stmt)
                    written = [override_from_row(row) for row in result.scalars().all()]
        except (SQLAlchemyError, ValidationError, ValueError) as e:
            logger.error("upsert_product_overrides_failed", count=len(rows), error=str(e))
            raise PersistError(f"Failed to save product overrides: {e}") from e

        return written

    async def delete_product_overrides(self, owner_id: UUID, product_ids: Sequence[UUID]) -> int:
        if not product_ids:
            return 0
        try:
            async with self._session_maker() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(ProductOverrideRow)
                        .where(ProductOverrideRow.user_id == owner_id)
                        .where(ProductOverrideRow.product_id.in_(list(product_ids)))
                    )
                    return result.rowcount
        except SQLAlchemyError as e:
            logger.error("delete_product_overrides_failed", error=str(e))
            raise PersistError(f"Failed to delete product overrides: {e}") from e

    async def delete_market_overrides(self, owner_id: UUID, market_id: Optional[UUID] = None) -> int:
        stmt = delete(MarketOverrideRow).where(MarketOverrideRow.user_id == owner_id)
        if market_id is not None:
            stmt = stmt.where(MarketOverrideRow.market_id == market_id)
        try:
            async with self._session_maker() as session:
                async with session.begin():
                    result = await session.execute(stmt)
                    return result.rowcount
        except SQLAlchemyError as e:
            logger.error("delete_market_overrides_failed", error=str(e))
            raise PersistError(f"Failed to delete market overrides: {e}") from e

    async def fetch_markets_for_owner(self, owner_id: UUID) -> List[MarketSnapshot]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(MarketRow)
                    .where(MarketRow.user_id == owner_id)
                    .order_by(MarketRow.research_date.desc().nulls_last(), MarketRow.id)
                )
                return [market_from_row(row) for row in result.scalars().all()]
        except (SQLAlchemyError, ValidationError, ValueError) as e:
            logger.error("fetch_markets_failed", error=str(e))
            raise FetchError(f"Failed to fetch markets: {e}") from e

    async def fetch_market_overrides_for_owner(self, owner_id: UUID) -> List[MarketOverrideRecord]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(MarketOverrideRow).where(MarketOverrideRow.user_id == owner_id)
                )
                return [market_override_from_row(row) for row in result.scalars().all()]
        except (SQLAlchemyError, ValidationError, ValueError) as e:
            logger.error("fetch_market_overrides_failed", error=str(e))
            raise FetchError(f"Failed to fetch market overrides: {e}") from e
