"""Unit tests for SqlMarketStore and the row converters.

Sessions are mocked; statements handed to session.execute are captured and
compiled against the PostgreSQL dialect where the SQL shape matters.
"""
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from src.db.models import (
    Keyword as KeywordRow,
    Market as MarketRow,
    MarketOverride as MarketOverrideRow,
    Product as ProductRow,
    ProductKeyword,
    ProductOverride as ProductOverrideRow,
)
from src.db.repository import (
    SqlMarketStore,
    market_from_row,
    override_from_row,
    override_values,
    product_from_row,
)
from src.errors import FetchError, MarketNotFoundError, PersistError
from src.models.market import MarketStatistics
from src.models.product import ConsistencyRating, ProductOverride, RiskClassification


class _AsyncCM:
    """Minimal async context manager returning a fixed value."""

    def __init__(self, value):
        self.value = value

    async def __aenter__(self):
        return self.value

    async def __aexit__(self, exc_type, exc, tb):
        return False


def make_session(result=None, side_effect=None):
    session = MagicMock()
    session.execute = AsyncMock(return_value=result, side_effect=side_effect)
    session.begin = MagicMock(return_value=_AsyncCM(None))
    return session


def make_store(session) -> SqlMarketStore:
    session_maker = MagicMock(return_value=_AsyncCM(session))
    return SqlMarketStore(session_maker)


def compiled_sql(session) -> str:
    stmt = session.execute.call_args[0][0]
    return str(stmt.compile(dialect=postgresql.dialect()))


def product_row(**fields) -> ProductRow:
    data = {
        "id": uuid4(),
        "user_id": uuid4(),
        "market_id": uuid4(),
        "asin": "B0TEST0001",
        "price": Decimal("39.99"),
        "reviews": 120,
        "monthly_revenue": Decimal("1500.00"),
        "margin": Decimal("0.3500"),
        "risk_classification": "NoRisk",
        "consistency_rating": "Consistent",
    }
    data.update(fields)
    return ProductRow(**data)


def market_override_row(**fields) -> MarketOverrideRow:
    data = {
        "id": uuid4(),
        "user_id": uuid4(),
        "market_id": uuid4(),
        "keyword": "yoga mat",
        "override_reason": "Recalculated from product overrides",
        "recalculation_date": datetime(2026, 1, 15, tzinfo=timezone.utc),
        **MarketStatistics(avg_price=30.0, market_grade="B4").to_override_data(),
    }
    data.update(fields)
    return MarketOverrideRow(**data)


class TestRowConverters:
    """Tests for ORM row to domain model conversion."""

    def test_product_with_keywords(self):
        row = product_row()
        row.keyword_links = [
            ProductKeyword(keyword=KeywordRow(keyword="yoga mat", cpc=Decimal("1.20"), search_volume=9000)),
            ProductKeyword(keyword=KeywordRow(keyword="thick yoga mat", cpc=None)),
        ]

        product = product_from_row(row)

        assert product.id == row.id
        assert product.price == pytest.approx(39.99)
        assert [k.keyword for k in product.keywords] == ["yoga mat", "thick yoga mat"]
        assert product.keyword_cpc == pytest.approx(1.2)

    def test_legacy_risk_label(self):
        product = product_from_row(product_row(risk_classification="safe", consistency_rating=None))

        assert product.risk_classification == RiskClassification.NO_RISK
        assert product.consistency_rating == ConsistencyRating.CONSISTENT

    def test_unknown_label_rejected(self):
        with pytest.raises(ValueError):
            product_from_row(product_row(risk_classification="radioactive"))

    def test_override_row(self):
        row = ProductOverrideRow(
            id=uuid4(),
            user_id=uuid4(),
            product_id=uuid4(),
            price=Decimal("49.99"),
            risk_classification="Electric",
            override_reason="supplier quote",
        )

        override = override_from_row(row)

        assert override.owner_id == row.user_id
        assert override.price == pytest.approx(49.99)
        assert override.risk_classification == RiskClassification.ELECTRIC
        assert override.reviews is None

    def test_market_row_with_partial_snapshot(self):
        row = MarketRow(id=uuid4(), user_id=uuid4(), keyword="yoga mat", avg_price=Decimal("25.00"))

        snapshot = market_from_row(row)

        assert snapshot.avg_price == pytest.approx(25.0)
        assert snapshot.avg_reviews is None
        assert snapshot.market_risk_classification is None

    def test_override_values_store_enum_values(self):
        owner_id = uuid4()
        override = ProductOverride(
            owner_id=owner_id,
            product_id=uuid4(),
            risk_classification="Banned",
            consistency_rating="trendy",
        )

        values = override_values(owner_id, override)

        assert values["user_id"] == owner_id
        assert values["risk_classification"] == "Banned"
        assert values["consistency_rating"] == "Trendy"
        assert values["price"] is None


class TestSqlMarketStoreReads:
    """Tests for read operations."""

    @pytest.mark.asyncio
    async def test_get_market(self):
        row = MarketRow(id=uuid4(), user_id=uuid4(), keyword="yoga mat", market_grade="C5")
        result = MagicMock()
        result.scalar_one_or_none.return_value = row
        store = make_store(make_session(result))

        snapshot = await store.get_market(row.user_id, row.id)

        assert snapshot.keyword == "yoga mat"
        assert snapshot.market_grade == "C5"

    @pytest.mark.asyncio
    async def test_get_market_not_found(self):
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        store = make_store(make_session(result))

        with pytest.raises(MarketNotFoundError):
            await store.get_market(uuid4(), uuid4())

    @pytest.mark.asyncio
    async def test_fetch_products_scoped_to_owner(self):
        owner_id, market_id = uuid4(), uuid4()
        result = MagicMock()
        result.scalars.return_value.all.return_value = [product_row(user_id=owner_id, market_id=market_id)]
        session = make_session(result)
        store = make_store(session)

        products = await store.fetch_products_for_market(market_id, owner_id)

        assert len(products) == 1
        assert "products.user_id" in compiled_sql(session)

    @pytest.mark.asyncio
    async def test_database_error_becomes_fetch_error(self):
        session = make_session(side_effect=OperationalError("SELECT 1", {}, Exception("connection reset")))
        store = make_store(session)

        with pytest.raises(FetchError) as exc_info:
            await store.fetch_products_for_market(uuid4(), uuid4())

        assert "connection reset" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_bad_row_becomes_fetch_error(self):
        result = MagicMock()
        result.scalars.return_value.all.return_value = [product_row(consistency_rating="sometimes")]
        store = make_store(make_session(result))

        with pytest.raises(FetchError):
            await store.fetch_products_for_market(uuid4(), uuid4())

    @pytest.mark.asyncio
    async def test_empty_id_lists_skip_the_database(self):
        session = make_session()
        store = make_store(session)

        assert await store.fetch_overrides_for_products([], uuid4()) == []
        assert await store.find_market_ids_for_products([], uuid4()) == []
        session.execute.assert_not_awaited()


class TestSqlMarketStoreWrites:
    """Tests for upserts and deletes."""

    @pytest.mark.asyncio
    async def test_upsert_market_override_on_conflict(self):
        row = market_override_row()
        result = MagicMock()
        result.scalar_one.return_value = row
        session = make_session(result)
        store = make_store(session)

        record = await store.upsert_market_override(
            row.user_id,
            row.market_id,
            "yoga mat",
            MarketStatistics(avg_price=30.0, market_grade="B4"),
            "manual",
            datetime(2026, 1, 15, tzinfo=timezone.utc),
        )

        sql = compiled_sql(session)
        assert "INSERT INTO user_market_overrides" in sql
        assert "ON CONFLICT (user_id, market_id) DO UPDATE" in sql
        assert record.market_grade == "B4"
        assert record.avg_price == pytest.approx(30.0)

    @pytest.mark.asyncio
    async def test_upsert_market_override_failure(self):
        session = make_session(side_effect=OperationalError("INSERT", {}, Exception("deadlock detected")))
        store = make_store(session)

        with pytest.raises(PersistError):
            await store.upsert_market_override(
                uuid4(), uuid4(), "yoga mat", MarketStatistics(), "manual", datetime.now(timezone.utc)
            )

    @pytest.mark.asyncio
    async def test_upsert_product_overrides_on_conflict(self):
        owner_id, product_id = uuid4(), uuid4()
        written = ProductOverrideRow(
            id=uuid4(), user_id=owner_id, product_id=product_id, price=Decimal("12.00"), override_reason=""
        )
        result = MagicMock()
        result.scalars.return_value.all.return_value = [written]
        session = make_session(result)
        store = make_store(session)

        overrides = await store.upsert_product_overrides(
            owner_id, [ProductOverride(owner_id=owner_id, product_id=product_id, price=12.0)]
        )

        assert "ON CONFLICT (user_id, product_id) DO UPDATE" in compiled_sql(session)
        assert overrides[0].price == pytest.approx(12.0)

    @pytest.mark.asyncio
    async def test_delete_market_overrides_for_one_market(self):
        result = MagicMock(rowcount=1)
        session = make_session(result)
        store = make_store(session)

        deleted = await store.delete_market_overrides(uuid4(), uuid4())

        assert deleted == 1
        sql = compiled_sql(session)
        assert "DELETE FROM user_market_overrides" in sql
        assert "user_market_overrides.market_id" in sql

    @pytest.mark.asyncio
    async def test_delete_failure_becomes_persist_error(self):
        session = make_session(side_effect=OperationalError("DELETE", {}, Exception("read-only transaction")))
        store = make_store(session)

        with pytest.raises(PersistError):
            await store.delete_product_overrides(uuid4(), [uuid4()])
