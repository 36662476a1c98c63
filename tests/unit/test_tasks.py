"""Unit tests for queue tasks.

The recalculator and dashboard are mocked; tasks are exercised as the arq
worker calls them, with services read from ctx.
"""
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.models.dashboard import DashboardSnapshot, DashboardStats
from src.models.market import MarketOverrideRecord, MarketStatistics
from src.models.product import ProductOverride
from src.models.results import (
    Failure,
    FailureKind,
    OverrideWriteOutcome,
    RecalculationDebug,
    RecalculationOutcome,
)
from src.tasks.recalculation_tasks import (
    apply_product_overrides_task,
    delete_market_overrides_task,
    delete_product_overrides_task,
    get_dashboard_task,
    recalculate_market_task,
)


def make_outcome(owner_id, market_id) -> RecalculationOutcome:
    statistics = MarketStatistics(avg_price=30.0, market_grade="B4", products_verified=3)
    return RecalculationOutcome(
        market_id=market_id,
        keyword="yoga mat",
        market_override=MarketOverrideRecord.from_statistics(
            owner_id, market_id, "yoga mat", statistics, "manual", datetime(2026, 1, 15, tzinfo=timezone.utc)
        ),
        statistics=statistics,
        debug=RecalculationDebug(previous_grade="C5", new_grade="B4"),
    )


@pytest.fixture
def mock_recalculator():
    return MagicMock()


@pytest.fixture
def ctx(mock_recalculator):
    return {"recalculator": mock_recalculator, "dashboard": MagicMock()}


class TestRecalculateMarketTask:
    """Tests for recalculate_market_task."""

    @pytest.mark.asyncio
    async def test_success(self, ctx, mock_recalculator, owner_id):
        market_id = uuid4()
        mock_recalculator.recalculate_market = AsyncMock(return_value=make_outcome(owner_id, market_id))

        result = await recalculate_market_task(ctx, "task-1", str(market_id), str(owner_id), reason="manual")

        assert result["task_id"] == "task-1"
        assert result["status"] == "success"
        assert result["grade"] == "B4"
        assert result["debug"] == {"previous_grade": "C5", "new_grade": "B4"}
        mock_recalculator.recalculate_market.assert_awaited_once_with(market_id, owner_id, "manual")

    @pytest.mark.asyncio
    async def test_failure_is_returned(self, ctx, mock_recalculator, owner_id):
        market_id = uuid4()
        mock_recalculator.recalculate_market = AsyncMock(
            return_value=Failure(FailureKind.MARKET_NOT_FOUND, "Market not found", market_id)
        )

        result = await recalculate_market_task(ctx, "task-2", str(market_id), str(owner_id))

        assert result["status"] == "error"
        assert result["error_kind"] == "market_not_found"
        assert result["market_id"] == str(market_id)

    @pytest.mark.asyncio
    async def test_invalid_uuid(self, ctx, mock_recalculator, owner_id):
        mock_recalculator.recalculate_market = AsyncMock()

        result = await recalculate_market_task(ctx, "task-3", "not-a-uuid", str(owner_id))

        assert result["error_kind"] == "invalid_request"
        mock_recalculator.recalculate_market.assert_not_awaited()


class TestApplyProductOverridesTask:
    """Tests for apply_product_overrides_task."""

    @pytest.mark.asyncio
    async def test_payloads_are_validated_and_owned(self, ctx, mock_recalculator, owner_id):
        product_id = uuid4()
        mock_recalculator.apply_product_overrides = AsyncMock(
            return_value=OverrideWriteOutcome(owner_id=owner_id, overrides_written=1, cache_invalidated=True)
        )

        result = await apply_product_overrides_task(
            ctx,
            "task-4",
            str(owner_id),
            [{"product_id": str(product_id), "price": 49.99, "risk_classification": "safe"}],
            reason="supplier quote",
        )

        assert result["status"] == "success"
        assert result["overrides_written"] == 1
        passed_owner, overrides, reason = mock_recalculator.apply_product_overrides.call_args[0]
        assert passed_owner == owner_id
        assert reason == "supplier quote"
        assert isinstance(overrides[0], ProductOverride)
        assert overrides[0].owner_id == owner_id
        assert overrides[0].product_id == product_id

    @pytest.mark.asyncio
    async def test_payload_owner_cannot_be_spoofed(self, ctx, mock_recalculator, owner_id):
        mock_recalculator.apply_product_overrides = AsyncMock(
            return_value=OverrideWriteOutcome(owner_id=owner_id)
        )

        await apply_product_overrides_task(
            ctx, "task-5", str(owner_id), [{"product_id": str(uuid4()), "owner_id": str(uuid4())}]
        )

        overrides = mock_recalculator.apply_product_overrides.call_args[0][1]
        assert overrides[0].owner_id == owner_id

    @pytest.mark.asyncio
    async def test_invalid_payload(self, ctx, mock_recalculator, owner_id):
        mock_recalculator.apply_product_overrides = AsyncMock()

        result = await apply_product_overrides_task(
            ctx, "task-6", str(owner_id), [{"product_id": str(uuid4()), "price": -1}]
        )

        assert result["status"] == "error"
        assert result["error_kind"] == "invalid_request"
        mock_recalculator.apply_product_overrides.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_partial_success(self, ctx, mock_recalculator, owner_id):
        failure = Failure(FailureKind.PERSIST_FAILURE, "timeout", uuid4())
        mock_recalculator.apply_product_overrides = AsyncMock(
            return_value=OverrideWriteOutcome(
                owner_id=owner_id, overrides_written=1, failures=[failure.to_dict()], cache_invalidated=True
            )
        )

        result = await apply_product_overrides_task(ctx, "task-7", str(owner_id), [{"product_id": str(uuid4())}])

        assert result["status"] == "partial_success"
        assert result["failures"][0]["error_kind"] == "persist_failure"

    @pytest.mark.asyncio
    async def test_write_failure(self, ctx, mock_recalculator, owner_id):
        mock_recalculator.apply_product_overrides = AsyncMock(
            return_value=Failure(FailureKind.PERSIST_FAILURE, "constraint violation")
        )

        result = await apply_product_overrides_task(ctx, "task-8", str(owner_id), [{"product_id": str(uuid4())}])

        assert result["status"] == "error"
        assert result["error_kind"] == "persist_failure"


class TestDeleteTasks:
    """Tests for the delete tasks."""

    @pytest.mark.asyncio
    async def test_delete_product_overrides_skips_bad_ids(self, ctx, mock_recalculator, owner_id):
        good = uuid4()
        mock_recalculator.delete_product_overrides = AsyncMock(
            return_value=OverrideWriteOutcome(owner_id=owner_id, overrides_written=1)
        )

        result = await delete_product_overrides_task(ctx, "task-9", str(owner_id), ["bogus", str(good)])

        assert result["status"] == "success"
        mock_recalculator.delete_product_overrides.assert_awaited_once_with(owner_id, [good])

    @pytest.mark.asyncio
    async def test_delete_product_overrides_no_valid_ids(self, ctx, owner_id):
        result = await delete_product_overrides_task(ctx, "task-10", str(owner_id), ["bogus"])

        assert result["error_kind"] == "invalid_request"

    @pytest.mark.asyncio
    async def test_delete_all_market_overrides(self, ctx, mock_recalculator, owner_id):
        mock_recalculator.delete_market_overrides = AsyncMock(return_value=3)

        result = await delete_market_overrides_task(ctx, "task-11", str(owner_id))

        assert result == {"task_id": "task-11", "status": "success", "deleted": 3, "market_id": None}
        mock_recalculator.delete_market_overrides.assert_awaited_once_with(owner_id, None)

    @pytest.mark.asyncio
    async def test_delete_market_override_bad_market_id(self, ctx, owner_id):
        result = await delete_market_overrides_task(ctx, "task-12", str(owner_id), market_id="nope")

        assert result["error_kind"] == "invalid_request"


class TestGetDashboardTask:
    """Tests for get_dashboard_task."""

    @pytest.mark.asyncio
    async def test_returns_snapshot(self, ctx, owner_id):
        snapshot = DashboardSnapshot(owner_id=owner_id, stats=DashboardStats(markets_analyzed=2), cached=True)
        ctx["dashboard"].get_dashboard = AsyncMock(return_value=snapshot)

        result = await get_dashboard_task(ctx, "task-13", str(owner_id))

        assert result["status"] == "success"
        assert result["cached"] is True
        assert result["dashboard"]["stats"]["markets_analyzed"] == 2

    @pytest.mark.asyncio
    async def test_fetch_failure(self, ctx, owner_id):
        ctx["dashboard"].get_dashboard = AsyncMock(return_value=Failure(FailureKind.FETCH_FAILURE, "down"))

        result = await get_dashboard_task(ctx, "task-14", str(owner_id))

        assert result["error_kind"] == "fetch_failure"
