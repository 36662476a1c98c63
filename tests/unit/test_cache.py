"""Unit tests for the dashboard cache.

Uses a mocked redis.asyncio client.
"""
from unittest.mock import AsyncMock, MagicMock, call
from uuid import uuid4

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.errors import CacheError
from src.models.dashboard import DashboardSnapshot, DashboardStats
from src.services.cache import DASHBOARD_PREFIX, DEFAULT_TTL_SECONDS, DashboardCache


@pytest.fixture
def mock_redis():
    """Create mock Redis client."""
    redis = AsyncMock()
    redis.setex = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.delete = AsyncMock(return_value=1)
    redis.exists = AsyncMock(return_value=0)
    return redis


@pytest.fixture
def cache(mock_redis):
    return DashboardCache(mock_redis, ttl_seconds=DEFAULT_TTL_SECONDS)


def make_snapshot(owner_id) -> DashboardSnapshot:
    return DashboardSnapshot(owner_id=owner_id, stats=DashboardStats(markets_analyzed=2, total_products=9))


class TestDashboardCache:
    """Tests for DashboardCache."""

    def test_key_format(self, owner_id):
        assert DashboardCache.key_for(owner_id) == f"{DASHBOARD_PREFIX}{owner_id}"
        assert DashboardCache.key_for(owner_id).startswith("dashboard_data:")

    def test_ttl_must_be_positive(self, mock_redis):
        with pytest.raises(ValueError):
            DashboardCache(mock_redis, ttl_seconds=0)

    @pytest.mark.asyncio
    async def test_set_uses_setex_with_ttl(self, cache, mock_redis, owner_id):
        await cache.set(make_snapshot(owner_id))

        mock_redis.setex.assert_called_once()
        key, ttl, data = mock_redis.setex.call_args[0]
        assert key == f"dashboard_data:{owner_id}"
        assert ttl == 300
        assert str(owner_id) in data
        assert "cached" not in data

    @pytest.mark.asyncio
    async def test_get_miss(self, cache, owner_id):
        assert await cache.get(owner_id) is None

    @pytest.mark.asyncio
    async def test_get_hit_marks_snapshot_cached(self, cache, mock_redis, owner_id):
        mock_redis.get = AsyncMock(return_value=make_snapshot(owner_id).to_json().encode())

        snapshot = await cache.get(owner_id)

        assert snapshot.cached is True
        assert snapshot.owner_id == owner_id
        assert snapshot.stats.total_products == 9

    @pytest.mark.asyncio
    async def test_get_unreadable_entry_is_dropped(self, cache, mock_redis, owner_id):
        mock_redis.get = AsyncMock(return_value=b'{"owner_id": "not-a-snapshot"}')

        assert await cache.get(owner_id) is None
        mock_redis.delete.assert_awaited_once_with(f"dashboard_data:{owner_id}")

    @pytest.mark.asyncio
    async def test_get_truncated_json_is_dropped(self, cache, mock_redis, owner_id):
        mock_redis.get = AsyncMock(return_value=make_snapshot(owner_id).to_json().encode()[:20])

        assert await cache.get(owner_id) is None
        mock_redis.delete.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalidate_deletes_then_confirms(self, owner_id):
        redis = MagicMock()
        redis.delete = AsyncMock(return_value=1)
        redis.exists = AsyncMock(return_value=0)
        cache = DashboardCache(redis)

        await cache.invalidate(owner_id)

        key = f"dashboard_data:{owner_id}"
        assert redis.mock_calls == [call.delete(key), call.exists(key)]

    @pytest.mark.asyncio
    async def test_invalidate_when_key_absent(self, cache, mock_redis, owner_id):
        mock_redis.delete = AsyncMock(return_value=0)

        await cache.invalidate(owner_id)

        mock_redis.exists.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalidate_raises_if_key_survives(self, cache, mock_redis, owner_id):
        mock_redis.exists = AsyncMock(return_value=1)

        with pytest.raises(CacheError):
            await cache.invalidate(owner_id)

    @pytest.mark.asyncio
    async def test_redis_errors_become_cache_errors(self, cache, mock_redis, owner_id):
        mock_redis.delete = AsyncMock(side_effect=RedisConnectionError("Connection refused"))

        with pytest.raises(CacheError) as exc_info:
            await cache.invalidate(owner_id)

        assert "Connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_other_owners_untouched(self, cache, mock_redis):
        owner_a, owner_b = uuid4(), uuid4()

        await cache.invalidate(owner_a)

        mock_redis.delete.assert_awaited_once_with(f"dashboard_data:{owner_a}")
        assert str(owner_b) not in str(mock_redis.mock_calls)
