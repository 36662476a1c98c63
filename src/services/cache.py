"""Per-owner dashboard cache in Redis.

Keys: dashboard_data:{owner_id}, written with SETEX and a fixed positive TTL.

Staleness contract: once an override or market recalculation has been
persisted, the owner's key is deleted and the deletion is confirmed with
EXISTS before the write is reported as complete. The next read misses and
recomputes from the store.
"""
from typing import Optional
from uuid import UUID

import redis.asyncio as aioredis
import structlog
from pydantic import ValidationError
from redis.exceptions import RedisError

from src.errors import CacheError
from src.models.dashboard import DashboardSnapshot

logger = structlog.get_logger(__name__)

# Redis key pattern
DASHBOARD_PREFIX = "dashboard_data:"
DEFAULT_TTL_SECONDS = 300


class DashboardCache:
    """Read-through cache for dashboard snapshots.

    All Redis failures surface as CacheError.
    """

    def __init__(self, redis_client: aioredis.Redis, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        if ttl_seconds <= 0:
            raise ValueError("Cache TTL must be positive")
        self._redis = redis_client
        self._ttl = ttl_seconds

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    @staticmethod
    def key_for(owner_id: UUID) -> str:
        """Generate Redis key for an owner's dashboard."""
        return f"{DASHBOARD_PREFIX}{owner_id}"

    async def get(self, owner_id: UUID) -> Optional[DashboardSnapshot]:
        """Cached snapshot, or None on a miss or an unreadable entry."""
        try:
            data = await self._redis.get(self.key_for(owner_id))
        except RedisError as e:
            raise CacheError(f"Failed to read dashboard cache: {e}") from e
        if data is None:
            return None
        try:
            snapshot = DashboardSnapshot.from_json(data)
        except ValidationError as e:
            # Corrupt or older-layout entry
            logger.warning("dashboard_cache_entry_invalid", owner_id=str(owner_id), errors=e.error_count())
            await self.delete(owner_id)
            return None
        return snapshot.model_copy(update={"cached": True})

    async def set(self, snapshot: DashboardSnapshot) -> None:
        try:
            await self._redis.setex(self.key_for(snapshot.owner_id), self._ttl, snapshot.to_json())
        except RedisError as e:
            raise CacheError(f"Failed to write dashboard cache: {e}") from e

    async def delete(self, owner_id: UUID) -> int:
        try:
            return await self._redis.delete(self.key_for(owner_id))
        except RedisError as e:
            raise CacheError(f"Failed to delete dashboard cache: {e}") from e

    async def exists(self, owner_id: UUID) -> bool:
        try:
            return bool(await self._redis.exists(self.key_for(owner_id)))
        except RedisError as e:
            raise CacheError(f"Failed to check dashboard cache: {e}") from e

    async def invalidate(self, owner_id: UUID) -> None:
        """Delete the owner's snapshot and confirm it is gone.

        Raises:
            CacheError: Redis failed or the key survived the delete
        """
        deleted = await self.delete(owner_id)
        if await self.exists(owner_id):
            raise CacheError(f"Dashboard cache key survived delete for owner {owner_id}")
        logger.info("dashboard_cache_invalidated", owner_id=str(owner_id), keys_deleted=deleted)
