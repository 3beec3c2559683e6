# bestsellers/domain/repositories/bestsellers_cache_repo.py
from __future__ import annotations
import logging
import time
from typing import Callable, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from bestsellers.core.errors import CacheError
from bestsellers.domain.models.bestsellers import BestsellersResult
from bestsellers.domain.models.order import DateWindow
from bestsellers.domain.services.constants import KEY_PREFIX, SNAPSHOT_WINDOW_MARKER
from bestsellers.domain.services.segments import SegmentSet
from bestsellers.utils.cache import dump_payload, unwrap_payload

logger = logging.getLogger(__name__)

"""
Note:
    - Adapter for the shared (live) and snapshot layers, both stored in Redis.
    - No business logic here, just keys and best-effort get/set.
    - Redis problems never escape: reads become misses, writes become no-ops.
"""


class BestsellersCacheRepo:
    """
    Redis-backed shared and snapshot cache layers.
    Works with `redis=None` (Redis not configured): every read misses, every write is skipped.
    """

    def __init__(self, redis: Optional[Redis], version: str = "v5", clock: Callable[[], float] = time.time):
        self.redis = redis
        self.version = version
        self._clock = clock

    # ----- Keys -------------------------------------------------------------

    def live_key(self, window: DateWindow, segments: SegmentSet, limit: int, channel: Optional[str] = None) -> str:
        """Key shared by the process-local and Redis live layers."""
        key = f"{KEY_PREFIX}:{self.version}:live:{window.from_iso}:{window.to_iso}:{segments.key}:{limit}"
        return f"{key}:{channel}" if channel else key

    def snapshot_key(self, segments: SegmentSet, limit: int) -> str:
        """Snapshot key: rolling window marker, not exact dates."""
        return f"{KEY_PREFIX}:{self.version}:snapshot:{SNAPSHOT_WINDOW_MARKER}:{segments.key}:{limit}"

    # ----- Raw access -------------------------------------------------------

    async def _get_raw(self, key: str) -> Optional[str]:
        try:
            return await self.redis.get(key)
        except (RedisError, OSError, TimeoutError) as e:
            raise CacheError(f"redis get failed key={key}: {e}") from e

    async def _set_raw(self, key: str, payload: str, ttl: Optional[int]) -> None:
        try:
            await self.redis.set(key, payload, ex=ttl if ttl and ttl > 0 else None)
        except (RedisError, OSError, TimeoutError) as e:
            raise CacheError(f"redis set failed key={key}: {e}") from e

    # ----- Layer operations -------------------------------------------------

    async def get(self, key: str) -> Optional[BestsellersResult]:
        """Decoded value or None on absence, malformed payload, or Redis failure."""
        if self.redis is None:
            return None
        try:
            raw = await self._get_raw(key)
        except CacheError as e:
            logger.warning("bestsellers cache read failed: %s", e)
            return None
        if raw is None:
            return None
        value = unwrap_payload(raw)
        if value is None:
            logger.warning("bestsellers cache malformed payload key=%s", key)
        return value

    async def set(self, key: str, value: BestsellersResult, ttl: Optional[int] = None) -> bool:
        """Best-effort write. Returns False when skipped or failed."""
        if self.redis is None:
            return False
        try:
            await self._set_raw(key, dump_payload(value), ttl)
        except CacheError as e:
            logger.warning("bestsellers cache write failed: %s", e)
            return False
        return True

    def is_fresh(self, value: BestsellersResult, ttl_s: int) -> bool:
        """
        Live entries carry meta.cached_at (epoch seconds). Entries without it
        come from older writers whose Redis expiry was the freshness window.
        """
        return self.age(value) < ttl_s

    def age(self, value: BestsellersResult) -> float:
        """Seconds since meta.cached_at; 0 when the entry does not carry it."""
        at = value.meta.get("cached_at")
        if not isinstance(at, (int, float)):
            return 0.0
        return max(self._clock() - at, 0.0)

    def now(self) -> float:
        return self._clock()
