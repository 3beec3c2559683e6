import time
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from bestsellers.core.config import Settings, get_settings
from bestsellers.core.errors import UpstreamError, ValidationError
from bestsellers.db.shopify import ShopifyAdminClient
from bestsellers.domain.models.bestsellers import BestsellersResult
from bestsellers.domain.models.order import DateWindow
from bestsellers.domain.repositories.bestsellers_cache_repo import BestsellersCacheRepo
from bestsellers.domain.repositories.order_repo import OrderRepo
from bestsellers.domain.repositories.product_repo import ProductRepo
from bestsellers.domain.services.aggregation import ScanStats, aggregate, rank
from bestsellers.domain.services.constants import ALL_CHANNELS
from bestsellers.domain.services.segments import SegmentSet, parse_segments
from bestsellers.domain.services.windows import resolve_window
from bestsellers.utils.cache import MemoryTTLCache

logger = logging.getLogger(__name__)


def _json_preview(obj: Any, limit: int = 1000) -> str:
    """Minify and truncate JSON for debug logs."""
    try:
        s = json.dumps(obj, separators=(",", ":"), ensure_ascii=False, default=str)
        return s if len(s) <= limit else s[:limit] + "…[truncated]"
    except Exception:
        return "<unserializable>"


@dataclass(frozen=True)
class BestsellersQuery:
    segments: SegmentSet
    limit: int
    window: DateWindow
    use_snapshot: bool = True
    nocache: bool = False
    debug: bool = False
    channel: Optional[str] = None


def clamp_limit(limit: Optional[int], default: int, maximum: int) -> int:
    if limit is None:
        return default
    if limit < 1:
        raise ValidationError("'limit' must be a positive integer")
    return min(limit, maximum)


def build_query(
    *,
    segments: Optional[str] = None,
    segment: Optional[str] = None,
    limit: Optional[int] = None,
    from_: Optional[str] = None,
    to: Optional[str] = None,
    snapshot: bool = True,
    nocache: bool = False,
    debug: bool = False,
    channel: Optional[str] = None,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> BestsellersQuery:
    """Validate raw request parameters. Raises ValidationError before any I/O."""
    settings = settings or get_settings()
    channel = (channel or "").strip().lower() or None
    if channel and channel not in ALL_CHANNELS:
        raise ValidationError(f"'channel' must be one of {sorted(ALL_CHANNELS)}")
    return BestsellersQuery(
        segments=parse_segments(segments, segment),
        limit=clamp_limit(limit, settings.default_limit, settings.max_limit),
        window=resolve_window(from_, to, days=settings.default_window_days, now=now),
        use_snapshot=snapshot,
        nocache=nocache,
        debug=debug,
        channel=channel,
    )


async def compute_bestsellers(
    shopify: ShopifyAdminClient,
    query: BestsellersQuery,
    stats: ScanStats,
    settings: Settings,
) -> BestsellersResult:
    """Live pipeline: fetch orders -> aggregate -> rank -> resolve handles."""
    orders = await OrderRepo(
        shopify,
        financial_status=settings.shopify_financial_status,
        page_size=settings.shopify_page_size,
        line_items_per_order=settings.shopify_line_items_per_order,
    ).fetch_orders(query.window, stats)

    totals = aggregate(orders, query.segments, query.channel, stats)
    top_ids = rank(totals, query.limit)
    handles = await ProductRepo(shopify).resolve_handles(top_ids) if top_ids else []

    meta: dict[str, Any] = {
        "range": query.window.as_meta(),
        "segments": list(query.segments),
        "limit": query.limit,
    }
    if query.channel:
        meta["channel"] = query.channel
    return BestsellersResult(handles=handles, meta=meta)


async def get_bestsellers_svc(
    shopify: Optional[ShopifyAdminClient],
    redis,
    memory: MemoryTTLCache,
    query: BestsellersQuery,
    settings: Optional[Settings] = None,
) -> BestsellersResult:
    """
    Tiered read: snapshot -> process memory -> redis -> live pipeline.

    - A live success is written through to memory and redis.
    - A live failure serves the last value held for the same key in memory or
      redis (tagged "stale") even past its freshness window, else an empty list.
    - Cache problems are misses; only ValidationError (raised in build_query)
      reaches the caller.
    """
    start_time = time.perf_counter()
    settings = settings or get_settings()
    cache = BestsellersCacheRepo(redis, version=settings.cache_version)
    logger.info(
        "bestsellers start segments=%s limit=%s channel=%s snapshot=%s nocache=%s",
        query.segments.label, query.limit, query.channel, query.use_snapshot, query.nocache,
    )

    # 1) Snapshot (precomputed, last 30 days, no channel filter)
    if query.use_snapshot and not query.channel:
        snap_key = cache.snapshot_key(query.segments, query.limit)
        snap = await cache.get(snap_key)
        if snap is not None:
            logger.info("bestsellers snapshot_hit key=%s items=%s", snap_key, len(snap.handles))
            return snap.tagged("snapshot")

    key = cache.live_key(query.window, query.segments, query.limit, query.channel)
    logger.debug("bestsellers key=%s", key)

    # 2) Process memory, 3) Redis
    if not query.nocache:
        hit = memory.get(key)
        if hit is not None:
            logger.info("bestsellers cache_hit(memory) key=%s items=%s", key, len(hit.handles))
            return hit.tagged("memory")

        shared = await cache.get(key)
        if shared is not None and cache.is_fresh(shared, settings.bestsellers_cache_ttl):
            memory.set(key, shared, age_s=cache.age(shared))  # expires with the redis entry's freshness
            logger.info("bestsellers cache_hit(redis) key=%s items=%s", key, len(shared.handles))
            return shared.tagged("redis")

    logger.info("bestsellers cache_miss key=%s", key)

    # 4) Live
    stats = ScanStats()
    try:
        if shopify is None:
            raise UpstreamError("Shopify client not initialised")
        live_t0 = time.perf_counter()
        result = await compute_bestsellers(shopify, query, stats, settings)
        logger.info(
            "bestsellers live_ok items=%s pages=%s orders=%s live_time=%.3fs",
            len(result.handles), stats.pages, stats.orders, time.perf_counter() - live_t0,
        )
    except UpstreamError as e:
        logger.error("bestsellers live_failed key=%s err=%s", key, e)
        stale = memory.get_stale(key) or await cache.get(key)
        if stale is not None:
            logger.warning("bestsellers serving stale key=%s items=%s", key, len(stale.handles))
            return stale.tagged("stale", error="live-failed", stats=stats.as_meta())
        return BestsellersResult(
            handles=[],
            meta={"range": query.window.as_meta(), "segments": list(query.segments)},
        ).tagged("empty", error="live-failed", stats=stats.as_meta())

    # Write-through (an empty list is a valid, cacheable answer)
    stored = result.model_copy(update={"meta": {**result.meta, "cached_at": cache.now()}})
    memory.set(key, stored)
    await cache.set(key, stored, ttl=settings.bestsellers_stale_ttl)
    logger.debug("bestsellers cache_set key=%s payload=%s", key, _json_preview(stored.model_dump()))

    source = "live" if stored.handles else "live-empty"
    logger.info("bestsellers done source=%s items=%s total_time=%.3fs", source, len(stored.handles), time.perf_counter() - start_time)
    return stored.tagged(source, stats=stats.as_meta())
