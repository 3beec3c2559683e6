import hmac
import time
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from bestsellers.core.config import Settings, get_settings
from bestsellers.core.errors import UnauthorizedError, UpstreamError
from bestsellers.db.shopify import ShopifyAdminClient
from bestsellers.domain.models.bestsellers import BestsellersResult, SnapshotSummary
from bestsellers.domain.models.order import Order
from bestsellers.domain.repositories.bestsellers_cache_repo import BestsellersCacheRepo
from bestsellers.domain.repositories.order_repo import OrderRepo
from bestsellers.domain.repositories.product_repo import ProductRepo
from bestsellers.domain.services.aggregation import ScanStats, aggregate, rank
from bestsellers.domain.services.bestsellers_svc import clamp_limit
from bestsellers.domain.services.constants import SEGMENTS
from bestsellers.domain.services.segments import SegmentSet, all_segment_sets
from bestsellers.domain.services.windows import rolling_window

logger = logging.getLogger(__name__)


def check_secret(provided: Optional[str], expected: Optional[str]) -> None:
    """Exact match required; a missing value on either side is unauthorized."""
    if not provided or not expected or not hmac.compare_digest(provided.encode(), expected.encode()):
        raise UnauthorizedError("unauthorized")


class _HandleMemo:
    """Per-run id -> handle memo so overlapping subsets do not re-resolve known ids."""

    def __init__(self, products: ProductRepo):
        self.products = products
        self.known: Dict[str, Optional[str]] = {}
        self.calls = 0

    async def resolve(self, ids: List[str]) -> List[str]:
        missing = [i for i in ids if i not in self.known]
        if missing:
            self.calls += 1
            found = await self.products.resolve_handles_map(missing)
            for i in missing:
                self.known[i] = found.get(i)
        return [h for h in (self.known[i] for i in ids) if h]


async def build_snapshots_svc(
    shopify: Optional[ShopifyAdminClient],
    redis,
    secret: Optional[str],
    limit: Optional[int] = None,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
    vocabulary=SEGMENTS,
) -> SnapshotSummary:
    """
    Precompute the last-30-days bestsellers for every segment combination.

    Flow:
      1) Check the capability secret (nothing else happens on failure).
      2) Fetch the order window exactly once.
      3) For each subset of the vocabulary (empty set = "all"), aggregate +
         rank + resolve against the in-memory orders.
      4) Write every snapshot only once all of them were computed, so an
         upstream failure leaves the previous snapshots untouched.
    """
    settings = settings or get_settings()
    check_secret(secret, settings.SNAPSHOT_SECRET)

    start_time = time.perf_counter()
    limit = clamp_limit(limit, settings.snapshot_default_limit, settings.max_limit)
    now = now or datetime.now(timezone.utc)
    window = rolling_window(settings.default_window_days, now)
    combos = all_segment_sets(vocabulary)
    labels = [c.label for c in combos]
    snapshot_at = now.isoformat().replace("+00:00", "Z")
    logger.info("snapshot start window=%s..%s combos=%s limit=%s", window.from_iso, window.to_iso, len(combos), limit)

    # segments stays empty unless every combination was computed
    summary = SnapshotSummary(ok=False, snapshot_at=snapshot_at, range=window.as_meta(), limit=limit)

    stats = ScanStats()
    try:
        if shopify is None:
            raise UpstreamError("Shopify client not initialised")
        orders: List[Order] = await OrderRepo(
            shopify,
            financial_status=settings.shopify_financial_status,
            page_size=settings.shopify_page_size,
            line_items_per_order=settings.shopify_line_items_per_order,
        ).fetch_orders(window, stats)

        memo = _HandleMemo(ProductRepo(shopify))
        results: List[Tuple[SegmentSet, BestsellersResult]] = []
        for segs in combos:
            top_ids = rank(aggregate(orders, segs), limit)
            handles = await memo.resolve(top_ids) if top_ids else []
            results.append((segs, BestsellersResult(
                handles=handles,
                meta={
                    "snapshot_at": snapshot_at,
                    "range": window.as_meta(),
                    "segments": list(segs),
                    "source": "snapshot",
                },
            )))
            logger.debug("snapshot computed segments=%s items=%s", segs.label, len(handles))
    except UpstreamError as e:
        logger.error("snapshot failed err=%s", e)
        return summary.model_copy(update={"error": "snapshot-failed", "orders": stats.orders})

    cache = BestsellersCacheRepo(redis, version=settings.cache_version)
    written = 0
    for segs, result in results:
        if await cache.set(cache.snapshot_key(segs, limit), result, ttl=settings.snapshot_cache_ttl):
            written += 1

    logger.info(
        "snapshot done orders=%s combos=%s written=%s resolver_calls=%s total_time=%.3fs",
        stats.orders, len(results), written, memo.calls, time.perf_counter() - start_time,
    )
    return summary.model_copy(update={"ok": True, "segments": labels, "written": written, "orders": stats.orders})
