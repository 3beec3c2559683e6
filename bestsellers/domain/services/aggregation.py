from __future__ import annotations
from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Optional

from bestsellers.domain.models.order import Order
from bestsellers.domain.services.constants import CHANNEL_ONLINE, CHANNEL_POS, POS_SOURCE_NAMES
from bestsellers.domain.services.segments import SegmentSet, matches


@dataclass
class ScanStats:
    """Counters surfaced in debug meta."""
    pages: int = 0
    orders: int = 0
    line_items: int = 0
    skipped_cancelled: int = 0
    skipped_channel: int = 0
    skipped_no_product: int = 0
    skipped_segment: int = 0
    matched: int = 0

    def as_meta(self) -> dict:
        return asdict(self)


def order_channel(source_name: Optional[str]) -> str:
    """Map Shopify's sourceName to a channel. Absent label counts as online."""
    if not source_name:
        return CHANNEL_ONLINE
    return CHANNEL_POS if source_name.strip().lower() in POS_SOURCE_NAMES else CHANNEL_ONLINE


def channel_passes(order: Order, channel: Optional[str]) -> bool:
    if not channel:
        return True
    return order_channel(order.source_name) == channel


def aggregate(
    orders: Iterable[Order],
    segments: SegmentSet,
    channel: Optional[str] = None,
    stats: Optional[ScanStats] = None,
) -> Dict[str, int]:
    """
    Sum line-item quantities per product id for orders that survive the
    cancellation/channel filters and whose product matches `segments`.
    Insertion order is first-seen order, which ranking relies on for ties.
    """
    stats = stats if stats is not None else ScanStats()
    totals: Dict[str, int] = {}
    for order in orders:
        if order.is_cancelled:
            stats.skipped_cancelled += 1
            continue
        if not channel_passes(order, channel):
            stats.skipped_channel += 1
            continue
        for li in order.line_items:
            p = li.product
            if p is None:
                stats.skipped_no_product += 1
                continue
            if li.quantity <= 0:
                continue
            if not matches(p.tags, p.product_type, segments):
                stats.skipped_segment += 1
                continue
            stats.matched += 1
            totals[p.product_id] = totals.get(p.product_id, 0) + li.quantity
    return totals


def rank(totals: Dict[str, int], limit: int) -> List[str]:
    """Product ids by descending quantity, ties kept in first-seen order, truncated to `limit`."""
    if limit <= 0:
        return []
    ordered = sorted(totals.items(), key=lambda kv: -kv[1])  # sorted() is stable
    return [pid for pid, _ in ordered[:limit]]
