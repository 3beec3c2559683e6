# bestsellers/domain/repositories/order_repo.py

from __future__ import annotations
import logging
import time
from typing import Any, AsyncIterator, List, Optional

from pydantic import ValidationError as PydanticValidationError

from bestsellers.core.errors import UpstreamError
from bestsellers.db.shopify import ShopifyAdminClient
from bestsellers.domain.models.order import DateWindow, LineItem, Order, Product
from bestsellers.domain.services.aggregation import ScanStats

logger = logging.getLogger(__name__)

ORDERS_QUERY = """
query Orders($cursor: String, $first: Int!, $lineItems: Int!, $search: String!) {
  orders(first: $first, after: $cursor, query: $search) {
    pageInfo { hasNextPage endCursor }
    nodes {
      id
      cancelledAt
      sourceName
      lineItems(first: $lineItems) {
        nodes {
          quantity
          product { id handle tags productType }
        }
      }
    }
  }
}
"""


def _product_from_node(node: Optional[dict]) -> Optional[Product]:
    if not node or not node.get("id"):
        return None
    return Product(
        product_id=node["id"],
        handle=node.get("handle") or None,
        tags=list(node.get("tags") or []),
        product_type=node.get("productType") or "",
    )


def _order_from_node(node: dict) -> Order:
    items = ((node.get("lineItems") or {}).get("nodes")) or []
    return Order(
        order_id=node.get("id"),
        cancelled_at=node.get("cancelledAt"),
        source_name=node.get("sourceName"),
        line_items=[
            LineItem(quantity=max(int(li.get("quantity") or 0), 0), product=_product_from_node(li.get("product")))
            for li in items
        ],
    )


class OrderRepo:
    """
    Order source backed by the Admin API `orders` connection.
    Pages through the cursor until exhausted; any failed page raises UpstreamError.
    """

    def __init__(
        self,
        client: ShopifyAdminClient,
        *,
        financial_status: str = "paid",
        page_size: int = 100,
        line_items_per_order: int = 100,
    ):
        self.client = client
        self.financial_status = financial_status
        self.page_size = page_size
        self.line_items_per_order = line_items_per_order

    def search_for(self, window: DateWindow) -> str:
        return (
            f"financial_status:{self.financial_status} "
            f"created_at:>={window.from_iso} created_at:<={window.to_iso}"
        )

    async def iter_orders(
        self,
        window: DateWindow,
        stats: Optional[ScanStats] = None,
        cursor: Optional[str] = None,
    ) -> AsyncIterator[Order]:
        """
        Lazily yield orders for `window`, one page at a time.
        Pass `cursor` to resume after a page already consumed.
        """
        stats = stats if stats is not None else ScanStats()
        search = self.search_for(window)
        while True:
            data: dict[str, Any] = await self.client.query(
                ORDERS_QUERY,
                {
                    "cursor": cursor,
                    "first": self.page_size,
                    "lineItems": self.line_items_per_order,
                    "search": search,
                },
                timeout_s=self.client.timeouts.page_s,
            )
            conn = data.get("orders") or {}
            nodes = conn.get("nodes") or []
            page_info = conn.get("pageInfo") or {}
            stats.pages += 1
            try:
                page = [_order_from_node(node) for node in nodes]
            except (PydanticValidationError, TypeError, ValueError, AttributeError) as e:
                raise UpstreamError(f"Malformed orders page: {e}") from e
            for order in page:
                stats.orders += 1
                stats.line_items += len(order.line_items)
                yield order
            cursor = page_info.get("endCursor") if page_info.get("hasNextPage") else None
            if not cursor:
                return

    async def fetch_orders(self, window: DateWindow, stats: Optional[ScanStats] = None) -> List[Order]:
        """Materialise every order in the window; nothing is returned if any page fails."""
        stats = stats if stats is not None else ScanStats()
        t0 = time.perf_counter()
        orders = [o async for o in self.iter_orders(window, stats)]
        logger.info(
            "orders fetched window=%s..%s pages=%s orders=%s line_items=%s time=%.3fs",
            window.from_iso, window.to_iso, stats.pages, stats.orders, stats.line_items, time.perf_counter() - t0,
        )
        return orders
