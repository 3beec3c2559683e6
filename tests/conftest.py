"""Pytest configuration: Shopify faked behind httpx.MockTransport, Redis by an in-memory double."""

import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from bestsellers.core.config import Settings
from bestsellers.db.shopify import ShopifyAdminClient


class FakeRedis:
    """Async subset of redis.asyncio.Redis used by the cache repository."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.expiry: Dict[str, Optional[int]] = {}
        self.gets = 0
        self.sets = 0
        self.fail = False

    async def get(self, key: str):
        self.gets += 1
        if self.fail:
            raise ConnectionError("redis down")
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None):
        self.sets += 1
        if self.fail:
            raise ConnectionError("redis down")
        self.data[key] = value
        self.expiry[key] = ex
        return True


def product(pid: str, handle: Optional[str] = None, tags: Optional[List[str]] = None, ptype: str = "") -> Dict[str, Any]:
    return {"id": pid, "handle": handle if handle is not None else pid.lower(), "tags": tags or [], "productType": ptype}


def order(*items, oid: str = "o", cancelled_at: Optional[str] = None, source: Optional[str] = None) -> Dict[str, Any]:
    """items: (quantity, product-node-or-None) pairs."""
    return {
        "id": oid,
        "cancelledAt": cancelled_at,
        "sourceName": source,
        "lineItems": {"nodes": [{"quantity": q, "product": p} for q, p in items]},
    }


class FakeShopify:
    """
    Serves `orders` pages (cursor "c<n>" -> page n) and `nodes` lookups.
    Set `fail_orders_page` / `fail_nodes` to make those calls return an error.
    """

    def __init__(self, pages: Optional[List[List[Dict[str, Any]]]] = None, handles: Optional[Dict[str, Optional[str]]] = None):
        self.pages = pages if pages is not None else [[]]
        self.handles = handles  # None = derive from the order product nodes
        self.orders_calls = 0
        self.nodes_calls = 0
        self.node_ids: List[List[str]] = []
        self.fail_orders_page: Optional[int] = None
        self.fail_nodes = False

    def _known_handles(self) -> Dict[str, Optional[str]]:
        if self.handles is not None:
            return self.handles
        out: Dict[str, Optional[str]] = {}
        for page in self.pages:
            for o in page:
                for li in o["lineItems"]["nodes"]:
                    if li["product"]:
                        out[li["product"]["id"]] = li["product"]["handle"]
        return out

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        query, variables = body["query"], body.get("variables") or {}
        if "orders(" in query:
            self.orders_calls += 1
            cursor = variables.get("cursor")
            idx = int(cursor[1:]) if cursor else 0
            if self.fail_orders_page == idx:
                return httpx.Response(502, json={"errors": [{"message": "bad gateway"}]})
            has_next = idx + 1 < len(self.pages)
            return httpx.Response(200, json={"data": {"orders": {
                "pageInfo": {"hasNextPage": has_next, "endCursor": f"c{idx + 1}" if has_next else None},
                "nodes": self.pages[idx],
            }}})
        if "nodes(" in query:
            self.nodes_calls += 1
            ids = variables["ids"]
            self.node_ids.append(list(ids))
            if self.fail_nodes:
                return httpx.Response(200, json={"errors": [{"message": "Throttled"}]})
            known = self._known_handles()
            nodes = [{"id": i, "handle": known[i]} if known.get(i) else None for i in ids]
            return httpx.Response(200, json={"data": {"nodes": nodes}})
        return httpx.Response(400, json={"errors": [{"message": "unexpected query"}]})

    @property
    def calls(self) -> int:
        return self.orders_calls + self.nodes_calls


@pytest.fixture
def settings() -> Settings:
    return Settings(
        SHOPIFY_SHOP_DOMAIN="shop.test",
        SHOPIFY_ADMIN_TOKEN="token",
        SNAPSHOT_SECRET="s3cret",
        REDIS_URL=None,
    )


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def make_client(settings):
    def _make(fake: FakeShopify) -> ShopifyAdminClient:
        return ShopifyAdminClient.from_settings(settings, transport=httpx.MockTransport(fake.handler))
    return _make
