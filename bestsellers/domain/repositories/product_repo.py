# bestsellers/domain/repositories/product_repo.py

from __future__ import annotations
import logging
from typing import Dict, List, Sequence

from bestsellers.db.shopify import ShopifyAdminClient

logger = logging.getLogger(__name__)

NODES_QUERY = "query N($ids: [ID!]!) { nodes(ids: $ids) { ... on Product { id handle } } }"


class ProductRepo:
    """
    Resolves product ids to public handles with one batched `nodes` call.
    Deleted or restricted products come back as null nodes and are dropped.
    """

    def __init__(self, client: ShopifyAdminClient):
        self.client = client

    async def resolve_handles_map(self, ids: Sequence[str]) -> Dict[str, str]:
        """id -> handle for every id that resolves; empty input makes no call."""
        if not ids:
            return {}
        data = await self.client.query(
            NODES_QUERY, {"ids": list(ids)}, timeout_s=self.client.timeouts.nodes_s
        )
        out: Dict[str, str] = {}
        for node in data.get("nodes") or []:
            if node and node.get("id") and node.get("handle"):
                out[node["id"]] = node["handle"]
        dropped = len(ids) - len(out)
        if dropped:
            logger.debug("resolve_handles dropped=%s of %s", dropped, len(ids))
        return out

    async def resolve_handles(self, ids: Sequence[str]) -> List[str]:
        """Handles in the order of `ids`, unresolvable ids omitted."""
        found = await self.resolve_handles_map(ids)
        return [found[i] for i in ids if i in found]
