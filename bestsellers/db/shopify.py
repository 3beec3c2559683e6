# bestsellers/db/shopify.py
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from bestsellers.core.config import Settings, get_settings
from bestsellers.core.errors import UpstreamError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeoutPolicy:
    """Single timeout policy for every Admin API call (seconds)."""
    page_s: float = 15.0
    nodes_s: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "TimeoutPolicy":
        return cls(page_s=settings.shopify_page_timeout_s, nodes_s=settings.shopify_nodes_timeout_s)


class ShopifyAdminClient:
    """
    Thin GraphQL client for the Shopify Admin API.
    Every call is bounded by a timeout; any failure surfaces as UpstreamError.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        timeouts: TimeoutPolicy | None = None,
    ):
        self.http = http
        self.timeouts = timeouts or TimeoutPolicy()
        self.calls = 0  # number of GraphQL requests issued (diagnostics)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        base_url: str | None = None,
    ) -> "ShopifyAdminClient":
        # httpx timeouts disabled: TimeoutPolicy (asyncio.wait_for) is the only bound
        http = httpx.AsyncClient(
            base_url=base_url or f"https://{settings.SHOPIFY_SHOP_DOMAIN}/admin/api/{settings.SHOPIFY_API_VERSION}",
            timeout=httpx.Timeout(None),
            headers={
                "Content-Type": "application/json",
                "X-Shopify-Access-Token": settings.SHOPIFY_ADMIN_TOKEN,
            },
            transport=transport,
        )
        return cls(http, TimeoutPolicy.from_settings(settings))

    async def query(
        self,
        query: str,
        variables: Optional[dict[str, Any]] = None,
        *,
        timeout_s: float,
    ) -> dict[str, Any]:
        """
        POST a GraphQL document and return its `data` object.
        The in-flight request is cancelled once `timeout_s` elapses.
        """
        self.calls += 1
        try:
            resp = await asyncio.wait_for(
                self.http.post("/graphql.json", json={"query": query, "variables": variables or {}}),
                timeout=timeout_s,
            )
        except asyncio.TimeoutError as e:
            logger.error("shopify timeout after %.1fs", timeout_s)
            raise UpstreamError(f"Shopify request timed out after {timeout_s}s") from e
        except httpx.TimeoutException as e:
            logger.error("shopify http timeout kind=%s", type(e).__name__)
            raise UpstreamError(f"Shopify request timed out ({type(e).__name__})") from e
        except httpx.HTTPError as e:
            logger.error("shopify transport error err=%s", e)
            raise UpstreamError(f"Shopify transport error: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = {}

        errors = body.get("errors") if isinstance(body, dict) else None
        if resp.status_code >= 400 or errors:
            logger.error("shopify graphql error status=%s errors=%s", resp.status_code, errors)
            raise UpstreamError("Shopify GraphQL error", status=resp.status_code, errors=errors)

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise UpstreamError("Shopify GraphQL response without data", status=resp.status_code)
        return data

    async def aclose(self) -> None:
        await self.http.aclose()


shopify_client: ShopifyAdminClient | None = None


async def connect():
    global shopify_client
    settings = get_settings()
    if not settings.SHOPIFY_SHOP_DOMAIN or not settings.SHOPIFY_ADMIN_TOKEN:
        logger.warning("Shopify credentials missing, live computation will fail over to cache")
    shopify_client = ShopifyAdminClient.from_settings(settings)


async def disconnect():
    global shopify_client
    if shopify_client:
        await shopify_client.aclose()
        shopify_client = None


def get_shopify() -> ShopifyAdminClient | None:
    return shopify_client
