# bestsellers/core/lifespan.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from bestsellers.db import redis as r, shopify
from bestsellers.core.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # --- Startup ---
    # Shopify client is always built; calls fail with UpstreamError if misconfigured
    await shopify.connect()
    logger.info("Shopify client ready shop=%s", settings.SHOPIFY_SHOP_DOMAIN or "<unset>")

    # Redis optional
    if settings.REDIS_URL:
        await r.connect()
    else:
        logger.warning("No REDIS_URL provided, shared and snapshot cache layers disabled")

    # Application runs
    yield

    # --- Shutdown ---
    try:
        await r.disconnect()
    except Exception as e:
        logger.warning("Redis disconnect failed: %s", e)

    try:
        await shopify.disconnect()
        logger.info("Shopify client closed")
    except Exception as e:
        logger.warning("Shopify client close failed: %s", e)
