# bestsellers/api/deps.py
from functools import lru_cache
from bestsellers.core.config import get_settings
from bestsellers.db.redis import get_redis
from bestsellers.db.shopify import get_shopify
from bestsellers.utils.cache import MemoryTTLCache

# Dependency for injecting the Shopify Admin client into endpoints/services
def shopify_dep():
    return get_shopify()

# Dependency for injecting the Redis client into endpoints/services
def redis_dep():
    return get_redis()

# One process-local cache per worker; tests override this dependency
@lru_cache
def memory_cache_dep() -> MemoryTTLCache:
    return MemoryTTLCache(ttl_s=get_settings().bestsellers_cache_ttl)
