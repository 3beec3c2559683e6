from functools import lru_cache
from typing import Literal, Optional
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "Bestsellers"
    DEBUG: bool = False

    # Shopify Admin API
    SHOPIFY_SHOP_DOMAIN: str = ""
    SHOPIFY_ADMIN_TOKEN: str = ""
    SHOPIFY_API_VERSION: str = "2024-10"
    shopify_page_timeout_s: float = 15.0         # per orders page
    shopify_nodes_timeout_s: float = 10.0        # per handle resolution batch
    shopify_page_size: int = 100
    shopify_line_items_per_order: int = 100
    shopify_financial_status: str = "paid"

    # Redis (optional: shared + snapshot layers are disabled without it)
    REDIS_URL: Optional[str] = None
    redis_socket_timeout_s: float = 2.0

    # Cache config
    cache_version: str = "v5"
    bestsellers_cache_ttl: int = 15 * 60         # freshness of memory/redis live entries
    bestsellers_stale_ttl: int = 24 * 3600       # redis expiry; older-than-fresh entries serve stale-on-error
    snapshot_cache_ttl: Optional[int] = None     # None = never expires, next run overwrites

    # Limits
    default_limit: int = 16
    max_limit: int = 60
    snapshot_default_limit: int = 16
    default_window_days: int = 30

    # Snapshot job
    SNAPSHOT_SECRET: Optional[str] = None

    # API
    api_prefix: str = "/api"

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True)

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
