from __future__ import annotations

from urllib.parse import urlparse

from tasktracker.config import AppConfig

from .interface import TableClient
from .postgrest import PostgrestTableClient
from .redis_store import RedisTableClient


def create_table_client(config: AppConfig) -> TableClient:
    """Pick a backend from the store URL scheme."""
    scheme = urlparse(config.store_url).scheme.lower()
    if scheme in ("http", "https"):
        return PostgrestTableClient(
            base_url=config.store_url,
            api_key=config.store_api_key,
            timeout_s=config.request_timeout_s,
        )
    if scheme in ("redis", "rediss", "unix"):
        return RedisTableClient(url=config.store_url, key_prefix=config.key_prefix)
    raise ValueError(f"unsupported store url scheme: {scheme or '<none>'}")


__all__ = ["create_table_client"]
