"""
Coverage Desk cache layer.

    cache = build_cache()
    await cache.ensure_all()
    entry = await cache.get(CacheCategory.REPORT, "AVGO")
"""

from .storage import CacheStorage, FileStorage, MemoryStorage, RedisStorage, build_storage
from .tiered_cache import CacheEntry, TieredCache
from .ttl_config import TTL, CacheCategory


def build_cache() -> TieredCache:
    from coverage_engine import config
    storage = build_storage(config.CACHE_BACKEND, config.CACHE_DIR, config.REDIS_URL)
    return TieredCache(storage)


__all__ = [
    "CacheCategory", "CacheEntry", "CacheStorage", "FileStorage", "MemoryStorage",
    "RedisStorage", "TTL", "TieredCache", "build_cache", "build_storage",
]
