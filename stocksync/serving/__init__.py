"""
Serving Module
"""
from .cache import init_redis, close_redis, get_redis, CacheManager, invalidate_inventory_caches

__all__ = [
    "init_redis",
    "close_redis",
    "get_redis",
    "CacheManager",
    "invalidate_inventory_caches",
]
