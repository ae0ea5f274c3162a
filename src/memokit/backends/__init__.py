"""Cache drivers for memokit."""

from __future__ import annotations

from memokit.backends.base import CacheAdapter, CacheEntry
from memokit.backends.file import FileCache
from memokit.backends.memory import MemoryCache
from memokit.backends.null import NullCache
from memokit.backends.redis import RedisCache
from memokit.options import CacheOptions

__all__ = [
    "CacheAdapter",
    "CacheEntry",
    "FileCache",
    "MemoryCache",
    "NullCache",
    "RedisCache",
    "create_cache",
]


def create_cache(options: CacheOptions) -> CacheAdapter:
    """Create the cache driver selected by options.

    Args:
        options: Validated cache-construction options

    Returns:
        CacheAdapter instance

    Raises:
        CacheUnavailableError: If the driver cannot be constructed
    """
    namespace = options.namespace or "default"

    if options.driver == "file":
        return FileCache(namespace, root_dir=options.root_dir)
    if options.driver == "null":
        return NullCache(namespace)
    if options.driver == "redis":
        return RedisCache(namespace, redis_url=options.redis_url)
    return MemoryCache(namespace, max_size=options.max_size, global_store=options.global_store)
