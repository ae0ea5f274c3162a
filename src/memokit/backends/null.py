"""Null cache driver: stores nothing, so every call computes."""

from __future__ import annotations

from memokit.backends.base import CacheAdapter, CacheEntry


class NullCache(CacheAdapter):
    """Cache driver that discards everything it is given."""

    driver = "null"

    def get_entry(self, key: str) -> CacheEntry | None:
        return None

    def set_entry(self, key: str, entry: CacheEntry) -> None:
        pass

    def remove(self, key: str) -> None:
        pass

    def get_keys(self) -> list[str]:
        return []

    def clear(self) -> int:
        return 0
