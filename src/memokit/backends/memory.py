"""In-memory cache driver with LRU discard."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable

from memokit.backends.base import CacheAdapter, CacheEntry

# Process-wide datastore shared by every MemoryCache built with global_store=True
_global_store: dict[str, OrderedDict[str, CacheEntry]] = {}
_global_lock = threading.RLock()


def reset_global_store() -> None:
    """Drop every entry in the process-wide datastore (mainly for testing)."""
    with _global_lock:
        for entries in _global_store.values():
            entries.clear()


class MemoryCache(CacheAdapter):
    """In-memory cache driver.

    Entries are kept in least-recently-used order. When ``max_size`` is set,
    storing a new entry discards the least recently used ones beyond the bound.
    """

    driver = "memory"

    def __init__(
        self,
        namespace: str = "default",
        max_size: int | None = None,
        global_store: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize memory driver.

        Args:
            namespace: Key-space partition
            max_size: Maximum number of entries kept (None = unbounded)
            global_store: Share the process-wide datastore with other
                adapters on the same namespace
            clock: Time source returning epoch seconds
        """
        super().__init__(namespace, clock)
        self.max_size = max_size
        if global_store:
            self._lock = _global_lock
            with self._lock:
                self._entries = _global_store.setdefault(namespace, OrderedDict())
        else:
            self._lock = threading.RLock()
            self._entries = OrderedDict()

    def get_entry(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._entries.move_to_end(key)
            return entry

    def set_entry(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            if self.max_size is not None:
                while len(self._entries) > self.max_size:
                    self._entries.popitem(last=False)

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def get_keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def destroy(self) -> int:
        """Clear the namespace and drop it from the process-wide datastore."""
        with self._lock:
            count = self.clear()
            if _global_store.get(self.namespace) is self._entries:
                del _global_store[self.namespace]
            return count
