"""Base cache adapter interface.

A cache adapter stores ``CacheEntry`` objects under canonical key strings and
implements compute-or-fetch on top of four storage primitives. Drivers only
implement storage; expiration, ``expire_if``, ``busy_lock`` and per-key
locking live here.
"""

from __future__ import annotations

import hashlib
import random
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any, TypeVar

from memokit.errors import ClearUnsupportedError
from memokit.keys import CacheKey
from memokit.options import ComputeOptions

T = TypeVar("T")

DEFAULT_COMPUTE_OPTIONS = ComputeOptions()


def key_digest(key: str) -> str:
    """Fixed-length digest of a canonical key string, for storage names."""
    return hashlib.blake2b(key.encode("utf-8"), digest_size=16).hexdigest()


@dataclass
class CacheEntry:
    """A stored value with its expiration metadata.

    Attributes:
        key: Canonical key string the entry was stored under
        value: The stored value
        created_at: Epoch seconds when the entry was stored
        expires_at: Epoch seconds after which the entry is expired (None = never)
        early_expires_at: Start of the window in which the entry may expire
            early (set when expires_variance > 0)
    """
    key: str
    value: Any
    created_at: float
    expires_at: float | None = None
    early_expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        """Check expiry, expiring probabilistically inside the variance window."""
        if self.expires_at is None:
            return False
        if now >= self.expires_at:
            return True
        if self.early_expires_at is None or now < self.early_expires_at:
            return False
        window = self.expires_at - self.early_expires_at
        if window <= 0:
            return False
        return random.random() < (now - self.early_expires_at) / window

    def to_dict(self) -> dict[str, Any]:
        """Metadata view of the entry (value omitted)."""
        return {
            "key": self.key,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
            "early_expires_at": self.early_expires_at,
        }


class CacheAdapter(ABC):
    """Abstract base class for cache drivers.

    Concurrent ``compute`` calls for the same key on one adapter instance are
    serialized, so the producer runs at most once per key while the entry is
    valid. Callers in other processes sharing a persistent driver are not
    serialized; ``busy_lock`` narrows that window.
    """

    driver = "abstract"

    def __init__(self, namespace: str = "default", clock: Callable[[], float] = time.time) -> None:
        """Initialize adapter.

        Args:
            namespace: Key-space partition owned by this adapter
            clock: Time source returning epoch seconds
        """
        self.namespace = namespace
        self.clock = clock
        self.hits = 0
        self.misses = 0
        self._guard = threading.Lock()
        self._key_locks: dict[str, tuple[threading.RLock, int]] = {}

    @abstractmethod
    def get_entry(self, key: str) -> CacheEntry | None:
        """Return the raw entry for key, expired or not."""
        pass

    @abstractmethod
    def set_entry(self, key: str, entry: CacheEntry) -> None:
        """Store entry under key."""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove key if present."""
        pass

    @abstractmethod
    def get_keys(self) -> list[str]:
        """Return the canonical keys currently stored (expired included)."""
        pass

    def clear(self) -> int:
        """Remove every entry in this namespace.

        Returns:
            Number of entries removed.

        Raises:
            ClearUnsupportedError: If the driver cannot enumerate its entries
        """
        raise ClearUnsupportedError(self.driver)

    def destroy(self) -> int:
        """Remove every entry and release the namespace itself.

        Drivers that keep per-namespace storage override this; by default it
        is the same as clear().
        """
        return self.clear()

    def compute(
        self,
        key: CacheKey | str,
        options: ComputeOptions | None,
        producer: Callable[[], T],
    ) -> T:
        """Return the cached value for key, or run producer and store its result.

        Exceptions raised by producer propagate and nothing is stored.
        """
        options = options or DEFAULT_COMPUTE_OPTIONS
        key_str = self._key_string(key)
        with self._key_lock(key_str):
            entry = self._fetch(key_str, options)
            if entry is not None:
                self._count(hit=True)
                return entry.value
            self._count(hit=False)
            value = producer()
            self._store(key_str, value, options)
            return value

    def get(self, key: CacheKey | str, options: ComputeOptions | None = None, default: Any = None) -> Any:
        """Return the valid cached value for key, or default."""
        entry = self._fetch(self._key_string(key), options or DEFAULT_COMPUTE_OPTIONS)
        return default if entry is None else entry.value

    def set(self, key: CacheKey | str, value: Any, options: ComputeOptions | None = None) -> None:
        """Store value under key using the expiry settings in options."""
        self._store(self._key_string(key), value, options or DEFAULT_COMPUTE_OPTIONS)

    def is_valid(self, key: CacheKey | str) -> bool:
        """Check whether key holds an unexpired entry, without side effects."""
        entry = self.get_entry(self._key_string(key))
        return entry is not None and not entry.is_expired(self.clock())

    def stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        return {
            "driver": self.driver,
            "namespace": self.namespace,
            "entries": len(self.get_keys()),
            "hits": self.hits,
            "misses": self.misses,
        }

    def _fetch(self, key: str, options: ComputeOptions) -> CacheEntry | None:
        entry = self.get_entry(key)
        if entry is None:
            return None

        if options.expire_if is not None and options.expire_if(entry):
            self.remove(key)
            return None

        now = self.clock()
        if entry.is_expired(now):
            if options.busy_lock is not None:
                # Other readers keep the stale value while this caller recomputes
                self.set_entry(
                    key,
                    replace(entry, expires_at=now + options.busy_lock, early_expires_at=None),
                )
            return None

        return entry

    def _store(self, key: str, value: Any, options: ComputeOptions) -> None:
        now = self.clock()
        if options.expires_at is not None:
            expires_at = options.expires_at
        elif options.expires_in is not None:
            expires_at = now + options.expires_in
        else:
            expires_at = None

        early_expires_at = None
        if expires_at is not None and options.expires_variance > 0:
            early_expires_at = expires_at - options.expires_variance * (expires_at - now)

        self.set_entry(
            key,
            CacheEntry(
                key=key,
                value=value,
                created_at=now,
                expires_at=expires_at,
                early_expires_at=early_expires_at,
            ),
        )

    def _count(self, hit: bool) -> None:
        with self._guard:
            if hit:
                self.hits += 1
            else:
                self.misses += 1

    @contextmanager
    def _key_lock(self, key: str) -> Iterator[None]:
        """Hold a reentrant lock private to key; dropped once unused."""
        with self._guard:
            lock, users = self._key_locks.get(key, (None, 0))
            if lock is None:
                lock = threading.RLock()
            self._key_locks[key] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                lock, users = self._key_locks[key]
                if users == 1:
                    del self._key_locks[key]
                else:
                    self._key_locks[key] = (lock, users - 1)

    @staticmethod
    def _key_string(key: CacheKey | str) -> str:
        if isinstance(key, CacheKey):
            return key.canonical()
        return key

    def __repr__(self) -> str:
        return f"{type(self).__name__}(namespace={self.namespace!r})"
