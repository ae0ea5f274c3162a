"""Registry of memoized functions and of the names rebound to their wrappers.

Both tables are shared, mutable, process-wide state. Every operation takes
the registry lock; the memoizer holds the same (reentrant) lock across a
whole memoize/unmemoize so other callers never observe a half-done change.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from memokit.backends.base import CacheAdapter
from memokit.errors import AlreadyMemoizedError, NotMemoizedError
from memokit.identity import FunctionId


@dataclass(frozen=True)
class MemoizeInfo:
    """Information about a memoized function.

    Attributes:
        function_id: Registry identifier
        original: The function as it was before memoize
        wrapper: The caching function memoize created
        cache: Cache where results are stored
        key_prefix: Prefix of every cache key for this function
        owns_cache: True if memoize built the cache, False if it was supplied
    """
    function_id: FunctionId
    original: Callable[..., Any]
    wrapper: Callable[..., Any]
    cache: CacheAdapter
    key_prefix: str
    owns_cache: bool = True

    @property
    def name(self) -> str | None:
        return self.function_id.name

    def to_dict(self) -> dict[str, Any]:
        """Summary suitable for logging or display."""
        return {
            "function_id": self.function_id.key,
            "name": self.name,
            "key_prefix": self.key_prefix,
            "driver": self.cache.driver,
            "namespace": self.cache.namespace,
            "owns_cache": self.owns_cache,
        }


class FunctionRegistry:
    """Maps function identifiers to their MemoizeInfo records."""

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self._records: dict[str, MemoizeInfo] = {}

    def register(self, function_id: FunctionId, info: MemoizeInfo) -> None:
        """Insert a record.

        Raises:
            AlreadyMemoizedError: If function_id is already registered
        """
        with self.lock:
            if function_id.key in self._records:
                raise AlreadyMemoizedError(function_id.key)
            self._records[function_id.key] = info

    def lookup(self, function_id: FunctionId) -> MemoizeInfo | None:
        with self.lock:
            return self._records.get(function_id.key)

    def remove(self, function_id: FunctionId) -> MemoizeInfo:
        """Remove and return a record.

        Raises:
            NotMemoizedError: If function_id is not registered
        """
        with self.lock:
            try:
                return self._records.pop(function_id.key)
            except KeyError:
                raise NotMemoizedError(function_id.key) from None

    def records(self) -> list[MemoizeInfo]:
        with self.lock:
            return list(self._records.values())

    def __contains__(self, function_id: object) -> bool:
        key = function_id.key if isinstance(function_id, FunctionId) else function_id
        with self.lock:
            return key in self._records

    def __len__(self) -> int:
        with self.lock:
            return len(self._records)


@dataclass
class Binding:
    """A name currently bound to a wrapper."""
    owner: Any
    attr: str
    original: Callable[..., Any]
    current: Callable[..., Any]


class BindingTable:
    """Explicit name -> current callable indirection.

    Rebinding a memoized name goes through this table, which also updates
    the attribute on the owning module or class so plain attribute access
    sees the wrapper. Code that wants to call by name without relying on the
    attribute patch can use ``get``/``call``.
    """

    def __init__(self, lock: threading.RLock | None = None) -> None:
        self.lock = lock or threading.RLock()
        self._bindings: dict[str, Binding] = {}

    def bind(self, name: str, owner: Any, attr: str, func: Callable[..., Any]) -> None:
        """Bind name to func, remembering what it pointed at before."""
        with self.lock:
            original = getattr(owner, attr)
            setattr(owner, attr, func)
            self._bindings[name] = Binding(owner=owner, attr=attr, original=original, current=func)

    def restore(self, name: str, func: Callable[..., Any] | None = None) -> None:
        """Point name back at its original (or at func) and forget the binding."""
        with self.lock:
            binding = self._bindings.pop(name, None)
            if binding is None:
                return
            setattr(binding.owner, binding.attr, func if func is not None else binding.original)

    def get(self, name: str) -> Callable[..., Any] | None:
        """Current callable bound to name, or None if the name is not bound."""
        with self.lock:
            binding = self._bindings.get(name)
            return binding.current if binding else None

    def call(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """Invoke the callable currently bound to name."""
        func = self.get(name)
        if func is None:
            raise KeyError(name)
        return func(*args, **kwargs)

    def names(self) -> list[str]:
        with self.lock:
            return sorted(self._bindings)

    def __contains__(self, name: object) -> bool:
        with self.lock:
            return name in self._bindings
