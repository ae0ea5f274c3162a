"""Memoize, inspect and unmemoize functions.

Usage:
    from memokit import memoize, memoized, unmemoize

    # Rebind a module-level name to a caching wrapper
    memoize("fetch_rates", expires_in="1h")

    # Wrap a callable without touching any name
    fast_area = memoize(lambda w, h: w * h, max_size=100)

    # Decorator form
    @memoize(key=lambda user, *_: user.id)
    def profile(user, verbose=False):
        ...

    memoized("fetch_rates").cache.get_keys()
    unmemoize("fetch_rates")

The module-level functions share one process-wide Memoizer (see
``get_memoizer``/``reset``). Build a separate Memoizer for an isolated
registry.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from memokit.backends import CacheAdapter, create_cache
from memokit.canonical import canonical_json
from memokit.config import MemoizeConfig
from memokit.errors import (
    AlreadyMemoizedError,
    InvalidOptionError,
    UnresolvedFunctionError,
)
from memokit.identity import ResolvedTarget, caller_module, qualify, resolve_target
from memokit.options import build_cache_options, split_options
from memokit.registry import BindingTable, FunctionRegistry, MemoizeInfo
from memokit.wrapper import build_wrapper

logger = logging.getLogger(__name__)

KEY_PREFIX = "memoize-"


class Memoizer:
    """Owns a function registry and performs memoize/unmemoize on it.

    Every administrative operation holds the registry lock from identity
    check to commit, so concurrent memoize/unmemoize calls on the same
    function are serialized and never observe partial state. Calls through a
    wrapper do not touch the registry.
    """

    def __init__(
        self,
        registry: FunctionRegistry | None = None,
        bindings: BindingTable | None = None,
        config: MemoizeConfig | None = None,
    ) -> None:
        self.registry = registry or FunctionRegistry()
        self.bindings = bindings or BindingTable(self.registry.lock)
        self.config = config or MemoizeConfig()

    def memoize(
        self,
        target: Callable[..., Any] | str | None = None,
        module: str | None = None,
        **options: Any,
    ) -> Any:
        """Create a caching wrapper around target.

        Args:
            target: Function name (bare names are looked up in the caller's
                module) or a callable. When omitted, returns a decorator.
            module: Module used to qualify bare names (default: the caller's)
            **options: ``key``, ``cache``, per-call options (expires_in,
                expires_at, expires_variance, busy_lock, expire_if) and
                cache-construction options (driver, namespace, max_size,
                root_dir, redis_url, global_store)

        Returns:
            The wrapper. Named targets are also rebound to it.

        Raises:
            UnresolvedFunctionError: If a name does not resolve to a callable
            AlreadyMemoizedError: If target is already memoized
            InvalidOptionError: If options are unknown or malformed
        """
        module = module or caller_module(2)
        if target is None:
            def decorator(func: Callable[..., Any]) -> Any:
                return self.memoize(func, module=module, **options)
            return decorator

        resolved = resolve_target(target, module)
        function_id = resolved.function_id
        key_prefix = KEY_PREFIX + function_id.key

        with self.registry.lock:
            if self._find(resolved) is not None:
                raise AlreadyMemoizedError(function_id.key)

            key, cache, compute_options, cache_values = split_options(options)
            if (
                self.config.expires_in is not None
                and compute_options.expires_in is None
                and compute_options.expires_at is None
            ):
                compute_options = compute_options.model_copy(update={"expires_in": self.config.expires_in})

            owns_cache = cache is None
            if cache is None:
                cache = self._build_cache(key_prefix, cache_values)
            elif not isinstance(cache, CacheAdapter):
                raise InvalidOptionError(f"cache must be a CacheAdapter, got {type(cache).__name__}")

            wrapper = build_wrapper(resolved.func, key_prefix, cache, compute_options, key)
            info = MemoizeInfo(
                function_id=function_id,
                original=resolved.func,
                wrapper=wrapper,
                cache=cache,
                key_prefix=key_prefix,
                owns_cache=owns_cache,
            )

            if resolved.name is not None:
                self.bindings.bind(resolved.name, resolved.owner, resolved.attr, wrapper)
            self.registry.register(function_id, info)

        logger.debug("Memoized %s (driver=%s, namespace=%s)", function_id, cache.driver, cache.namespace)
        return wrapper

    def memoized(self, target: Callable[..., Any] | str, module: str | None = None) -> MemoizeInfo | None:
        """Return the MemoizeInfo for target, or None if it is not memoized.

        Never raises for names that do not resolve.
        """
        module = module or caller_module(2)
        try:
            resolved = resolve_target(target, module)
        except UnresolvedFunctionError:
            return None
        with self.registry.lock:
            return self._find(resolved)

    def unmemoize(self, target: Callable[..., Any] | str, module: str | None = None) -> Callable[..., Any]:
        """Remove the wrapper around target and return the original function.

        Named targets are rebound to the original. Stored results are cleared
        when the cache supports it; clearing failures are logged, not raised.

        Raises:
            UnresolvedFunctionError: If a name does not resolve to a callable
            NotMemoizedError: If target is not memoized
        """
        module = module or caller_module(2)
        resolved = resolve_target(target, module)

        with self.registry.lock:
            info = self._find(resolved)
            function_id = info.function_id if info is not None else resolved.function_id
            info = self.registry.remove(function_id)
            if info.name is not None:
                self.bindings.restore(info.name, info.original)
            elif resolved.name is not None:
                # Name bound to the wrapper outside memoize (decorator form)
                setattr(resolved.owner, resolved.attr, info.original)
            self._clear_results(info)

        logger.debug("Unmemoized %s", function_id)
        return info.original

    def call(self, name: str, *args: Any, module: str | None = None, **kwargs: Any) -> Any:
        """Call a memoized function through the binding table."""
        qualified = qualify(name, module or caller_module(2))
        return self.bindings.call(qualified, *args, **kwargs)

    def unmemoize_all(self) -> int:
        """Unmemoize every registered function. Returns how many there were."""
        with self.registry.lock:
            records = self.registry.records()
            for info in records:
                self.registry.remove(info.function_id)
                if info.name is not None:
                    self.bindings.restore(info.name, info.original)
                self._clear_results(info)
        return len(records)

    def _find(self, resolved: ResolvedTarget) -> MemoizeInfo | None:
        info = self.registry.lookup(resolved.function_id)
        if info is None:
            # A wrapper returned by memoize stands for its original, whether
            # passed by value or reached through a name bound to it
            for record in self.registry.records():
                if record.wrapper is resolved.func:
                    return record
        return info

    def _build_cache(self, key_prefix: str, cache_values: dict[str, Any]) -> CacheAdapter:
        values = self.config.cache_defaults(cache_values.get("driver"))
        values.update(cache_values)
        values.setdefault("namespace", key_prefix)
        return create_cache(build_cache_options(values))

    def _clear_results(self, info: MemoizeInfo) -> None:
        """Best-effort removal of the results stored for info."""
        cache = info.cache
        try:
            if cache.namespace == info.key_prefix and info.owns_cache:
                removed = cache.destroy()
            elif cache.namespace == info.key_prefix:
                removed = cache.clear()
            else:
                # Shared namespace: only drop this function's keys
                marker = canonical_json([info.key_prefix])[:-1] + ","
                keys = [k for k in cache.get_keys() if k.startswith(marker)]
                for k in keys:
                    cache.remove(k)
                removed = len(keys)
        except Exception as e:
            # Clearing is advisory; the function is already unmemoized
            logger.warning(
                "Could not clear cached results for %s: %s: %s",
                info.function_id,
                type(e).__name__,
                e,
            )
            return
        logger.debug("Cleared %d cached result(s) for %s", removed, info.function_id)


# Global instance (lazy-initialized)
_memoizer_instance: Memoizer | None = None
_memoizer_lock = threading.Lock()


def get_memoizer() -> Memoizer:
    """Get the process-wide Memoizer (lazy-initialized from the environment)."""
    global _memoizer_instance
    with _memoizer_lock:
        if _memoizer_instance is None:
            _memoizer_instance = Memoizer(config=MemoizeConfig.from_env())
        return _memoizer_instance


def configure(config: MemoizeConfig) -> None:
    """Replace the defaults used for caches built from now on."""
    get_memoizer().config = config


def reset() -> None:
    """Unmemoize everything and drop the process-wide Memoizer (mainly for testing)."""
    global _memoizer_instance
    with _memoizer_lock:
        instance = _memoizer_instance
        _memoizer_instance = None
    if instance is not None:
        instance.unmemoize_all()


def memoize(target: Callable[..., Any] | str | None = None, **options: Any) -> Any:
    """Memoize target in the process-wide registry. See Memoizer.memoize."""
    return get_memoizer().memoize(target, module=caller_module(2), **options)


def memoized(target: Callable[..., Any] | str) -> MemoizeInfo | None:
    """Return MemoizeInfo for target, or None. See Memoizer.memoized."""
    return get_memoizer().memoized(target, module=caller_module(2))


def unmemoize(target: Callable[..., Any] | str) -> Callable[..., Any]:
    """Unmemoize target and return the original. See Memoizer.unmemoize."""
    return get_memoizer().unmemoize(target, module=caller_module(2))


def call(name: str, *args: Any, **kwargs: Any) -> Any:
    """Call a memoized function by name through the binding table."""
    return get_memoizer().call(name, *args, module=caller_module(2), **kwargs)


__all__ = [
    "KEY_PREFIX",
    "Memoizer",
    "call",
    "configure",
    "get_memoizer",
    "memoize",
    "memoized",
    "reset",
    "unmemoize",
]
