"""The caching function installed in place of a memoized function."""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any

from memokit.backends.base import CacheAdapter
from memokit.keys import CallContext, build_key
from memokit.options import ComputeOptions


def build_wrapper(
    original: Callable[..., Any],
    key_prefix: str,
    cache: CacheAdapter,
    compute_options: ComputeOptions,
    key: Callable[..., Any] | Any | None = None,
) -> Callable[..., Any]:
    """Build the caching wrapper for original.

    A plain call is a scalar-context call and returns whatever original
    returns. ``wrapper.as_list(...)`` is a list-context call: the result is
    materialized with ``list()`` before it is stored, so generator functions
    can be memoized. Scalar and list results never share a cache entry.

    Concurrent calls with the same key are serialized by the cache adapter;
    whether that holds across processes depends on the driver.
    """

    def call(context: CallContext, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        cache_key = build_key(key_prefix, context, args, kwargs, key)
        if context is CallContext.LIST:
            return cache.compute(cache_key, compute_options, lambda: list(original(*args, **kwargs)))
        return cache.compute(cache_key, compute_options, lambda: original(*args, **kwargs))

    @functools.wraps(original)
    def wrapper(*args, **kwargs):
        return call(CallContext.SCALAR, args, kwargs)

    def as_list(*args, **kwargs) -> list[Any]:
        return call(CallContext.LIST, args, kwargs)

    wrapper.as_list = as_list  # type: ignore[attr-defined]
    wrapper.cache = cache  # type: ignore[attr-defined]
    wrapper.key_prefix = key_prefix  # type: ignore[attr-defined]
    return wrapper
