"""memokit - make functions faster by caching their results.

Wraps any function with a caching layer backed by a pluggable cache driver
(in-process memory, files, redis), with expiration controls and key
customization.
"""

from memokit.backends import (
    CacheAdapter,
    CacheEntry,
    FileCache,
    MemoryCache,
    NullCache,
    RedisCache,
    create_cache,
)
from memokit.config import MemoizeConfig
from memokit.errors import (
    AlreadyMemoizedError,
    CacheUnavailableError,
    ClearUnsupportedError,
    InvalidOptionError,
    KeySerializationError,
    MemoizeError,
    NotMemoizedError,
    UnresolvedFunctionError,
)
from memokit.keys import CacheKey, CallContext, KeyParts, build_key
from memokit.memoize import (
    Memoizer,
    call,
    configure,
    get_memoizer,
    memoize,
    memoized,
    reset,
    unmemoize,
)
from memokit.registry import BindingTable, FunctionRegistry, MemoizeInfo

__version__ = "0.3.0"

__all__ = [
    "AlreadyMemoizedError",
    "BindingTable",
    "CacheAdapter",
    "CacheEntry",
    "CacheKey",
    "CacheUnavailableError",
    "CallContext",
    "ClearUnsupportedError",
    "FileCache",
    "FunctionRegistry",
    "InvalidOptionError",
    "KeyParts",
    "KeySerializationError",
    "MemoizeConfig",
    "MemoizeError",
    "MemoizeInfo",
    "Memoizer",
    "MemoryCache",
    "NotMemoizedError",
    "NullCache",
    "RedisCache",
    "UnresolvedFunctionError",
    "build_key",
    "call",
    "configure",
    "create_cache",
    "get_memoizer",
    "memoize",
    "memoized",
    "reset",
    "unmemoize",
]
