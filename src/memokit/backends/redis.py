"""Redis cache driver for caches shared between hosts."""

from __future__ import annotations

import pickle
import re
import time
from collections.abc import Callable
from typing import Any

from memokit.backends.base import CacheAdapter, CacheEntry, key_digest
from memokit.errors import CacheUnavailableError

DEFAULT_REDIS_URL = "redis://localhost:6379/0"

# Expired entries stay in redis this long so busy_lock can still extend them
STALE_GRACE_SECONDS = 300


def _backend_errors() -> tuple[type[BaseException], ...]:
    try:
        from redis.exceptions import RedisError
    except ImportError:
        return (OSError,)
    return (RedisError, OSError)


class RedisCache(CacheAdapter):
    """Redis-based cache driver.

    Entries are pickled under ``"<namespace>:<key digest>"``.
    """

    driver = "redis"

    def __init__(
        self,
        namespace: str = "default",
        redis_url: str | None = None,
        timeout: int = 5,
        client: Any = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize Redis driver.

        Args:
            namespace: Key-space partition
            redis_url: Redis connection URL
            timeout: Connection timeout in seconds
            client: Existing redis client to use instead of connecting
            clock: Time source returning epoch seconds
        """
        super().__init__(namespace, clock)
        self.redis_url = redis_url or DEFAULT_REDIS_URL
        self.timeout = timeout
        self._errors = _backend_errors()
        self._redis = client if client is not None else self._connect()

    def _connect(self) -> Any:
        """Connect to Redis."""
        try:
            import redis as redis_lib
        except ImportError as e:
            raise CacheUnavailableError(
                "Redis driver requires 'redis' package. "
                "Install with: pip install memokit[redis]"
            ) from e

        try:
            client = redis_lib.from_url(
                self.redis_url,
                socket_timeout=self.timeout,
                socket_connect_timeout=self.timeout,
            )
            # Test connection
            client.ping()
        except self._errors as e:
            raise CacheUnavailableError(f"Failed to connect to Redis: {e}") from e
        return client

    def _redis_key(self, key: str) -> str:
        return f"{self.namespace}:{key_digest(key)}"

    def _pattern(self) -> str:
        return re.sub(r"([*?\[\]\\])", r"\\\1", self.namespace) + ":*"

    def get_entry(self, key: str) -> CacheEntry | None:
        try:
            raw = self._redis.get(self._redis_key(key))
        except self._errors as e:
            raise CacheUnavailableError(f"Redis get failed: {e}") from e
        if raw is None:
            return None
        try:
            entry = pickle.loads(raw)
        except (pickle.UnpicklingError, EOFError, AttributeError, ImportError):
            return None
        if not isinstance(entry, CacheEntry) or entry.key != key:
            return None
        return entry

    def set_entry(self, key: str, entry: CacheEntry) -> None:
        ttl = None
        if entry.expires_at is not None:
            ttl = max(1, int(entry.expires_at - self.clock()) + STALE_GRACE_SECONDS)
        try:
            self._redis.set(self._redis_key(key), pickle.dumps(entry), ex=ttl)
        except self._errors as e:
            raise CacheUnavailableError(f"Redis set failed: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self._redis.delete(self._redis_key(key))
        except self._errors as e:
            raise CacheUnavailableError(f"Redis delete failed: {e}") from e

    def get_keys(self) -> list[str]:
        keys = []
        try:
            for redis_key in self._redis.scan_iter(match=self._pattern()):
                raw = self._redis.get(redis_key)
                if raw is None:
                    continue
                try:
                    entry = pickle.loads(raw)
                except (pickle.UnpicklingError, EOFError, AttributeError, ImportError):
                    continue
                if isinstance(entry, CacheEntry):
                    keys.append(entry.key)
        except self._errors as e:
            raise CacheUnavailableError(f"Redis scan failed: {e}") from e
        return keys

    def clear(self) -> int:
        try:
            redis_keys = list(self._redis.scan_iter(match=self._pattern()))
            if redis_keys:
                self._redis.delete(*redis_keys)
        except self._errors as e:
            raise CacheUnavailableError(f"Redis clear failed: {e}") from e
        return len(redis_keys)
