"""Cache key construction.

A cache key is the ordered sequence ``[prefix, context, *parts]``. The prefix
isolates one memoized function from another, the context separates scalar
calls from list calls, and the parts come either from the raw call arguments
or from a caller-supplied key extractor.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from typing import Any

from memokit.canonical import canonical_hash, canonical_json

KWARGS_FIELD = "__kwargs__"


class CallContext(str, Enum):
    """Result shape expected by the call site."""

    SCALAR = "S"
    LIST = "L"


class PartsKind(str, Enum):
    """Shape of the value returned by a key extractor."""

    SCALAR = "scalar"
    SEQUENCE = "sequence"
    FIELDS = "fields"


@dataclass(frozen=True)
class KeyParts:
    """Tagged key parts: a single value, an ordered sequence or named fields."""

    kind: PartsKind
    values: tuple[Any, ...]

    @classmethod
    def scalar(cls, value: Any) -> KeyParts:
        return cls(PartsKind.SCALAR, (value,))

    @classmethod
    def sequence(cls, values: Any) -> KeyParts:
        return cls(PartsKind.SEQUENCE, tuple(values))

    @classmethod
    def fields(cls, values: Mapping[str, Any]) -> KeyParts:
        # Insertion order is dropped here; canonical_json sorts nested keys too
        return cls(PartsKind.FIELDS, (dict(sorted(values.items(), key=lambda kv: str(kv[0]))),))

    @classmethod
    def classify(cls, value: Any) -> KeyParts:
        """Classify a key extractor's return value."""
        if isinstance(value, Mapping):
            return cls.fields(value)
        if isinstance(value, (list, tuple)):
            return cls.sequence(value)
        return cls.scalar(value)

    @classmethod
    def from_call(cls, args: tuple[Any, ...], kwargs: Mapping[str, Any]) -> KeyParts:
        """Key parts for raw call arguments.

        Positional arguments are used verbatim. Keyword arguments, when
        present, are appended as a single mapping so their order is irrelevant.
        """
        if not kwargs:
            return cls.sequence(args)
        return cls.sequence((*args, {KWARGS_FIELD: dict(kwargs)}))


@dataclass(frozen=True)
class CacheKey:
    """A fully built cache key."""

    prefix: str
    context: CallContext
    parts: tuple[Any, ...]

    def to_list(self) -> list[Any]:
        return [self.prefix, self.context.value, *self.parts]

    @cached_property
    def _encoded(self) -> str:
        return canonical_json(self.to_list())

    def canonical(self) -> str:
        """Canonical JSON form, identical for logically equal keys."""
        return self._encoded

    def digest(self) -> str:
        """Fixed-length hex digest of the canonical form."""
        return canonical_hash(self.to_list())

    def __str__(self) -> str:
        return self.canonical()


def build_key(
    prefix: str,
    context: CallContext,
    args: tuple[Any, ...],
    kwargs: Mapping[str, Any] | None = None,
    key: Callable[..., Any] | Any | None = None,
) -> CacheKey:
    """Build the cache key for one call.

    Args:
        prefix: Per-function key prefix
        context: Expected result shape of the call
        args: Positional call arguments
        kwargs: Keyword call arguments
        key: Optional key extractor. A callable is invoked with the call
            arguments; any other non-None value is used as a constant key.

    Returns:
        CacheKey for the call
    """
    kwargs = kwargs or {}
    if key is None:
        parts = KeyParts.from_call(args, kwargs)
    elif callable(key):
        parts = KeyParts.classify(key(*args, **kwargs))
    else:
        parts = KeyParts.classify(key)

    cache_key = CacheKey(prefix=prefix, context=context, parts=parts.values)
    # Fail here rather than inside the backend if a part cannot be encoded
    cache_key.canonical()
    return cache_key
