"""Canonical JSON serialization and stable hashing for cache keys.

Provides deterministic JSON output so that the same logical key always maps
to the same bytes.

Design decisions:
- Hash algorithm: blake2b (fast, 16-byte digest by default)
- JSON: sorted keys, no whitespace, ASCII-only
- Arrays: preserved order; sets are sorted by their own canonical encoding
- Mappings with non-string keys: ``{"__mapping__": [[key, value], ...]}``
- Floats: NaN is rejected, infinities become stable strings
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
import math
from collections.abc import Mapping
from enum import Enum
from typing import Any

from memokit.errors import KeySerializationError


class CanonicalJSONEncoder(json.JSONEncoder):
    """JSON encoder that produces canonical, deterministic output.

    Guarantees:
    - Sorted keys at all levels
    - No whitespace
    - ASCII-only output
    - Consistent float representation (rejects NaN)
    """

    def __init__(self, **kwargs: Any) -> None:
        kwargs["sort_keys"] = True
        kwargs["separators"] = (",", ":")
        kwargs["ensure_ascii"] = True
        super().__init__(**kwargs)

    def default(self, o: Any) -> Any:
        raise KeySerializationError(
            f"Cannot canonicalize key part of type {type(o).__name__}: {o!r}"
        )

    def encode(self, o: Any) -> str:
        """Encode with canonical formatting."""
        return super().encode(self._normalize(o))

    def _normalize(self, obj: Any) -> Any:
        """Recursively normalize values for canonical representation."""
        if obj is None or isinstance(obj, bool):
            return obj
        if isinstance(obj, Enum):
            return self._normalize(obj.value)
        if isinstance(obj, float):
            if math.isnan(obj):
                raise KeySerializationError(f"Cannot canonicalize NaN float: {obj}")
            if math.isinf(obj):
                return "Infinity" if obj > 0 else "-Infinity"
            # Normalize -0.0 to 0.0
            if obj == 0.0:
                return 0.0
            return obj
        if isinstance(obj, (int, str)):
            return obj
        if isinstance(obj, (bytes, bytearray)):
            return {"__bytes__": bytes(obj).hex()}
        if isinstance(obj, Mapping):
            if all(isinstance(k, str) for k in obj):
                return {k: self._normalize(v) for k, v in sorted(obj.items())}
            # Non-string keys: encode as [key, value] pairs so 1 and "1" stay distinct
            pairs = [[self._normalize(k), self._normalize(v)] for k, v in obj.items()]
            pairs.sort(key=lambda pair: json.JSONEncoder.encode(self, pair[0]))
            return {"__mapping__": pairs}
        if isinstance(obj, (list, tuple)):
            return [self._normalize(item) for item in obj]
        if isinstance(obj, (set, frozenset)):
            items = [self._normalize(item) for item in obj]
            return sorted(items, key=lambda item: json.JSONEncoder.encode(self, item))
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return self._normalize(dataclasses.asdict(obj))
        if hasattr(obj, "to_dict"):
            return self._normalize(obj.to_dict())
        return self.default(obj)


# Singleton encoder instance
_encoder = CanonicalJSONEncoder()


def canonical_json(data: Any) -> str:
    """Produce canonical JSON string from data.

    Args:
        data: Key data (JSON types plus tuples, sets, bytes, enums, dataclasses)

    Returns:
        Canonical JSON string with sorted keys, no whitespace, ASCII-only

    Raises:
        KeySerializationError: If data contains NaN or an unsupported type
    """
    return _encoder.encode(data)


def canonical_hash(data: Any, algorithm: str = "blake2b", digest_size: int = 16) -> str:
    """Compute deterministic hash of any data via canonical JSON.

    Args:
        data: Key data accepted by canonical_json
        algorithm: Hash algorithm (blake2b, sha256)
        digest_size: Digest size for blake2b (default 16 bytes = 32 hex chars)

    Returns:
        Hex digest string
    """
    canonical = canonical_json(data).encode("utf-8")

    if algorithm == "blake2b":
        hasher = hashlib.blake2b(digest_size=digest_size)
    elif algorithm == "sha256":
        hasher = hashlib.sha256()
    else:
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    hasher.update(canonical)
    return hasher.hexdigest()
