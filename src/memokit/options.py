"""Typed option models for memoize.

Options passed to ``memoize`` fall into three groups:

- reserved options (``key``, ``cache``) consumed by memoize itself
- per-call options (``ComputeOptions``) forwarded to every compute call
- cache-construction options (``CacheOptions``) used when memoize builds
  the cache itself

Unknown option names are rejected rather than passed along as opaque data.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from pathlib import Path
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from memokit.errors import InvalidOptionError

RESERVED_OPTIONS = frozenset({"key", "cache"})

DRIVERS = ("memory", "file", "null", "redis")

_DURATION_UNITS = {
    "s": 1,
    "sec": 1,
    "secs": 1,
    "second": 1,
    "seconds": 1,
    "m": 60,
    "min": 60,
    "mins": 60,
    "minute": 60,
    "minutes": 60,
    "h": 3600,
    "hr": 3600,
    "hrs": 3600,
    "hour": 3600,
    "hours": 3600,
    "d": 86400,
    "day": 86400,
    "days": 86400,
    "w": 604800,
    "week": 604800,
    "weeks": 604800,
}

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-z]*)\s*$")


def parse_duration(value: float | int | str | None) -> float | None:
    """Parse a duration into seconds.

    Accepts numbers (seconds) and strings such as "30s", "5 min", "1h",
    "2 days" or "never". Returns None for "never" and None.

    Raises:
        InvalidOptionError: If the value cannot be parsed
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidOptionError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        if value < 0:
            raise InvalidOptionError(f"Duration must be >= 0, got {value}")
        return float(value)
    if not isinstance(value, str):
        raise InvalidOptionError(f"Invalid duration: {value!r}")

    text = value.strip().lower()
    if text == "never":
        return None
    match = _DURATION_RE.match(text)
    if not match:
        raise InvalidOptionError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    if unit and unit not in _DURATION_UNITS:
        raise InvalidOptionError(f"Unknown duration unit '{unit}' in {value!r}")
    return float(amount) * _DURATION_UNITS.get(unit, 1)


class ComputeOptions(BaseModel):
    """Per-call options forwarded unchanged to every compute call."""

    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    expires_in: float | None = None
    expires_at: float | None = None
    expires_variance: float = Field(default=0.0, ge=0.0, le=1.0)
    busy_lock: float | None = None
    expire_if: Callable[[Any], bool] | None = None

    @field_validator("expires_in", "busy_lock", mode="before")
    @classmethod
    def _parse_duration(cls, value: Any) -> float | None:
        return parse_duration(value)


class CacheOptions(BaseModel):
    """Options used to construct a cache when none is supplied."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    driver: Literal["memory", "file", "null", "redis"] = "memory"
    namespace: str | None = None
    max_size: int | None = Field(default=None, ge=1)
    root_dir: Path | None = None
    redis_url: str | None = None
    global_store: bool = True

    @model_validator(mode="after")
    def _check_driver_fields(self) -> CacheOptions:
        for name in self.model_fields_set:
            drivers = DRIVER_FIELDS.get(name)
            if drivers is not None and self.driver not in drivers:
                raise ValueError(f"option '{name}' does not apply to the '{self.driver}' driver")
        return self


# Construction options that only make sense for some drivers
DRIVER_FIELDS = {
    "max_size": ("memory",),
    "global_store": ("memory",),
    "root_dir": ("file",),
    "redis_url": ("redis",),
}


COMPUTE_OPTION_NAMES = frozenset(ComputeOptions.model_fields)
CACHE_OPTION_NAMES = frozenset(CacheOptions.model_fields)


def _build(model: type[BaseModel], values: dict[str, Any]) -> Any:
    try:
        return model(**values)
    except ValidationError as e:
        raise InvalidOptionError(str(e)) from e


def split_options(
    options: dict[str, Any],
) -> tuple[Any, Any, ComputeOptions, dict[str, Any]]:
    """Split memoize options into their groups.

    Args:
        options: Raw keyword options passed to memoize

    Returns:
        Tuple of (key, cache, compute options, cache-construction values)

    Raises:
        InvalidOptionError: On unknown names, malformed values, or
            construction options passed together with an explicit cache
    """
    unknown = set(options) - RESERVED_OPTIONS - COMPUTE_OPTION_NAMES - CACHE_OPTION_NAMES
    if unknown:
        raise InvalidOptionError(f"Unknown memoize option(s): {', '.join(sorted(unknown))}")

    key = options.get("key")
    cache = options.get("cache")
    compute_options = _build(
        ComputeOptions,
        {k: v for k, v in options.items() if k in COMPUTE_OPTION_NAMES},
    )
    cache_values = {k: v for k, v in options.items() if k in CACHE_OPTION_NAMES}

    if cache is not None and cache_values:
        raise InvalidOptionError(
            "Cache construction options cannot be combined with an explicit cache: "
            + ", ".join(sorted(cache_values))
        )

    return key, cache, compute_options, cache_values


def build_cache_options(values: dict[str, Any]) -> CacheOptions:
    """Validate cache-construction values into CacheOptions."""
    return _build(CacheOptions, values)
