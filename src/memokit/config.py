"""
Process-wide defaults for caches built by memoize.

Supports:
- Environment variable configuration
- YAML file configuration
- Runtime overrides

Explicit memoize options always win over these defaults.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from memokit.options import DRIVERS, parse_duration

DEFAULT_ROOT_DIR = Path(".memokit")


@dataclass
class MemoizeConfig:
    """
    Defaults applied when memoize constructs a cache.

    All fields default to the in-process behaviour:
    - driver: memory (process-wide shared datastore)
    - max_size: None (unbounded)
    - expires_in: None (never expires)
    """

    driver: str = "memory"
    max_size: int | None = None
    root_dir: Path = field(default_factory=lambda: DEFAULT_ROOT_DIR)
    expires_in: float | None = None
    redis_url: str | None = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.driver not in DRIVERS:
            raise ValueError(f"driver must be one of {', '.join(DRIVERS)}, got {self.driver!r}")

        if self.max_size is not None and self.max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {self.max_size}")

        self.root_dir = Path(self.root_dir)
        self.expires_in = parse_duration(self.expires_in)

    @classmethod
    def from_env(cls) -> "MemoizeConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            MEMOKIT_DRIVER: Default driver (memory/file/null/redis)
            MEMOKIT_MAX_SIZE: Default entry bound for memory caches
            MEMOKIT_ROOT_DIR: Root directory for the file driver
            MEMOKIT_EXPIRES_IN: Default expiry (e.g. "10 min")
            MEMOKIT_REDIS_URL: Connection URL for the redis driver
        """
        max_size = os.getenv("MEMOKIT_MAX_SIZE")

        return cls(
            driver=os.getenv("MEMOKIT_DRIVER", "memory").lower(),
            max_size=int(max_size) if max_size else None,
            root_dir=Path(os.getenv("MEMOKIT_ROOT_DIR", str(DEFAULT_ROOT_DIR))),
            expires_in=os.getenv("MEMOKIT_EXPIRES_IN") or None,
            redis_url=os.getenv("MEMOKIT_REDIS_URL"),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MemoizeConfig":
        """Create configuration from dictionary (e.g., YAML)."""
        return cls(
            driver=data.get("driver", "memory"),
            max_size=data.get("max_size"),
            root_dir=Path(data.get("root_dir", DEFAULT_ROOT_DIR)),
            expires_in=data.get("expires_in"),
            redis_url=data.get("redis_url"),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "MemoizeConfig":
        """Load configuration from a YAML file.

        The file may hold the settings at top level or under a ``memokit`` key.
        """
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping in {path}, got {type(data).__name__}")
        return cls.from_dict(data.get("memokit", data))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "driver": self.driver,
            "max_size": self.max_size,
            "root_dir": str(self.root_dir),
            "expires_in": self.expires_in,
            "redis_url": self.redis_url,
        }

    def cache_defaults(self, driver: str | None = None) -> dict[str, Any]:
        """Cache-construction defaults for the given (or configured) driver."""
        driver = driver or self.driver
        defaults: dict[str, Any] = {"driver": driver}
        if driver == "memory" and self.max_size is not None:
            defaults["max_size"] = self.max_size
        elif driver == "file":
            defaults["root_dir"] = self.root_dir
        elif driver == "redis" and self.redis_url:
            defaults["redis_url"] = self.redis_url
        return defaults
