"""File cache driver: one pickle file per entry, shared across processes."""

from __future__ import annotations

import os
import pickle
import shutil
import tempfile
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from memokit.backends.base import CacheAdapter, CacheEntry, key_digest
from memokit.config import DEFAULT_ROOT_DIR
from memokit.errors import CacheUnavailableError

NAMESPACE_FILE = ".namespace"
ENTRY_SUFFIX = ".pkl"


def namespace_dirname(namespace: str) -> str:
    """Directory name for a namespace (namespaces may hold any characters)."""
    return key_digest(namespace)


def list_namespaces(root_dir: Path) -> dict[str, Path]:
    """Map namespace names to their directories under root_dir."""
    root_dir = Path(root_dir).expanduser().resolve()
    if not root_dir.is_dir():
        return {}

    namespaces: dict[str, Path] = {}
    for child in sorted(root_dir.iterdir()):
        marker = child / NAMESPACE_FILE
        if child.is_dir() and marker.is_file():
            namespaces[marker.read_text(encoding="utf-8")] = child
    return namespaces


class FileCache(CacheAdapter):
    """Persistent cache driver backed by a directory tree.

    Layout::

        <root_dir>/<namespace digest>/.namespace      namespace name
        <root_dir>/<namespace digest>/<key digest>.pkl pickled CacheEntry

    Values must be picklable. Unreadable entry files are treated as misses
    and removed.
    """

    driver = "file"

    def __init__(
        self,
        namespace: str = "default",
        root_dir: Path | str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize file driver.

        Args:
            namespace: Key-space partition
            root_dir: Root directory for all namespaces. Defaults to .memokit
                in the current directory.
            clock: Time source returning epoch seconds
        """
        super().__init__(namespace, clock)
        self.root_dir = Path(root_dir or DEFAULT_ROOT_DIR).expanduser().resolve()
        self.cache_dir = self.root_dir / namespace_dirname(namespace)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            marker = self.cache_dir / NAMESPACE_FILE
            if not marker.exists():
                marker.write_text(namespace, encoding="utf-8")
        except OSError as e:
            raise CacheUnavailableError(f"Cannot use cache directory {self.cache_dir}: {e}") from e

    def _entry_path(self, key: str) -> Path:
        return self.cache_dir / f"{key_digest(key)}{ENTRY_SUFFIX}"

    def _load(self, path: Path) -> CacheEntry | None:
        try:
            with open(path, "rb") as f:
                entry = pickle.load(f)
        except FileNotFoundError:
            return None
        except (OSError, EOFError, pickle.UnpicklingError, AttributeError, ImportError):
            path.unlink(missing_ok=True)
            return None
        return entry if isinstance(entry, CacheEntry) else None

    def get_entry(self, key: str) -> CacheEntry | None:
        entry = self._load(self._entry_path(key))
        # Digest collision guard
        if entry is not None and entry.key != key:
            return None
        return entry

    def set_entry(self, key: str, entry: CacheEntry) -> None:
        path = self._entry_path(key)
        try:
            # Write then rename so readers never see a partial file
            fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    pickle.dump(entry, f, protocol=pickle.HIGHEST_PROTOCOL)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise CacheUnavailableError(f"Cannot write cache entry {path}: {e}") from e

    def remove(self, key: str) -> None:
        self._entry_path(key).unlink(missing_ok=True)

    def _entry_paths(self) -> list[Path]:
        if not self.cache_dir.exists():
            return []
        return sorted(self.cache_dir.glob(f"*{ENTRY_SUFFIX}"))

    def get_keys(self) -> list[str]:
        keys = []
        for path in self._entry_paths():
            entry = self._load(path)
            if entry is not None:
                keys.append(entry.key)
        return keys

    def clear(self) -> int:
        paths = self._entry_paths()
        for path in paths:
            path.unlink(missing_ok=True)
        return len(paths)

    def destroy(self) -> int:
        """Remove the namespace directory entirely."""
        count = len(self._entry_paths())
        try:
            if self.cache_dir.exists():
                shutil.rmtree(self.cache_dir)
        except OSError as e:
            raise CacheUnavailableError(f"Cannot remove cache directory {self.cache_dir}: {e}") from e
        return count

    def stats(self) -> dict[str, Any]:
        """Get cache statistics, including on-disk size."""
        stats = super().stats()
        stats["total_size_bytes"] = sum(p.stat().st_size for p in self._entry_paths() if p.exists())
        stats["cache_dir"] = str(self.cache_dir)
        return stats
