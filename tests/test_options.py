"""Tests for memoize option parsing."""

from __future__ import annotations

from pathlib import Path

import pytest

from memokit.errors import InvalidOptionError
from memokit.options import (
    CacheOptions,
    ComputeOptions,
    build_cache_options,
    parse_duration,
    split_options,
)


class TestParseDuration:
    """Test duration parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (30, 30.0),
            (1.5, 1.5),
            ("45", 45.0),
            ("30s", 30.0),
            ("5 min", 300.0),
            ("1h", 3600.0),
            ("2 days", 172800.0),
            ("1 week", 604800.0),
            ("never", None),
            (None, None),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["soon", "5 fortnights", -1, True, [1]])
    def test_invalid(self, value):
        with pytest.raises(InvalidOptionError):
            parse_duration(value)


class TestSplitOptions:
    """Test splitting options into reserved, per-call and construction groups."""

    def test_groups(self):
        key_fn = lambda x: x  # noqa: E731
        key, cache, compute, cache_values = split_options(
            {"key": key_fn, "expires_in": "1h", "busy_lock": 10, "max_size": 5}
        )
        assert key is key_fn
        assert cache is None
        assert compute.expires_in == 3600.0
        assert compute.busy_lock == 10.0
        assert cache_values == {"max_size": 5}

    def test_empty(self):
        key, cache, compute, cache_values = split_options({})
        assert key is None and cache is None
        assert compute == ComputeOptions()
        assert cache_values == {}

    def test_unknown_option_rejected(self):
        with pytest.raises(InvalidOptionError, match="expires_soon"):
            split_options({"expires_soon": 1})

    def test_construction_options_with_explicit_cache_rejected(self):
        with pytest.raises(InvalidOptionError, match="max_size"):
            split_options({"cache": object(), "max_size": 10})

    def test_invalid_variance(self):
        with pytest.raises(InvalidOptionError):
            split_options({"expires_variance": 1.5})

    def test_expire_if_must_be_callable(self):
        with pytest.raises(InvalidOptionError):
            split_options({"expire_if": "yes"})


class TestCacheOptions:
    """Test cache-construction option validation."""

    def test_defaults(self):
        options = CacheOptions()
        assert options.driver == "memory"
        assert options.namespace is None
        assert options.global_store is True

    def test_unknown_driver(self):
        with pytest.raises(InvalidOptionError):
            build_cache_options({"driver": "memcached"})

    def test_driver_specific_option(self):
        """Options for another driver are rejected, not ignored."""
        with pytest.raises(InvalidOptionError, match="max_size"):
            build_cache_options({"driver": "file", "max_size": 10})

    def test_file_options(self, tmp_path: Path):
        options = build_cache_options({"driver": "file", "root_dir": str(tmp_path)})
        assert options.root_dir == tmp_path

    def test_max_size_positive(self):
        with pytest.raises(InvalidOptionError):
            build_cache_options({"max_size": 0})
