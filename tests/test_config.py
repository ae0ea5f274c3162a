"""Tests for memokit configuration."""

from pathlib import Path

import pytest

from memokit.config import DEFAULT_ROOT_DIR, MemoizeConfig


def test_default_config():
    """Test default configuration values."""
    config = MemoizeConfig()

    assert config.driver == "memory"
    assert config.max_size is None
    assert config.root_dir == DEFAULT_ROOT_DIR
    assert config.expires_in is None


def test_config_validation():
    """Test configuration validation."""
    with pytest.raises(ValueError, match="driver"):
        MemoizeConfig(driver="memcached")

    with pytest.raises(ValueError, match="max_size"):
        MemoizeConfig(max_size=0)


def test_config_parses_duration():
    config = MemoizeConfig(expires_in="10 min")
    assert config.expires_in == 600.0


def test_config_from_env(monkeypatch):
    """Test loading configuration from environment."""
    monkeypatch.setenv("MEMOKIT_DRIVER", "FILE")
    monkeypatch.setenv("MEMOKIT_MAX_SIZE", "50")
    monkeypatch.setenv("MEMOKIT_ROOT_DIR", "/tmp/memokit-test")
    monkeypatch.setenv("MEMOKIT_EXPIRES_IN", "1h")

    config = MemoizeConfig.from_env()

    assert config.driver == "file"
    assert config.max_size == 50
    assert config.root_dir == Path("/tmp/memokit-test")
    assert config.expires_in == 3600.0


def test_config_from_env_defaults(monkeypatch):
    for name in ("MEMOKIT_DRIVER", "MEMOKIT_MAX_SIZE", "MEMOKIT_ROOT_DIR", "MEMOKIT_EXPIRES_IN", "MEMOKIT_REDIS_URL"):
        monkeypatch.delenv(name, raising=False)

    assert MemoizeConfig.from_env().to_dict() == MemoizeConfig().to_dict()


def test_config_from_yaml(tmp_path: Path):
    """Test loading configuration from a YAML file."""
    path = tmp_path / "memokit.yaml"
    path.write_text(
        "memokit:\n"
        "  driver: memory\n"
        "  max_size: 25\n"
        "  expires_in: 30s\n"
    )

    config = MemoizeConfig.from_yaml(path)

    assert config.max_size == 25
    assert config.expires_in == 30.0


def test_config_from_yaml_top_level(tmp_path: Path):
    path = tmp_path / "memokit.yaml"
    path.write_text("driver: file\nroot_dir: cache\n")

    config = MemoizeConfig.from_yaml(path)

    assert config.driver == "file"
    assert config.root_dir == Path("cache")


def test_config_from_yaml_rejects_non_mapping(tmp_path: Path):
    path = tmp_path / "memokit.yaml"
    path.write_text("- driver\n")

    with pytest.raises(ValueError, match="mapping"):
        MemoizeConfig.from_yaml(path)


def test_config_round_trip():
    """Test to_dict/from_dict."""
    config = MemoizeConfig(driver="redis", redis_url="redis://cache:6379/1", expires_in=5)

    restored = MemoizeConfig.from_dict(config.to_dict())

    assert restored.to_dict() == config.to_dict()


def test_cache_defaults_per_driver(tmp_path: Path):
    """Only the defaults relevant to the chosen driver are applied."""
    config = MemoizeConfig(max_size=10, root_dir=tmp_path, redis_url="redis://x")

    assert config.cache_defaults() == {"driver": "memory", "max_size": 10}
    assert config.cache_defaults("file") == {"driver": "file", "root_dir": tmp_path}
    assert config.cache_defaults("redis") == {"driver": "redis", "redis_url": "redis://x"}
    assert config.cache_defaults("null") == {"driver": "null"}
