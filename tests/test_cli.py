"""Tests for the memokit CLI."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from memokit.backends.file import FileCache
from memokit.cli import cli
from memokit.options import ComputeOptions


@pytest.fixture
def root(tmp_path: Path) -> Path:
    """A file cache root holding two namespaces."""
    rates = FileCache("rates", root_dir=tmp_path)
    rates.set('["memoize-app.rates","S","usd"]', 1.0)
    rates.set('["memoize-app.rates","S","eur"]', 0.9, ComputeOptions(expires_at=1.0))
    FileCache("users", root_dir=tmp_path).set('["memoize-app.user","S",1]', {"name": "a"})
    return tmp_path


def invoke(root: Path, *args: str):
    return CliRunner().invoke(cli, ["--root-dir", str(root), *args])


class TestNamespaces:
    def test_lists_namespaces(self, root):
        result = invoke(root, "namespaces")
        assert result.exit_code == 0
        assert sorted(result.output.split()) == ["rates", "users"]

    def test_empty_root(self, tmp_path):
        result = invoke(tmp_path / "missing", "namespaces")
        assert result.exit_code == 0
        assert "No caches under" in result.output


class TestStats:
    def test_single_namespace(self, root):
        result = invoke(root, "stats", "rates")
        assert result.exit_code == 0
        assert "rates:" in result.output
        assert "Entries: 2" in result.output

    def test_all_namespaces(self, root):
        result = invoke(root, "stats")
        assert result.exit_code == 0
        assert "rates:" in result.output
        assert "users:" in result.output

    def test_unknown_namespace(self, root):
        result = invoke(root, "stats", "nope")
        assert result.exit_code != 0
        assert "No cache namespace 'nope'" in result.output


class TestKeys:
    def test_lists_keys(self, root):
        result = invoke(root, "keys", "rates")
        assert result.exit_code == 0
        assert '["memoize-app.rates","S","usd"]' in result.output
        assert '["memoize-app.rates","S","eur"]' in result.output

    def test_expired_only(self, root):
        result = invoke(root, "keys", "rates", "--expired")
        assert result.exit_code == 0
        assert result.output.strip() == '["memoize-app.rates","S","eur"]'


class TestClear:
    def test_clear_namespace(self, root):
        result = invoke(root, "clear", "rates", "--yes")
        assert result.exit_code == 0
        assert "Cleared 2 cache entries" in result.output
        assert FileCache("rates", root_dir=root).get_keys() == []
        assert len(FileCache("users", root_dir=root).get_keys()) == 1

    def test_clear_all(self, root):
        result = invoke(root, "clear", "--all", "--yes")
        assert result.exit_code == 0
        assert "Cleared 3 cache entries" in result.output

    def test_requires_target(self, root):
        result = invoke(root, "clear", "--yes")
        assert result.exit_code == 2
        assert "Give a NAMESPACE or --all" in result.output

    def test_aborts_without_confirmation(self, root):
        result = CliRunner().invoke(cli, ["--root-dir", str(root), "clear", "rates"], input="n\n")
        assert result.exit_code == 1
        assert len(FileCache("rates", root_dir=root).get_keys()) == 2


def test_config_file_sets_root(root, tmp_path_factory):
    config = tmp_path_factory.mktemp("conf") / "memokit.yaml"
    config.write_text(f"memokit:\n  driver: file\n  root_dir: {root}\n")

    result = CliRunner().invoke(cli, ["--config", str(config), "namespaces"])

    assert result.exit_code == 0
    assert "rates" in result.output


def test_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "memokit" in result.output
