"""Tests for function identity, the registry and the binding table."""

from __future__ import annotations

import sys

import pytest

from memokit.backends import MemoryCache
from memokit.errors import AlreadyMemoizedError, NotMemoizedError, UnresolvedFunctionError
from memokit.identity import FunctionId, anonymous_id, qualify, resolve_target
from memokit.registry import BindingTable, FunctionRegistry, MemoizeInfo


def module_level_function(x):
    return x * 2


def make_info(function_id: FunctionId) -> MemoizeInfo:
    return MemoizeInfo(
        function_id=function_id,
        original=module_level_function,
        wrapper=module_level_function,
        cache=MemoryCache("registry-test", global_store=False),
        key_prefix=f"memoize-{function_id.key}",
    )


class TestResolveTarget:
    """Test identity resolution."""

    def test_callable_is_anonymous(self):
        resolved = resolve_target(module_level_function)
        assert resolved.name is None
        assert resolved.func is module_level_function
        assert resolved.function_id.key == anonymous_id(module_level_function).key
        assert hex(id(module_level_function)) in resolved.function_id.key

    def test_anonymous_id_stable(self):
        fn = lambda: None  # noqa: E731
        assert anonymous_id(fn) == anonymous_id(fn)
        assert anonymous_id(fn) != anonymous_id(lambda: None)

    def test_bare_name_uses_caller_module(self):
        resolved = resolve_target("module_level_function", __name__)
        assert resolved.name == f"{__name__}.module_level_function"
        assert resolved.function_id.key == resolved.name
        assert resolved.func is module_level_function
        assert resolved.owner is sys.modules[__name__]
        assert resolved.attr == "module_level_function"

    def test_qualified_name(self, sample_module):
        resolved = resolve_target("memokit_samples.add", "elsewhere")
        assert resolved.name == "memokit_samples.add"
        assert resolved.func is sample_module.add

    def test_class_attribute(self, sample_module):
        resolved = resolve_target("memokit_samples.Shapes.area")
        assert resolved.owner is sample_module.Shapes
        assert resolved.attr == "area"

    @pytest.mark.parametrize(
        "name",
        [
            "memokit_samples.missing",
            "memokit_samples.not_callable",
            "memokit_samples.Missing.area",
            "not_loaded_module_xyz.func",
        ],
    )
    def test_unresolved(self, sample_module, name):
        with pytest.raises(UnresolvedFunctionError):
            resolve_target(name)

    def test_no_import_side_effect(self):
        """Resolution never imports modules."""
        assert "this_module_does_not_exist" not in sys.modules
        with pytest.raises(UnresolvedFunctionError):
            resolve_target("this_module_does_not_exist.func")

    def test_wrong_type(self):
        with pytest.raises(TypeError):
            resolve_target(42)

    def test_qualify(self):
        assert qualify("f", "pkg.mod") == "pkg.mod.f"
        assert qualify("other.f", "pkg.mod") == "other.f"


class TestFunctionRegistry:
    """Test register/lookup/remove."""

    def test_register_and_lookup(self):
        registry = FunctionRegistry()
        fid = FunctionId(key="pkg.f", name="pkg.f")
        info = make_info(fid)

        registry.register(fid, info)

        assert registry.lookup(fid) is info
        assert fid in registry
        assert "pkg.f" in registry
        assert len(registry) == 1

    def test_duplicate_rejected(self):
        """A second registration fails and leaves the first untouched."""
        registry = FunctionRegistry()
        fid = FunctionId(key="pkg.f", name="pkg.f")
        first = make_info(fid)
        registry.register(fid, first)

        with pytest.raises(AlreadyMemoizedError, match="pkg.f"):
            registry.register(fid, make_info(fid))
        assert registry.lookup(fid) is first

    def test_lookup_missing(self):
        assert FunctionRegistry().lookup(FunctionId(key="nope")) is None

    def test_remove(self):
        registry = FunctionRegistry()
        fid = FunctionId(key="pkg.f")
        info = make_info(fid)
        registry.register(fid, info)

        assert registry.remove(fid) is info
        assert fid not in registry

    def test_remove_missing(self):
        with pytest.raises(NotMemoizedError, match="nope"):
            FunctionRegistry().remove(FunctionId(key="nope"))

    def test_info_to_dict(self):
        info = make_info(FunctionId(key="pkg.f", name="pkg.f"))
        assert info.to_dict() == {
            "function_id": "pkg.f",
            "name": "pkg.f",
            "key_prefix": "memoize-pkg.f",
            "driver": "memory",
            "namespace": "registry-test",
            "owns_cache": True,
        }


class TestBindingTable:
    """Test the name indirection table."""

    def test_bind_and_restore(self, sample_module):
        table = BindingTable()
        original = sample_module.add
        replacement = lambda a, b: "wrapped"  # noqa: E731

        table.bind("memokit_samples.add", sample_module, "add", replacement)

        assert sample_module.add is replacement
        assert table.get("memokit_samples.add") is replacement
        assert table.call("memokit_samples.add", 1, 2) == "wrapped"
        assert table.names() == ["memokit_samples.add"]

        table.restore("memokit_samples.add")

        assert sample_module.add is original
        assert "memokit_samples.add" not in table

    def test_call_unbound(self):
        with pytest.raises(KeyError):
            BindingTable().call("nothing.here")

    def test_restore_unbound_is_noop(self):
        BindingTable().restore("nothing.here")
