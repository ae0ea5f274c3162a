"""Function identity resolution.

A memoize target is either a callable or a dotted name. Callables get an
anonymous identifier derived from the object's identity; names are qualified
against the caller's module and resolved through ``sys.modules`` without
importing anything.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from memokit.errors import UnresolvedFunctionError


@dataclass(frozen=True)
class FunctionId:
    """Registry identifier for a memoized function.

    Attributes:
        key: Unique registry key (the qualified name, or an identity string)
        name: Fully qualified dotted name, None for anonymous targets
    """
    key: str
    name: str | None = None

    @property
    def is_named(self) -> bool:
        return self.name is not None

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class ResolvedTarget:
    """Outcome of resolving a memoize target.

    ``owner`` and ``attr`` locate the binding for named targets so it can be
    replaced by the wrapper and later restored.
    """
    function_id: FunctionId
    func: Callable[..., Any]
    owner: Any = None
    attr: str | None = None

    @property
    def name(self) -> str | None:
        return self.function_id.name


def anonymous_id(func: Callable[..., Any]) -> FunctionId:
    """Identifier for a callable passed by value.

    Only valid while func is alive; the registry holds a reference to it.
    """
    qualname = getattr(func, "__qualname__", None) or type(func).__name__
    return FunctionId(key=f"<{type(func).__name__} {qualname} at {id(func):#x}>")


def caller_module(depth: int = 2) -> str:
    """Name of the module whose code is running ``depth`` frames up."""
    frame = sys._getframe(depth)
    return frame.f_globals.get("__name__", "__main__")


def qualify(name: str, module: str) -> str:
    """Qualify a bare function name with the caller's module."""
    if "." in name:
        return name
    return f"{module}.{name}"


def _split_module(qualified: str) -> tuple[Any, list[str]]:
    """Find the longest loaded module prefix of a dotted name."""
    parts = qualified.split(".")
    for i in range(len(parts) - 1, 0, -1):
        module = sys.modules.get(".".join(parts[:i]))
        if module is not None:
            return module, parts[i:]
    raise UnresolvedFunctionError(qualified, "no loaded module for function")


def resolve_target(target: Callable[..., Any] | str, module: str = "__main__") -> ResolvedTarget:
    """Resolve a memoize target.

    Args:
        target: A callable, or a function name (bare or dotted)
        module: Module name used to qualify bare names

    Returns:
        ResolvedTarget with identifier, current callable and binding location

    Raises:
        UnresolvedFunctionError: If a name does not resolve to a callable
        TypeError: If target is neither a callable nor a string
    """
    if isinstance(target, str):
        qualified = qualify(target, module)
        owner, path = _split_module(qualified)
        for attr in path[:-1]:
            try:
                owner = getattr(owner, attr)
            except AttributeError:
                raise UnresolvedFunctionError(qualified) from None

        attr = path[-1]
        # Read from __dict__ when possible so staticmethod/classmethod
        # descriptors on classes are not unwrapped into bound methods
        func = vars(owner).get(attr) if hasattr(owner, "__dict__") else None
        if func is None:
            func = getattr(owner, attr, None)
        if isinstance(func, (staticmethod, classmethod)):
            raise UnresolvedFunctionError(qualified, "cannot memoize method descriptor")
        if func is None or not callable(func):
            raise UnresolvedFunctionError(qualified)

        return ResolvedTarget(
            function_id=FunctionId(key=qualified, name=qualified),
            func=func,
            owner=owner,
            attr=attr,
        )

    if callable(target):
        return ResolvedTarget(function_id=anonymous_id(target), func=target)

    raise TypeError(f"memoize target must be a callable or a name, got {type(target).__name__}")
