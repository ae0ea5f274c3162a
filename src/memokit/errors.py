"""Error taxonomy for memokit.

Administrative errors (``UnresolvedFunctionError``, ``AlreadyMemoizedError``,
``NotMemoizedError``, ``InvalidOptionError``) abort the operation before any
state changes. Backend errors raised during a wrapped call propagate to the
caller of the wrapped function unchanged.
"""

from __future__ import annotations


class MemoizeError(Exception):
    """Base class for all memokit errors."""
    pass


class UnresolvedFunctionError(MemoizeError, LookupError):
    """A named target does not resolve to an existing callable."""

    def __init__(self, name: str, reason: str = "no such function") -> None:
        self.name = name
        super().__init__(f"{reason}: '{name}'")


class AlreadyMemoizedError(MemoizeError):
    """The function identifier already has an active memoization record."""

    def __init__(self, function_id: str) -> None:
        self.function_id = function_id
        super().__init__(f"'{function_id}' is already memoized")


class NotMemoizedError(MemoizeError):
    """The function identifier has no active memoization record."""

    def __init__(self, function_id: str) -> None:
        self.function_id = function_id
        super().__init__(f"'{function_id}' is not memoized")


class InvalidOptionError(MemoizeError, ValueError):
    """An option passed to memoize is unknown or malformed."""
    pass


class KeySerializationError(MemoizeError, TypeError):
    """A key part cannot be encoded canonically."""
    pass


class CacheUnavailableError(MemoizeError):
    """The cache backend cannot be constructed or reached."""
    pass


class ClearUnsupportedError(MemoizeError):
    """The cache backend cannot enumerate or clear its entries."""

    def __init__(self, driver: str) -> None:
        self.driver = driver
        super().__init__(f"clear() is not supported by the '{driver}' driver")
