"""Shared fixtures for memokit tests."""

import sys
import types

import pytest

from memokit import reset
from memokit.backends.memory import reset_global_store


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def isolated_memokit():
    """Start and finish every test with an empty registry and datastore."""
    reset()
    reset_global_store()
    yield
    reset()
    reset_global_store()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_module(monkeypatch):
    """A throwaway module with counted functions, registered in sys.modules."""
    module = types.ModuleType("memokit_samples")
    module.calls = []

    def add(a, b):
        module.calls.append(("add", a, b))
        return a + b

    def countdown(n):
        module.calls.append(("countdown", n))
        yield from range(n, 0, -1)

    class Shapes:
        def area(width, height):
            module.calls.append(("area", width, height))
            return width * height

    module.add = add
    module.countdown = countdown
    module.Shapes = Shapes
    module.not_callable = 42

    monkeypatch.setitem(sys.modules, "memokit_samples", module)
    return module
