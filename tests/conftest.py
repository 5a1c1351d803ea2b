"""Shared fixtures for signal tests."""

from __future__ import annotations

from typing import Any

import pytest

from anysignal import Signal


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def signal(clock: FakeClock) -> Signal[Any]:
    """Signal using the fake clock for throttling."""
    return Signal(clock=clock)
