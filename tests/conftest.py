from __future__ import annotations

from typing import Callable, List

import pytest

from tapcounter.tracker import TempoTracker, TrackerConfig


class FakeClock:
    def __init__(self, now_ms: int = 0) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms


class ManualTimer:
    def __init__(self, interval_s: float, fn: Callable[[], None]) -> None:
        self.interval_s = interval_s
        self.fn = fn
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimers:
    """threading.Timer-shaped factory that fires only when told to."""

    def __init__(self) -> None:
        self.created: List[ManualTimer] = []

    def __call__(self, interval_s: float, fn: Callable[[], None]) -> ManualTimer:
        t = ManualTimer(interval_s, fn)
        self.created.append(t)
        return t

    @property
    def live(self) -> List[ManualTimer]:
        return [t for t in self.created if t.started and not t.cancelled]

    def fire_latest(self) -> None:
        self.created[-1].fn()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture
def make_tracker(clock: FakeClock, timers: ManualTimers):
    def _make(**kwargs) -> TempoTracker:
        return TempoTracker(TrackerConfig(**kwargs), clock=clock, timer_factory=timers)

    return _make


