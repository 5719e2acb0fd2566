"""Tap tempo tracker.

Turns taps into a rolling BPM/MPM estimate with a four-state machine and a
5 s inactivity timer:

    Initial/Done    + tap     -> Counting  (new run, history cleared)
    FirstClick/Counting + tap -> Counting  (interval appended)
    Initial/FirstClick + timeout -> Initial (history and baseline cleared)
    Counting/Done   + timeout -> Done      (estimate kept)

FirstClick is part of the state set but no transition enters it: the first
tap of a run lands directly in Counting with an empty history.

Changing meter or method only rescales the stored intervals; tap state and
the timer are untouched.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Union

from .intervals import MAX_INTERVAL_HISTORY, IntervalHistory
from .options import (
    DEFAULT_METER,
    DEFAULT_METHOD,
    CountMethod,
    Meter,
    TapState,
    as_meter,
    as_method,
    effective_method,
)
from .timer import INACTIVITY_WAIT_MS, InactivityTimer, TimerFactory

logger = logging.getLogger(__name__)

Listener = Callable[[str, Tuple[str, ...]], None]

# Accessors that may change after each mutating operation.
CHANGES: Dict[str, Tuple[str, ...]] = {
    "tap": ("state", "bpm", "mpm", "status_label"),
    "timeout": ("state", "bpm", "mpm", "status_label"),
    "set_meter": (
        "meter",
        "effective_method",
        "show_measure_controls",
        "bpm",
        "mpm",
        "status_label",
    ),
    "set_method": ("method", "effective_method", "bpm", "mpm", "status_label"),
}


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


@dataclass
class TrackerConfig:
    max_intervals: int = MAX_INTERVAL_HISTORY
    wait_ms: int = INACTIVITY_WAIT_MS
    meter: Meter = DEFAULT_METER
    method: CountMethod = DEFAULT_METHOD


@dataclass(frozen=True)
class TempoSnapshot:
    state: TapState
    meter: Meter
    method: CountMethod
    effective_method: CountMethod
    cpm: float
    bpm: float
    mpm: float
    status_label: str
    show_measure_controls: bool
    intervals: Tuple[int, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "meter": int(self.meter),
            "method": self.method.value,
            "effective_method": self.effective_method.value,
            "cpm": self.cpm,
            "bpm": self.bpm,
            "mpm": self.mpm,
            "status_label": self.status_label,
            "show_measure_controls": self.show_measure_controls,
            "intervals": list(self.intervals),
        }


def status_label(state: TapState, meter: Meter, method: CountMethod) -> str:
    if state in (TapState.FIRST_CLICK, TapState.COUNTING):
        return "Again"
    if effective_method(meter, method) == CountMethod.BEAT:
        return "Click on each beat"
    return f"Click on downbeat of {int(meter)}/4 measure"


class TempoTracker:
    """Owns one counting session: tap state, interval history and timer.

    Args:
        cfg: history cap, wait window and initial meter/method.
        clock: returns the current time in integer milliseconds.
        timer_factory: ``threading.Timer``-shaped factory for the inactivity
            timer. Tests pass a manual one.
    """

    def __init__(
        self,
        cfg: Optional[TrackerConfig] = None,
        clock: Optional[Callable[[], int]] = None,
        timer_factory: Optional[TimerFactory] = None,
    ) -> None:
        self.cfg = cfg or TrackerConfig()
        self._clock = clock or monotonic_ms
        self._lock = threading.RLock()
        self._state = TapState.INITIAL
        self._meter = as_meter(self.cfg.meter)
        self._method = as_method(self.cfg.method)
        self._history = IntervalHistory(self.cfg.max_intervals)
        self._last_tap_ms = 0
        self._listeners: List[Listener] = []
        self._timer = InactivityTimer(
            self.cfg.wait_ms,
            self._on_timeout,
            after=lambda: self._notify("timeout"),
            lock=self._lock,
            factory=timer_factory,
        )

    # Lifecycle
    def close(self) -> None:
        self._timer.cancel()

    def __enter__(self) -> "TempoTracker":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # Notification
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener(operation, changed_accessors)``.

        Called after every mutating operation, once the tracker lock is
        released. Timeouts notify from the timer thread.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, operation: str) -> None:
        with self._lock:
            listeners = list(self._listeners)
        changed = CHANGES[operation]
        for listener in listeners:
            try:
                listener(operation, changed)
            except Exception:
                logger.exception("listener failed on %s", operation)

    # Events
    def tap(self) -> None:
        with self._lock:
            now = int(self._clock())
            if self._state in (TapState.INITIAL, TapState.DONE):
                self._history.clear()
                self._last_tap_ms = now
                logger.debug("%s -> counting (new run at %d ms)", self._state.value, now)
            else:
                delta = now - self._last_tap_ms
                self._last_tap_ms = now
                self._history.append(delta)
                logger.debug("tap interval %d ms (%d stored)", delta, len(self._history))
            self._state = TapState.COUNTING
            self._timer.arm()
        self._notify("tap")

    def _on_timeout(self) -> None:
        # Runs with the lock held by the timer.
        if self._state in (TapState.INITIAL, TapState.FIRST_CLICK):
            self._history.clear()
            self._last_tap_ms = 0
            self._state = TapState.INITIAL
        else:
            self._state = TapState.DONE
        logger.debug("timeout -> %s", self._state.value)

    def set_meter(self, meter: Union[Meter, int]) -> None:
        new = as_meter(meter)
        with self._lock:
            old = self._meter
            if new == old:
                return
            self._history.rescale(int(old), int(new))
            self._meter = new
            logger.debug("meter %d -> %d", int(old), int(new))
        self._notify("set_meter")

    def set_method(self, method: Union[CountMethod, str]) -> None:
        new = as_method(method)
        with self._lock:
            if new == self._method:
                return
            if new == CountMethod.BEAT:
                self._history.rescale(int(self._meter), 1)
            else:
                self._history.rescale(1, int(self._meter))
            self._method = new
            logger.debug("method -> %s", new.value)
        self._notify("set_method")

    # Read accessors
    @property
    def state(self) -> TapState:
        return self._state

    @property
    def meter(self) -> Meter:
        return self._meter

    @property
    def method(self) -> CountMethod:
        return self._method

    @property
    def effective_method(self) -> CountMethod:
        return effective_method(self._meter, self._method)

    @property
    def show_measure_controls(self) -> bool:
        return self._meter != Meter.BEAT

    @property
    def intervals(self) -> List[int]:
        with self._lock:
            return self._history.to_list()

    @property
    def last_tap_ms(self) -> int:
        return self._last_tap_ms

    @property
    def timer_pending(self) -> bool:
        return self._timer.pending

    @property
    def max_interval_history(self) -> int:
        return self._history.maxlen

    @property
    def inactivity_wait_ms(self) -> int:
        return self._timer.wait_ms

    @property
    def cpm(self) -> float:
        with self._lock:
            return self._history.cpm()

    @property
    def bpm(self) -> float:
        with self._lock:
            cpm = self._history.cpm()
            if self.effective_method == CountMethod.BEAT:
                return cpm
            return cpm * int(self._meter)

    @property
    def mpm(self) -> float:
        with self._lock:
            cpm = self._history.cpm()
            if self.effective_method == CountMethod.BEAT:
                return cpm / int(self._meter)
            return cpm

    @property
    def status_label(self) -> str:
        with self._lock:
            return status_label(self._state, self._meter, self._method)

    def snapshot(self) -> TempoSnapshot:
        with self._lock:
            return TempoSnapshot(
                state=self._state,
                meter=self._meter,
                method=self._method,
                effective_method=self.effective_method,
                cpm=self.cpm,
                bpm=self.bpm,
                mpm=self.mpm,
                status_label=self.status_label,
                show_measure_controls=self.show_measure_controls,
                intervals=tuple(self._history.to_list()),
            )
