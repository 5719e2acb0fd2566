"""Single-shot cancellable inactivity timer.

Arming always releases the previously armed timer first, so at most one
callback is pending per owner. Each arm gets a new generation; a timer
thread that wakes up after being superseded finds a stale generation under
the shared lock and does nothing.

``callback`` runs while the shared lock is held; ``after`` runs once the
lock is released.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)

INACTIVITY_WAIT_MS = 5000


class TimerHandle(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


# Same call shape as threading.Timer(interval_seconds, function)
TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def thread_timer(interval_s: float, fn: Callable[[], None]) -> TimerHandle:
    t = threading.Timer(interval_s, fn)
    t.daemon = True
    return t


class InactivityTimer:
    def __init__(
        self,
        wait_ms: int,
        callback: Callable[[], None],
        after: Optional[Callable[[], None]] = None,
        lock: Optional[threading.RLock] = None,
        factory: Optional[TimerFactory] = None,
    ) -> None:
        if wait_ms <= 0:
            raise ValueError("wait_ms must be positive")
        self.wait_ms = int(wait_ms)
        self._callback = callback
        self._after = after
        self._lock = lock if lock is not None else threading.RLock()
        self._factory = factory or thread_timer
        self._handle: Optional[TimerHandle] = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._handle is not None

    def arm(self) -> None:
        """Release any pending timer and start a fresh countdown."""
        with self._lock:
            self._release()
            self._generation += 1
            gen = self._generation
            handle = self._factory(self.wait_ms / 1000.0, lambda: self._fire(gen))
            self._handle = handle
            handle.start()

    def cancel(self) -> None:
        with self._lock:
            self._release()
            self._generation += 1

    def _release(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._handle is None:
                logger.debug("superseded timer %d ignored", generation)
                return
            self._handle = None
            self._callback()
        if self._after is not None:
            self._after()
