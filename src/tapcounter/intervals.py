"""Inter-tap interval history and tempo derivation.

Intervals are kept in integer milliseconds. Rescaling between meters uses
truncating integer division, so an interval that is not a multiple of the
old meter value loses its remainder; repeated meter changes can drift the
estimate by a few milliseconds per interval.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, Iterator, List

import numpy as np

MAX_INTERVAL_HISTORY = 10


def clicks_per_minute(intervals: Iterable[int]) -> float:
    """Return 60000 / mean(intervals), or 0.0 when there is nothing to average."""
    x = np.fromiter(intervals, dtype=np.float64)
    if x.size == 0:
        return 0.0
    avg = float(x.mean())
    if avg <= 0.0:
        return 0.0
    return 60_000.0 / avg


def rescale_intervals(intervals: Iterable[int], old_value: int, new_value: int) -> List[int]:
    """Convert intervals counted in ``old_value`` ticks to ``new_value`` ticks."""
    return [(int(i) // int(old_value)) * int(new_value) for i in intervals]


class IntervalHistory:
    """Bounded FIFO of inter-tap gaps, most recent last."""

    def __init__(self, maxlen: int = MAX_INTERVAL_HISTORY) -> None:
        if maxlen < 1:
            raise ValueError("maxlen must be >= 1")
        self._items: Deque[int] = deque(maxlen=maxlen)

    @property
    def maxlen(self) -> int:
        return int(self._items.maxlen)  # type: ignore[arg-type]

    def append(self, interval_ms: int) -> None:
        # deque(maxlen) evicts the oldest entry
        self._items.append(int(interval_ms))

    def clear(self) -> None:
        self._items.clear()

    def rescale(self, old_value: int, new_value: int) -> None:
        if not self._items:
            return
        scaled = rescale_intervals(self._items, old_value, new_value)
        self._items.clear()
        self._items.extend(scaled)

    def cpm(self) -> float:
        return clicks_per_minute(self._items)

    def to_list(self) -> List[int]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._items))
