"""Closed enumerations for tap state, meter and counting method.

Also holds the static option lists a picker can bind to.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Tuple, Union


class TapState(str, Enum):
    INITIAL = "initial"  # no data, or reset before a second tap
    FIRST_CLICK = "first_click"
    COUNTING = "counting"
    DONE = "done"  # paused after counting, estimate kept


class Meter(IntEnum):
    """Beats per measure. BEAT means no meter, just count taps."""

    BEAT = 1
    DOUBLE = 2
    WALTZ = 3
    COMMON = 4


class CountMethod(str, Enum):
    BEAT = "beat"
    MEASURE = "measure"


@dataclass(frozen=True)
class MeterOption:
    meter: Meter
    name: str


@dataclass(frozen=True)
class CountOption:
    method: CountMethod
    name: str


METER_OPTIONS: Tuple[MeterOption, ...] = (
    MeterOption(Meter.BEAT, "Beat"),
    MeterOption(Meter.DOUBLE, "2/4"),
    MeterOption(Meter.WALTZ, "3/4"),
    MeterOption(Meter.COMMON, "4/4"),
)

METHOD_OPTIONS: Tuple[CountOption, ...] = (
    CountOption(CountMethod.BEAT, "Beat"),
    CountOption(CountMethod.MEASURE, "Measure"),
)

DEFAULT_METER = Meter.COMMON
DEFAULT_METHOD = CountMethod.MEASURE


def as_meter(value: Union[Meter, int]) -> Meter:
    """Coerce an int (beats per measure) to Meter; raises ValueError otherwise."""
    if isinstance(value, bool):
        raise ValueError(f"invalid meter: {value!r}")
    return Meter(value)


def as_method(value: Union[CountMethod, str]) -> CountMethod:
    return CountMethod(value)


def effective_method(meter: Meter, method: CountMethod) -> CountMethod:
    # Counting by measure is meaningless without a meter.
    return CountMethod.BEAT if meter == Meter.BEAT else method


def meter_option(name: str) -> MeterOption:
    for opt in METER_OPTIONS:
        if opt.name == name:
            return opt
    raise ValueError(f"unknown meter option: {name!r}")


def method_option(name: str) -> CountOption:
    for opt in METHOD_OPTIONS:
        if opt.name == name:
            return opt
    raise ValueError(f"unknown method option: {name!r}")
