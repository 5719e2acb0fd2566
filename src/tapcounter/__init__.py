"""Tap tempo counter: estimate BPM/MPM from taps with meter-aware rescaling."""

from .options import CountMethod, Meter, TapState
from .tracker import TempoSnapshot, TempoTracker, TrackerConfig

__all__ = [
    "app",
    "intervals",
    "options",
    "service",
    "timer",
    "tracker",
    "CountMethod",
    "Meter",
    "TapState",
    "TempoSnapshot",
    "TempoTracker",
    "TrackerConfig",
]

__version__ = "0.1.0"
