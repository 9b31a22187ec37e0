"""Core scheduling and maintenance logic."""

from .clock import Clock, SystemClock, FixedClock
from .decision import decide, latest_checkpoint
from .schedule import next_fire_time, is_creation_due
from .timestamps import normalize_timestamp, try_normalize_timestamp

__all__ = [
    "Clock",
    "SystemClock",
    "FixedClock",
    "decide",
    "latest_checkpoint",
    "next_fire_time",
    "is_creation_due",
    "normalize_timestamp",
    "try_normalize_timestamp",
]
