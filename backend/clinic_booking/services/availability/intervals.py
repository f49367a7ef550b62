# backend/clinic_booking/services/availability/intervals.py
"""
Half-open time interval primitives.

Every occupied span (booking, break, lock, blackout) is reduced to a
[start, end) interval of timezone-aware instants. Intervals that only
touch at a boundary do not overlap.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class TimeInterval:
    start: datetime  # inclusive
    end: datetime    # exclusive


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    """True iff a and b share at least one instant."""
    return a.start < b.end and b.start < a.end


def is_fully_contained(inner: TimeInterval, outer: TimeInterval) -> bool:
    return inner.start >= outer.start and inner.end <= outer.end


def overlaps_any(interval: TimeInterval, others) -> bool:
    return any(overlaps(interval, other) for other in others)


def add_minutes(moment: datetime, minutes: int) -> datetime:
    return moment + timedelta(minutes=minutes)
