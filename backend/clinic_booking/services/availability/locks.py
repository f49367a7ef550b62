# backend/clinic_booking/services/availability/locks.py
"""
Lock-aware filtering of a response.

Locks never reach the cache: the raw slot list is cached and this filter
runs per request, so an expired lock frees its slot on the next request
without recomputing shifts or bookings.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime

from .domain import Lock, Slot
from .intervals import overlaps


def active_locks(locks: Iterable[Lock], now: datetime) -> list[Lock]:
    """Drop locks whose expires_at is not after now."""
    return [lock for lock in locks if lock.is_active(now)]


def filter_by_locks(slots: Sequence[Slot], locks: Sequence[Lock]) -> list[Slot]:
    """
    Remove slots overlapping an active lock.

    A lock bound to a shift only hides slots of that shift; a lock
    without a shift hides every overlapping slot.
    """
    if not locks:
        return list(slots)

    visible = []
    for slot in slots:
        blocked = any(
            (lock.shift_id is None or lock.shift_id == slot.shift_id)
            and overlaps(slot.interval, lock.interval)
            for lock in locks
        )
        if not blocked:
            visible.append(slot)
    return visible
