# backend/clinic_booking/services/availability/heatmap.py
"""
Day-level slot counts for calendar rendering.
"""

from collections.abc import Mapping, Sequence
from datetime import date, timedelta

from .domain import DayHeatmapEntry, Slot


def date_key(day: date) -> str:
    return day.isoformat()


def iter_days(date_start: date, date_end: date) -> list[date]:
    """
    Get list of dates in range [date_start, date_end].

    Args:
        date_start: Start date (inclusive)
        date_end: End date (inclusive)

    Returns:
        List of dates, empty when date_start > date_end
    """
    days = []
    current = date_start
    while current <= date_end:
        days.append(current)
        current += timedelta(days=1)
    return days


def summarize_day_heatmap(
    days: Sequence[date],
    per_day_slots: Mapping[str, Sequence[Slot]],
) -> list[DayHeatmapEntry]:
    """One entry per input day, in input order; missing days count as 0."""
    return [
        DayHeatmapEntry(
            date=date_key(day),
            available_slots=len(per_day_slots.get(date_key(day), ())),
        )
        for day in days
    ]
