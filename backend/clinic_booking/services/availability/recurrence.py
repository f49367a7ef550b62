# backend/clinic_booking/services/availability/recurrence.py
"""
Recurring shift expansion.

A template shift carries an RRULE ("FREQ=WEEKLY;BYDAY=MO,WE") anchored
at its own start. Occurrences are generated in clinic-local wall-clock
time, so a 09:00 shift stays at 09:00 across DST changes, and each one
becomes a concrete Shift with the template's id and duration.

Exception rows (parent_shift_id + exception_date) replace the parent's
occurrence on that local date; the exception row is a concrete shift
in its own right and is kept when active.
"""

import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timezone, tzinfo

from dateutil.rrule import rrulestr

from .domain import Shift
from .intervals import TimeInterval, overlaps

logger = logging.getLogger(__name__)


def expand_recurring_shifts(
    shifts: Iterable[Shift],
    range_start: datetime,
    range_end: datetime,
    tz: tzinfo = timezone.utc,
) -> list[Shift]:
    """
    Turn templates + concrete rows into concrete instances intersecting
    [range_start, range_end).
    """
    shifts = list(shifts)
    window = TimeInterval(range_start, range_end)

    exceptions = {
        (s.parent_shift_id, s.exception_date)
        for s in shifts
        if s.parent_shift_id is not None and s.exception_date is not None
    }

    expanded: list[Shift] = []
    for shift in shifts:
        if shift.is_recurring and shift.recurrence_rule:
            expanded.extend(_expand_one(shift, window, tz, exceptions))
        elif overlaps(shift.interval, window):
            expanded.append(shift)
    return expanded


def _expand_one(
    shift: Shift,
    window: TimeInterval,
    tz: tzinfo,
    exceptions: set,
) -> list[Shift]:
    duration = shift.end_time - shift.start_time
    local_start = shift.start_time.astimezone(tz)

    rule_text = shift.recurrence_rule.strip()
    if rule_text.upper().startswith("RRULE:"):
        rule_text = rule_text[len("RRULE:"):]

    try:
        rule = rrulestr(rule_text, dtstart=local_start)
        # Occurrences starting up to one duration early can still reach into the window
        occurrences = rule.between(window.start - duration, window.end, inc=True)
    except (ValueError, TypeError, KeyError) as e:
        logger.warning(
            "Invalid recurrence rule %r on shift %s: %s", shift.recurrence_rule, shift.id, e
        )
        single = replace(shift, is_recurring=False, recurrence_rule=None)
        return [single] if overlaps(single.interval, window) else []

    instances = []
    for occurrence in occurrences:
        if (shift.id, occurrence.date()) in exceptions:
            continue
        start = occurrence.astimezone(timezone.utc)
        instance = replace(
            shift,
            start_time=start,
            end_time=start + duration,
            is_recurring=False,
            recurrence_rule=None,
        )
        if overlaps(instance.interval, window):
            instances.append(instance)
    return instances
