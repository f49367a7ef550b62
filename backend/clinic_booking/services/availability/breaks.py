# backend/clinic_booking/services/availability/breaks.py
"""
Break assembly: every break source reduced to intervals keyed by shift id.

Sources:
- shift_breaks: absolute intervals bound to one shift
- sitewide_breaks: local wall-clock windows projected onto each local
  day a shift spans, unless the shift has its own break referencing the
  same sitewide break (an override)
- staff_recurring_breaks: local wall-clock windows on a weekday (or
  every day) applied to all shifts of that staff member
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, timedelta

from .domain import Shift, ShiftBreak, SitewideBreak, StaffRecurringBreak
from .heatmap import iter_days
from .intervals import TimeInterval, overlaps
from .timezones import WallClockProjector


def sitewide_break_applies(brk: SitewideBreak, day: date) -> bool:
    if not brk.is_active:
        return False
    if brk.is_recurring:
        if brk.start_date and day < brk.start_date:
            return False
        if brk.end_date and day > brk.end_date:
            return False
        return True
    # One-off break: bounded by its dates, or just its start date
    if brk.start_date is None:
        return False
    last_day = brk.end_date or brk.start_date
    return brk.start_date <= day <= last_day


def project_wall_window(
    day: date,
    start,
    end,
    projector: WallClockProjector,
) -> TimeInterval:
    """Project a local [start, end) window; an end at or before start rolls into the next day."""
    start_at = projector.project(day, start)
    end_at = projector.project(day, end)
    if end_at <= start_at:
        end_at = projector.project(day + timedelta(days=1), end)
    return TimeInterval(start_at, end_at)


def project_sitewide_breaks(
    shift: Shift,
    sitewide_breaks: Sequence[SitewideBreak],
    overridden_ids: Iterable[int],
    projector: WallClockProjector,
) -> list[TimeInterval]:
    overridden = set(overridden_ids)
    first_day = projector.local_date(shift.start_time)
    last_day = projector.local_date(shift.end_time)

    projected = []
    for day in iter_days(first_day, last_day):
        for brk in sitewide_breaks:
            if brk.id in overridden or not sitewide_break_applies(brk, day):
                continue
            window = project_wall_window(day, brk.start_time, brk.end_time, projector)
            if overlaps(window, shift.interval):
                projected.append(window)
    return projected


def js_weekday(day: date) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return (day.weekday() + 1) % 7


def project_staff_breaks(
    target_date: date,
    staff_breaks: Sequence[StaffRecurringBreak],
    projector: WallClockProjector,
) -> dict[int, list[TimeInterval]]:
    weekday = js_weekday(target_date)
    by_staff: dict[int, list[TimeInterval]] = defaultdict(list)
    for brk in staff_breaks:
        if brk.day_of_week is not None and brk.day_of_week != weekday:
            continue
        by_staff[brk.staff_id].append(
            project_wall_window(target_date, brk.start_time, brk.end_time, projector)
        )
    return by_staff


def assemble_breaks(
    target_date: date,
    shifts: Sequence[Shift],
    shift_breaks: Sequence[ShiftBreak],
    sitewide_breaks: Sequence[SitewideBreak],
    staff_breaks: Sequence[StaffRecurringBreak],
    projector: WallClockProjector,
) -> dict[int, list[TimeInterval]]:
    """All break intervals relevant to target_date, keyed by shift id."""
    own: dict[int, list[ShiftBreak]] = defaultdict(list)
    for brk in shift_breaks:
        own[brk.shift_id].append(brk)

    staff_windows = project_staff_breaks(target_date, staff_breaks, projector)

    result: dict[int, list[TimeInterval]] = defaultdict(list)
    for shift in shifts:
        intervals = result[shift.id]
        for brk in own.get(shift.id, ()):
            intervals.append(TimeInterval(brk.start_time, brk.end_time))
        intervals.extend(project_sitewide_breaks(
            shift,
            sitewide_breaks,
            (b.sitewide_break_id for b in own.get(shift.id, ()) if b.sitewide_break_id is not None),
            projector,
        ))
        intervals.extend(staff_windows.get(shift.staff_id, ()))
    return dict(result)

