# backend/clinic_booking/services/availability/generator.py
"""
Per-day slot generation.

Walks every shift window of the day in fixed steps and keeps the
candidates that survive:
✓ lead time (start >= now + lead_time_minutes)
✓ blackout periods of the shift's location (or global)
✓ breaks attached to the shift
✓ existing bookings of the shift, with the buffer appended after the slot

Does NOT handle:
✗ Locks (filtered per response, see locks.py)
✗ Twin / continuation duration overrides (resolved by the caller)
✗ Recurring shift templates (expanded by the caller)
"""

from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, time, timedelta, timezone, tzinfo

from .config import get_availability_config
from .domain import BlackoutPeriod, ServiceRules, Shift, Slot
from .intervals import TimeInterval, add_minutes, overlaps_any


def generate_slots_for_day(
    target_date: date,
    service_id: int,
    location_id: int,
    shifts: Iterable[Shift],
    service_rules: ServiceRules,
    blackouts: Sequence[BlackoutPeriod],
    existing_bookings: Mapping[int, Sequence[TimeInterval]],
    breaks: Mapping[int, Sequence[TimeInterval]],
    *,
    now: datetime,
    step_minutes: int | None = None,
    tz: tzinfo = timezone.utc,
) -> list[Slot]:
    """
    Generate bookable slots for one service on one day.

    Args:
        target_date: Calendar day, interpreted in `tz`
        existing_bookings: Occupied intervals keyed by shift id
        breaks: Break intervals keyed by shift id
        now: Reference instant for the lead-time rule (timezone-aware)
        step_minutes: Distance between candidate starts (config default)

    Returns:
        Slots ordered by shift, then start time. Empty list = no slots.
    """
    if target_date is None or service_rules is None:
        raise ValueError("target_date and service_rules are required")
    if now is None or now.tzinfo is None:
        raise ValueError("now must be a timezone-aware datetime")

    duration = service_rules.duration_minutes
    if duration <= 0:
        return []

    step = step_minutes if step_minutes is not None else get_availability_config().slot_step_minutes
    if step <= 0:
        raise ValueError(f"step_minutes must be positive, got {step}")

    day_start = datetime.combine(target_date, time.min, tzinfo=tz)
    day_end = datetime.combine(target_date + timedelta(days=1), time.min, tzinfo=tz)
    min_start = add_minutes(now, service_rules.lead_time_minutes)
    buffer = service_rules.buffer_minutes

    location_blackouts = [
        b.interval for b in blackouts if b.applies_to(location_id)
    ]

    slots: list[Slot] = []
    for shift in shifts:
        if not _serves(shift, service_id, location_id):
            continue

        window_start = max(shift.start_time, day_start)
        window_end = min(shift.end_time, day_end)
        if window_end <= window_start:
            continue

        shift_breaks = breaks.get(shift.id, ())
        shift_bookings = existing_bookings.get(shift.id, ())

        start = window_start
        while add_minutes(start, duration) <= window_end:
            end = add_minutes(start, duration)
            candidate = TimeInterval(start, end)

            if (
                start >= min_start
                and not overlaps_any(candidate, location_blackouts)
                and not overlaps_any(candidate, shift_breaks)
                and not overlaps_any(TimeInterval(start, add_minutes(end, buffer)), shift_bookings)
            ):
                slots.append(Slot(
                    shift_id=shift.id,
                    staff_id=shift.staff_id,
                    start_time=start.astimezone(timezone.utc),
                    end_time=end.astimezone(timezone.utc),
                ))

            start = add_minutes(start, step)

    return slots


def _serves(shift: Shift, service_id: int, location_id: int) -> bool:
    if not shift.is_active:
        return False
    if shift.location_id != location_id:
        return False
    if shift.end_time <= shift.start_time:
        return False
    # Empty qualification set = caller already filtered by service
    if shift.qualified_service_ids and service_id not in shift.qualified_service_ids:
        return False
    return True
