# backend/clinic_booking/services/availability/repository.py
"""
Storage reads consumed by the availability orchestrator.

Every method converts rows into domain dataclasses and re-raises
SQLAlchemy failures as StorageError so the caller can answer 5xx without
caching anything. Instants are stored as ISO-8601 UTC text, which keeps
range filters plain string comparisons.
"""

import functools
import logging
from collections import defaultdict
from collections.abc import Collection
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models.generated import (
    BlackoutPeriods,
    BookingContinuations,
    BookingLocks,
    Bookings,
    Services,
    ShiftBreaks,
    Shifts,
    SitewideBreaks,
    StaffRecurringBreaks,
    StaffServices,
    t_shift_services,
)
from .domain import (
    BlackoutPeriod,
    Lock,
    ServiceRecord,
    Shift,
    ShiftBreak,
    SitewideBreak,
    StaffRecurringBreak,
)
from .errors import StorageError
from .intervals import TimeInterval
from .timezones import parse_date, parse_instant, parse_wall_time, to_utc_iso

logger = logging.getLogger(__name__)


def _storage_call(what: str):
    """Wrap a repository read: SQLAlchemyError → StorageError."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except SQLAlchemyError as e:
                logger.exception("Failed to load %s", what)
                raise StorageError(f"Failed to load {what}: {e}") from e
        return wrapper
    return decorator


class AvailabilityRepository:
    """Read-side access to services, shifts and everything that occupies them."""

    def __init__(self, db: Session):
        self.db = db

    # ── Service rules ────────────────────────────────────────────────────

    @_storage_call("service")
    def get_service(self, service_id: int) -> Optional[ServiceRecord]:
        row = self.db.query(Services).filter(
            Services.id == service_id,
            Services.is_active == 1,
        ).first()
        if row is None:
            return None
        return ServiceRecord(
            id=row.id,
            duration_minutes=int(row.duration or 0),
            buffer_minutes=int(row.buffer_time or 0),
            lead_time_minutes=int(row.lead_time or 0),
            allows_twins=bool(row.allows_twins),
            twin_duration_minutes=row.twin_duration_minutes,
        )

    @_storage_call("continuation")
    def get_continuation_duration(self, token: str, service_id: int) -> Optional[int]:
        """Repeat-type duration of a continuation token, if it targets service_id."""
        row = (
            self.db.query(BookingContinuations)
            .filter(BookingContinuations.token == token)
            .first()
        )
        if row is None or row.repeat_type is None:
            return None
        if row.repeat_type.service_id != service_id:
            return None
        return row.repeat_type.duration_minutes

    # ── Qualification ────────────────────────────────────────────────────

    @_storage_call("shift services")
    def get_allowed_shift_ids(self, service_id: int) -> set[int]:
        rows = self.db.query(t_shift_services.c.shift_id).filter(
            t_shift_services.c.service_id == service_id
        ).all()
        return {r.shift_id for r in rows}

    @_storage_call("staff qualifications")
    def get_twin_qualified_staff_ids(self, service_id: int) -> set[int]:
        rows = self.db.query(StaffServices.staff_id).filter(
            StaffServices.service_id == service_id,
            StaffServices.is_twin_qualified == 1,
        ).all()
        return {r.staff_id for r in rows}

    # ── Shifts ───────────────────────────────────────────────────────────

    @_storage_call("shifts")
    def get_shifts(
        self,
        location_id: int,
        shift_ids: Collection[int],
        window: TimeInterval,
        staff_ids: Optional[Collection[int]] = None,
    ) -> list[Shift]:
        """
        Shifts relevant to the window:
        - active concrete shifts intersecting it
        - recurring templates that started before it ends
        - exception rows (active or not) of those templates around it
        """
        if not shift_ids:
            return []

        start_iso = to_utc_iso(window.start)
        end_iso = to_utc_iso(window.end)

        query = self.db.query(Shifts).filter(
            Shifts.location_id == location_id,
            or_(Shifts.id.in_(shift_ids), Shifts.parent_shift_id.in_(shift_ids)),
            Shifts.start_time < end_iso,
        )
        if staff_ids is not None:
            query = query.filter(Shifts.staff_id.in_(staff_ids))

        # Exception dates are local; pad a day each side
        first_day = (window.start - timedelta(days=1)).date().isoformat()
        last_day = (window.end + timedelta(days=1)).date().isoformat()

        shifts = []
        for row in query.all():
            recurring = bool(row.is_recurring) and bool(row.recurrence_rule)
            is_exception = row.parent_shift_id is not None and row.exception_date
            if recurring:
                if not row.is_active:
                    continue
            elif is_exception:
                if not (first_day <= row.exception_date[:10] <= last_day):
                    continue
            elif not row.is_active or row.end_time <= start_iso:
                continue
            shifts.append(_to_shift(row))
        return shifts

    # ── Occupancy ────────────────────────────────────────────────────────

    @_storage_call("blackouts")
    def get_blackouts(self, location_id: int, window: TimeInterval) -> list[BlackoutPeriod]:
        rows = self.db.query(BlackoutPeriods).filter(
            or_(BlackoutPeriods.location_id == location_id, BlackoutPeriods.location_id.is_(None)),
            BlackoutPeriods.is_active == 1,
            BlackoutPeriods.start_date < to_utc_iso(window.end),
            BlackoutPeriods.end_date > to_utc_iso(window.start),
        ).all()
        return [
            BlackoutPeriod(
                location_id=r.location_id,
                start_date=parse_instant(r.start_date),
                end_date=parse_instant(r.end_date),
            )
            for r in rows
        ]

    @_storage_call("bookings")
    def get_bookings(
        self,
        shift_ids: Collection[int],
        window: TimeInterval,
        exclude_booking_id: Optional[int] = None,
    ) -> dict[int, list[TimeInterval]]:
        """Non-cancelled bookings intersecting the window, keyed by shift id."""
        if not shift_ids:
            return {}
        query = self.db.query(Bookings).filter(
            Bookings.shift_id.in_(shift_ids),
            Bookings.status != "cancelled",
            Bookings.start_time < to_utc_iso(window.end),
            Bookings.end_time > to_utc_iso(window.start),
        )
        if exclude_booking_id is not None:
            query = query.filter(Bookings.id != exclude_booking_id)

        by_shift: dict[int, list[TimeInterval]] = defaultdict(list)
        for r in query.all():
            by_shift[r.shift_id].append(
                TimeInterval(parse_instant(r.start_time), parse_instant(r.end_time))
            )
        return dict(by_shift)

    @_storage_call("locks")
    def get_active_locks(
        self,
        shift_ids: Collection[int],
        window: TimeInterval,
        now: datetime,
    ) -> list[Lock]:
        if not shift_ids:
            return []
        rows = self.db.query(BookingLocks).filter(
            BookingLocks.shift_id.in_(shift_ids),
            BookingLocks.expires_at > to_utc_iso(now),
            BookingLocks.start_time < to_utc_iso(window.end),
            BookingLocks.end_time > to_utc_iso(window.start),
        ).all()
        return [
            Lock(
                shift_id=r.shift_id,
                start_time=parse_instant(r.start_time),
                end_time=parse_instant(r.end_time),
                expires_at=parse_instant(r.expires_at),
                session_token=r.session_token,
            )
            for r in rows
        ]

    # ── Breaks ───────────────────────────────────────────────────────────

    @_storage_call("shift breaks")
    def get_shift_breaks(self, shift_ids: Collection[int], window: TimeInterval) -> list[ShiftBreak]:
        if not shift_ids:
            return []
        rows = self.db.query(ShiftBreaks).filter(
            ShiftBreaks.shift_id.in_(shift_ids),
            ShiftBreaks.start_time < to_utc_iso(window.end),
            ShiftBreaks.end_time > to_utc_iso(window.start),
        ).all()
        return [
            ShiftBreak(
                shift_id=r.shift_id,
                start_time=parse_instant(r.start_time),
                end_time=parse_instant(r.end_time),
                sitewide_break_id=r.sitewide_break_id,
            )
            for r in rows
        ]

    @_storage_call("sitewide breaks")
    def get_sitewide_breaks(self, first_day: date, last_day: date) -> list[SitewideBreak]:
        rows = self.db.query(SitewideBreaks).filter(
            SitewideBreaks.is_active == 1,
            or_(SitewideBreaks.start_date.is_(None), SitewideBreaks.start_date <= last_day.isoformat()),
            or_(SitewideBreaks.end_date.is_(None), SitewideBreaks.end_date >= first_day.isoformat()),
        ).all()
        return [
            SitewideBreak(
                id=r.id,
                start_time=parse_wall_time(r.start_time),
                end_time=parse_wall_time(r.end_time),
                start_date=parse_date(r.start_date) if r.start_date else None,
                end_date=parse_date(r.end_date) if r.end_date else None,
                is_recurring=bool(r.is_recurring),
                is_active=bool(r.is_active),
            )
            for r in rows
        ]

    @_storage_call("staff breaks")
    def get_staff_breaks(self, staff_ids: Collection[int]) -> list[StaffRecurringBreak]:
        if not staff_ids:
            return []
        rows = self.db.query(StaffRecurringBreaks).filter(
            StaffRecurringBreaks.staff_id.in_(staff_ids)
        ).all()
        return [
            StaffRecurringBreak(
                staff_id=r.staff_id,
                start_time=parse_wall_time(r.start_time),
                end_time=parse_wall_time(r.end_time),
                day_of_week=r.day_of_week,
            )
            for r in rows
        ]


def _to_shift(row) -> Shift:
    return Shift(
        id=row.id,
        staff_id=row.staff_id,
        location_id=row.location_id,
        start_time=parse_instant(row.start_time),
        end_time=parse_instant(row.end_time),
        is_active=bool(row.is_active),
        is_recurring=bool(row.is_recurring),
        recurrence_rule=row.recurrence_rule,
        parent_shift_id=row.parent_shift_id,
        exception_date=parse_date(row.exception_date) if row.exception_date else None,
    )
