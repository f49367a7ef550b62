# backend/clinic_booking/services/availability/domain.py
"""
Typed inputs and outputs of the availability engine.

Rows loaded from storage are converted into these frozen dataclasses
before any slot arithmetic happens. All instants are timezone-aware.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional

from .intervals import TimeInterval
from .timezones import parse_instant, to_utc_iso


@dataclass(frozen=True)
class ServiceRules:
    duration_minutes: int
    buffer_minutes: int = 0
    lead_time_minutes: int = 0


@dataclass(frozen=True)
class ServiceRecord:
    """Service row as consumed by rule resolution."""
    id: int
    duration_minutes: int
    buffer_minutes: int = 0
    lead_time_minutes: int = 0
    allows_twins: bool = False
    twin_duration_minutes: Optional[int] = None

    def base_rules(self) -> ServiceRules:
        return ServiceRules(
            duration_minutes=self.duration_minutes,
            buffer_minutes=self.buffer_minutes,
            lead_time_minutes=self.lead_time_minutes,
        )


@dataclass(frozen=True)
class Shift:
    id: int
    staff_id: int
    location_id: int
    start_time: datetime
    end_time: datetime
    is_active: bool = True
    qualified_service_ids: frozenset = field(default_factory=frozenset)

    # Recurrence metadata (templates only; expanded instances are concrete)
    is_recurring: bool = False
    recurrence_rule: Optional[str] = None
    parent_shift_id: Optional[int] = None
    exception_date: Optional[date] = None

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start_time, self.end_time)


@dataclass(frozen=True)
class BlackoutPeriod:
    start_date: datetime
    end_date: datetime
    location_id: Optional[int] = None  # None = every location

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start_date, self.end_date)

    def applies_to(self, location_id: int) -> bool:
        return self.location_id is None or self.location_id == location_id


@dataclass(frozen=True)
class ShiftBreak:
    shift_id: int
    start_time: datetime
    end_time: datetime
    sitewide_break_id: Optional[int] = None


@dataclass(frozen=True)
class SitewideBreak:
    id: int
    start_time: time  # local wall clock
    end_time: time
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_recurring: bool = True
    is_active: bool = True


@dataclass(frozen=True)
class StaffRecurringBreak:
    staff_id: int
    start_time: time  # local wall clock
    end_time: time
    day_of_week: Optional[int] = None  # 0 = Sunday .. 6 = Saturday


@dataclass(frozen=True)
class Lock:
    start_time: datetime
    end_time: datetime
    expires_at: datetime
    shift_id: Optional[int] = None
    session_token: Optional[str] = None

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start_time, self.end_time)

    def is_active(self, now: datetime) -> bool:
        return self.expires_at > now


@dataclass(frozen=True)
class Slot:
    shift_id: int
    staff_id: int
    start_time: datetime
    end_time: datetime

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start_time, self.end_time)

    def to_dict(self) -> dict:
        return {
            "shiftId": self.shift_id,
            "staffId": self.staff_id,
            "startTime": to_utc_iso(self.start_time),
            "endTime": to_utc_iso(self.end_time),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Slot":
        return cls(
            shift_id=data["shiftId"],
            staff_id=data["staffId"],
            start_time=parse_instant(data["startTime"]),
            end_time=parse_instant(data["endTime"]),
        )


@dataclass(frozen=True)
class DayHeatmapEntry:
    date: str  # YYYY-MM-DD
    available_slots: int

    def to_dict(self) -> dict:
        return {"date": self.date, "availableSlots": self.available_slots}

    @classmethod
    def from_dict(cls, data: dict) -> "DayHeatmapEntry":
        return cls(date=data["date"], available_slots=data["availableSlots"])
