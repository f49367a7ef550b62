# backend/clinic_booking/services/availability/timezones.py
"""
Instant / wall-clock conversions.

Breaks are authored in local wall-clock time while slots operate on
absolute instants. The projection lives behind WallClockProjector so the
orchestrator can be handed a fixed zone instead of the process locale.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo


def parse_instant(value) -> datetime:
    """Parse a stored ISO-8601 instant. Naive values are taken as UTC."""
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_utc_iso(moment: datetime) -> str:
    """Canonical storage / wire form: "2026-10-20T09:00:00+00:00"."""
    return moment.astimezone(timezone.utc).isoformat()


def parse_wall_time(value) -> time:
    """Parse "HH:MM" or "HH:MM:SS"."""
    if isinstance(value, time):
        return value
    parts = str(value).strip().split(":")
    hour = int(parts[0])
    minute = int(parts[1]) if len(parts) > 1 else 0
    second = int(float(parts[2])) if len(parts) > 2 else 0
    return time(hour, minute, second)


def parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


class WallClockProjector:
    """Projects (calendar date, wall-clock time) in a named zone onto instants."""

    def __init__(self, tz_name: str = "UTC"):
        self.tz_name = tz_name
        self.tz: tzinfo = timezone.utc if tz_name.upper() == "UTC" else ZoneInfo(tz_name)

    def project(self, day: date, wall_time: time) -> datetime:
        return datetime.combine(day, wall_time, tzinfo=self.tz)

    def day_bounds(self, day: date) -> tuple[datetime, datetime]:
        """[local midnight, next local midnight) as instants."""
        return (
            self.project(day, time.min),
            self.project(day + timedelta(days=1), time.min),
        )

    def local_date(self, moment: datetime) -> date:
        return moment.astimezone(self.tz).date()

    def __repr__(self) -> str:
        return f"WallClockProjector({self.tz_name!r})"
