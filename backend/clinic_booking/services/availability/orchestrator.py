# backend/clinic_booking/services/availability/orchestrator.py
"""
Availability requests: one day of slots, or a heatmap over a date range.

Flow per day:
  cache (raw slots) ─hit──────────────────────────────┐
        └─miss→ rules → qualified shifts → expansion   │
                → blackouts / bookings / breaks        │
                → generate_slots_for_day → cache raw ──┤
                                                       ▼
                                 active locks → filter_by_locks → response

Locks are fetched on every request and never written to a cache.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional

from .breaks import assemble_breaks
from .cache import AvailabilityCaches, make_day_slots_cache_key, make_heatmap_cache_key
from .config import AvailabilityConfig, get_availability_config
from .domain import (
    BlackoutPeriod,
    DayHeatmapEntry,
    Lock,
    ServiceRules,
    Shift,
    ShiftBreak,
    SitewideBreak,
    Slot,
    StaffRecurringBreak,
)
from .errors import BadRequestError, NotFoundError
from .generator import generate_slots_for_day
from .heatmap import date_key, iter_days, summarize_day_heatmap
from .intervals import TimeInterval
from .locks import active_locks, filter_by_locks
from .recurrence import expand_recurring_shifts
from .repository import AvailabilityRepository
from .timezones import WallClockProjector

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DayQuery:
    service_id: int
    location_id: int
    date: date
    staff_id: Optional[int] = None
    is_twin: bool = False
    continuation_token: Optional[str] = None
    exclude_booking_id: Optional[int] = None
    no_cache: bool = False

    @property
    def skip_cache(self) -> bool:
        # Rescheduling must see the freshest bookings minus the one being moved
        return self.no_cache or self.exclude_booking_id is not None


@dataclass(frozen=True)
class RangeQuery:
    service_id: int
    location_id: int
    start: date
    end: date
    staff_id: Optional[int] = None


@dataclass
class DayResult:
    slots: list[Slot]
    cached: bool = False
    skip_cache: bool = False


@dataclass
class HeatmapResult:
    days: list[DayHeatmapEntry]
    cached: bool = False


@dataclass
class _Context:
    """Resolved rules and shift scope for one request."""
    rules: ServiceRules
    allowed_shift_ids: set[int]
    staff_ids: Optional[set[int]]


@dataclass
class _Inputs:
    """Raw rows for a window, loaded once and reused for every day in it."""
    shifts: list[Shift] = field(default_factory=list)
    blackouts: list[BlackoutPeriod] = field(default_factory=list)
    bookings: dict[int, list[TimeInterval]] = field(default_factory=dict)
    shift_breaks: list[ShiftBreak] = field(default_factory=list)
    sitewide_breaks: list[SitewideBreak] = field(default_factory=list)
    staff_breaks: list[StaffRecurringBreak] = field(default_factory=list)


class AvailabilityService:
    """Answers day and range availability requests against storage and caches."""

    def __init__(
        self,
        repository: AvailabilityRepository,
        caches: AvailabilityCaches,
        projector: WallClockProjector,
        config: AvailabilityConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
        expand_shifts: Callable[..., list[Shift]] = expand_recurring_shifts,
    ):
        self.repository = repository
        self.caches = caches
        self.projector = projector
        self.config = config or get_availability_config()
        self.clock = clock
        self.expand_shifts = expand_shifts

    # ── Single day ───────────────────────────────────────────────────────

    def get_day_slots(self, query: DayQuery) -> DayResult:
        logger.info(
            "[availability] service=%s location=%s date=%s staff=%s twin=%s",
            query.service_id, query.location_id, query.date, query.staff_id, query.is_twin,
        )
        now = self.clock()
        window = self._day_window(query.date)
        skip_cache = query.skip_cache

        cache_key = None if skip_cache else make_day_slots_cache_key(
            query.service_id,
            query.location_id,
            date_key(query.date),
            staff_id=query.staff_id,
            is_twin=query.is_twin,
            continuation_token=query.continuation_token,
        )

        if cache_key is not None:
            cached = self.caches.day.get(cache_key)
            if cached is not None:
                logger.debug("[availability] cache hit %s", cache_key)
                raw = [Slot.from_dict(s) for s in cached["slots"]]
                locks = self._locks({s.shift_id for s in raw}, window, now)
                return DayResult(slots=filter_by_locks(raw, locks), cached=True)

        ctx = self._resolve_context(
            query.service_id,
            is_twin=query.is_twin,
            continuation_token=query.continuation_token,
            staff_id=query.staff_id,
        )
        if ctx is None:
            if cache_key is not None:
                self.caches.day.set(cache_key, {"slots": []})
            return DayResult(slots=[], skip_cache=skip_cache)

        inputs = self._load_inputs(
            query.location_id, ctx, window, query.date, query.date,
            exclude_booking_id=query.exclude_booking_id,
        )
        raw = self._generate(query.date, query.service_id, query.location_id, ctx.rules, inputs, now)
        logger.info("[availability] slots count (before locks) %d", len(raw))

        if cache_key is not None:
            self.caches.day.set(cache_key, {"slots": [s.to_dict() for s in raw]})

        locks = self._locks({s.id for s in inputs.shifts}, window, now)
        visible = filter_by_locks(raw, locks)
        logger.info("[availability] slots count (after locks) %d", len(visible))
        return DayResult(slots=visible, skip_cache=skip_cache)

    # ── Range / heatmap ──────────────────────────────────────────────────

    def get_heatmap(self, query: RangeQuery) -> HeatmapResult:
        if query.start > query.end:
            raise BadRequestError("Invalid range")
        days = iter_days(query.start, query.end)
        if len(days) > self.config.max_range_days:
            raise BadRequestError(f"Range cannot exceed {self.config.max_range_days} days")

        logger.info(
            "[availability/heatmap] service=%s location=%s start=%s end=%s staff=%s",
            query.service_id, query.location_id, query.start, query.end, query.staff_id,
        )
        now = self.clock()
        window = self._range_window(query.start, query.end)

        cache_key = make_heatmap_cache_key(
            query.service_id,
            query.location_id,
            date_key(query.start),
            date_key(query.end),
            staff_id=query.staff_id,
        )
        cached = self.caches.heatmap.get(cache_key)
        if cached is not None:
            cached_days = [DayHeatmapEntry.from_dict(d) for d in cached["days"]]
            if not cached_days:
                return HeatmapResult(days=[], cached=True)
            # Ids of the shifts that produced the cached slots, exception rows included
            shift_ids = set(cached.get("shiftIds", ()))
            if not self._locks(shift_ids, window, now):
                logger.debug("[availability/heatmap] cache hit %s", cache_key)
                return HeatmapResult(days=cached_days, cached=True)
            # Locks present: recount from the (cached) day slots below

        ctx = self._resolve_context(query.service_id, staff_id=query.staff_id)
        if ctx is None:
            self.caches.heatmap.set(cache_key, {"days": []})
            return HeatmapResult(days=[])

        inputs: Optional[_Inputs] = None
        raw_per_day: dict[str, list[Slot]] = {}
        for day in days:
            day_cache_key = make_day_slots_cache_key(
                query.service_id, query.location_id, date_key(day), staff_id=query.staff_id,
            )
            cached_day = self.caches.day.get(day_cache_key)
            if cached_day is not None:
                raw_per_day[date_key(day)] = [Slot.from_dict(s) for s in cached_day["slots"]]
                continue

            if inputs is None:
                inputs = self._load_inputs(query.location_id, ctx, window, query.start, query.end)
            slots = self._generate(day, query.service_id, query.location_id, ctx.rules, inputs, now)
            raw_per_day[date_key(day)] = slots
            self.caches.day.set(day_cache_key, {"slots": [s.to_dict() for s in slots]})

        raw_days = summarize_day_heatmap(days, raw_per_day)
        shift_ids = {s.shift_id for slots in raw_per_day.values() for s in slots}
        self.caches.heatmap.set(cache_key, {
            "days": [d.to_dict() for d in raw_days],
            "shiftIds": sorted(shift_ids),
        })

        locks = self._locks(shift_ids, window, now)
        visible_per_day = {
            key: filter_by_locks(slots, locks) for key, slots in raw_per_day.items()
        }
        result = summarize_day_heatmap(days, visible_per_day)
        logger.info(
            "[availability/heatmap] days computed total=%d with_slots=%d",
            len(result), sum(1 for d in result if d.available_slots > 0),
        )
        return HeatmapResult(days=result)

    # ── Helpers ──────────────────────────────────────────────────────────

    def _resolve_context(
        self,
        service_id: int,
        is_twin: bool = False,
        continuation_token: Optional[str] = None,
        staff_id: Optional[int] = None,
    ) -> Optional[_Context]:
        """
        Resolve effective service rules and the shift/staff scope.

        Returns None when the request can only yield an empty result
        (no duration, no qualified shifts, no twin-qualified staff).
        Raises NotFoundError for an unknown service.
        """
        service = self.repository.get_service(service_id)
        if service is None:
            raise NotFoundError("Service not found")

        rules = service.base_rules()

        if continuation_token:
            duration = self.repository.get_continuation_duration(continuation_token, service_id)
            if duration is not None:
                rules = ServiceRules(duration, rules.buffer_minutes, rules.lead_time_minutes)

        twin = False
        if is_twin:
            if service.allows_twins:
                twin = True
                # Buffer is not doubled: turnaround takes the same time
                duration = service.twin_duration_minutes or rules.duration_minutes * 2
                rules = ServiceRules(duration, rules.buffer_minutes, rules.lead_time_minutes)
            else:
                logger.warning(
                    "[availability] twin requested for service %s that does not allow twins", service_id
                )

        if rules.duration_minutes <= 0:
            logger.info("[availability] no duration for service %s", service_id)
            return None

        allowed = self.repository.get_allowed_shift_ids(service_id)
        if not allowed:
            logger.info("[availability] no shifts qualified for service %s", service_id)
            return None

        staff_ids: Optional[set[int]] = {staff_id} if staff_id is not None else None
        if twin:
            qualified = self.repository.get_twin_qualified_staff_ids(service_id)
            staff_ids = qualified if staff_ids is None else staff_ids & qualified
            if not staff_ids:
                logger.info("[availability] no twin-qualified staff for service %s", service_id)
                return None

        return _Context(rules=rules, allowed_shift_ids=allowed, staff_ids=staff_ids)

    def _load_inputs(
        self,
        location_id: int,
        ctx: _Context,
        window: TimeInterval,
        first_day: date,
        last_day: date,
        exclude_booking_id: Optional[int] = None,
    ) -> _Inputs:
        rows = self.repository.get_shifts(
            location_id, ctx.allowed_shift_ids, window, staff_ids=ctx.staff_ids,
        )
        shifts = self.expand_shifts(rows, window.start, window.end, self.projector.tz)
        if not shifts:
            return _Inputs()

        shift_ids = {s.id for s in shifts}
        return _Inputs(
            shifts=shifts,
            blackouts=self.repository.get_blackouts(location_id, window),
            bookings=self.repository.get_bookings(shift_ids, window, exclude_booking_id),
            shift_breaks=self.repository.get_shift_breaks(shift_ids, window),
            sitewide_breaks=self.repository.get_sitewide_breaks(first_day, last_day),
            staff_breaks=self.repository.get_staff_breaks({s.staff_id for s in shifts}),
        )

    def _generate(
        self,
        day: date,
        service_id: int,
        location_id: int,
        rules: ServiceRules,
        inputs: _Inputs,
        now: datetime,
    ) -> list[Slot]:
        if not inputs.shifts:
            return []
        day_start, day_end = self.projector.day_bounds(day)
        day_window = TimeInterval(day_start, day_end)
        day_shifts = [s for s in inputs.shifts if s.start_time < day_window.end and day_window.start < s.end_time]
        breaks = assemble_breaks(
            day,
            day_shifts,
            inputs.shift_breaks,
            inputs.sitewide_breaks,
            inputs.staff_breaks,
            self.projector,
        )
        slots = generate_slots_for_day(
            day,
            service_id,
            location_id,
            day_shifts,
            rules,
            inputs.blackouts,
            inputs.bookings,
            breaks,
            now=now,
            step_minutes=self.config.slot_step_minutes,
            tz=self.projector.tz,
        )
        slots.sort(key=lambda s: (s.start_time, s.staff_id, s.shift_id))
        return slots

    def _locks(self, shift_ids, window: TimeInterval, now: datetime) -> list[Lock]:
        if not shift_ids:
            return []
        return active_locks(self.repository.get_active_locks(shift_ids, window, now), now)

    def _day_window(self, day: date) -> TimeInterval:
        start, end = self.projector.day_bounds(day)
        return TimeInterval(start, end)

    def _range_window(self, first_day: date, last_day: date) -> TimeInterval:
        start, _ = self.projector.day_bounds(first_day)
        _, end = self.projector.day_bounds(last_day)
        return TimeInterval(start, end)
