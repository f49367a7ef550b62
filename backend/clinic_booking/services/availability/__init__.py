# backend/clinic_booking/services/availability/__init__.py
"""
Availability computation module.

Generator: candidate slots per day from shifts, breaks, blackouts, bookings
Cache:     raw per-day slots and per-range heatmaps (memory or Redis)
Locks:     applied per response, never cached
"""

from .config import AvailabilityConfig, get_availability_config
from .cache import (
    AvailabilityCaches,
    InMemoryAvailabilityCache,
    RedisAvailabilityCache,
    build_memory_caches,
    build_redis_caches,
)
from .errors import AvailabilityError, BadRequestError, ConflictError, NotFoundError, StorageError
from .generator import generate_slots_for_day
from .heatmap import summarize_day_heatmap
from .locks import filter_by_locks
from .orchestrator import AvailabilityService, DayQuery, RangeQuery
from .repository import AvailabilityRepository
from .timezones import WallClockProjector

__all__ = [
    "AvailabilityConfig",
    "get_availability_config",
    "AvailabilityCaches",
    "InMemoryAvailabilityCache",
    "RedisAvailabilityCache",
    "build_memory_caches",
    "build_redis_caches",
    "AvailabilityError",
    "BadRequestError",
    "ConflictError",
    "NotFoundError",
    "StorageError",
    "generate_slots_for_day",
    "summarize_day_heatmap",
    "filter_by_locks",
    "AvailabilityService",
    "DayQuery",
    "RangeQuery",
    "AvailabilityRepository",
    "WallClockProjector",
]
