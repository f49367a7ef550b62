# backend/clinic_booking/services/availability/config.py
"""
Availability engine configuration.
"""

from dataclasses import dataclass
from functools import lru_cache


ALLOWED_STEPS = (5, 10, 15, 20, 30, 60)


@dataclass(frozen=True)
class AvailabilityConfig:
    """
    Configuration for the availability engine.

    Attributes:
        slot_step_minutes: Distance between candidate slot starts
        cache_ttl_seconds: Lifetime of cached day/heatmap results
        cache_max_entries: Capacity of each in-process cache
        lock_ttl_minutes: How long a checkout lock hides a slot
        max_range_days: Longest accepted heatmap range (inclusive days)
    """
    slot_step_minutes: int = 15
    cache_ttl_seconds: int = 20
    cache_max_entries: int = 200
    lock_ttl_minutes: int = 30
    max_range_days: int = 62

    def __post_init__(self):
        """Validate configuration."""
        if self.slot_step_minutes not in ALLOWED_STEPS:
            raise ValueError(
                f"slot_step_minutes must be one of {ALLOWED_STEPS}, got {self.slot_step_minutes}"
            )
        if self.cache_ttl_seconds <= 0:
            raise ValueError(f"cache_ttl_seconds must be positive, got {self.cache_ttl_seconds}")
        if self.cache_max_entries <= 0:
            raise ValueError(f"cache_max_entries must be positive, got {self.cache_max_entries}")
        if self.lock_ttl_minutes <= 0:
            raise ValueError(f"lock_ttl_minutes must be positive, got {self.lock_ttl_minutes}")
        if self.max_range_days <= 0:
            raise ValueError(f"max_range_days must be positive, got {self.max_range_days}")

    @property
    def cache_control_header(self) -> str:
        return f"s-maxage={self.cache_ttl_seconds}, stale-while-revalidate={self.cache_ttl_seconds * 3}"


@lru_cache
def get_availability_config() -> AvailabilityConfig:
    """
    Get availability configuration (singleton).
    """
    return AvailabilityConfig()
