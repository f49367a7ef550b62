# backend/clinic_booking/services/availability/cache.py
"""
Availability result caches.

Two independent caches share one implementation:
  day:     availability:day:{service}:{location}:{date}:{staff}:{twin}[:cont={token}]
           value = {"slots": [slot dict, ...]}  (raw, before lock filtering)
  heatmap: availability:heatmap:{service}:{location}:{start}:{end}:{staff}
           value = {"days": [{"date", "availableSlots"}, ...]}  (raw)

Values are JSON-ready dicts so both backends store the same payload.
Entries expire after cache_ttl_seconds; explicit invalidation drops every
key under a service/location prefix.
"""

import json
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from redis import Redis

from .config import AvailabilityConfig, get_availability_config

logger = logging.getLogger(__name__)


DAY_PREFIX = "availability:day"
HEATMAP_PREFIX = "availability:heatmap"
ANY_STAFF = "any"


# ── Keys ─────────────────────────────────────────────────────────────────


def make_day_slots_cache_key(
    service_id,
    location_id,
    date: str,
    staff_id=None,
    is_twin: bool = False,
    continuation_token: Optional[str] = None,
) -> str:
    key = (
        f"{DAY_PREFIX}:{service_id}:{location_id}:{date}"
        f":{ANY_STAFF if staff_id is None else staff_id}:{1 if is_twin else 0}"
    )
    if continuation_token:
        key += f":cont={continuation_token}"
    return key


def make_heatmap_cache_key(
    service_id,
    location_id,
    start: str,
    end: str,
    staff_id=None,
) -> str:
    return (
        f"{HEATMAP_PREFIX}:{service_id}:{location_id}:{start}:{end}"
        f":{ANY_STAFF if staff_id is None else staff_id}"
    )


def scope_prefix(base: str, service_id=None, location_id=None) -> str:
    """Prefix covering every key of a service (and location), or all keys."""
    if service_id is None:
        return f"{base}:"
    if location_id is None:
        return f"{base}:{service_id}:"
    return f"{base}:{service_id}:{location_id}:"


# ── Backends ─────────────────────────────────────────────────────────────


class AvailabilityCache:
    """get / set / delete_prefix over JSON-ready dict values."""

    def get(self, key: str) -> dict | None:
        raise NotImplementedError

    def set(self, key: str, value: dict) -> None:
        raise NotImplementedError

    def delete_prefix(self, prefix: str) -> int:
        raise NotImplementedError


class InMemoryAvailabilityCache(AvailabilityCache):
    """
    Bounded TTL cache with LRU eviction.

    Safe for concurrent get/set from the request threadpool. Two requests
    racing on the same key may both compute and both write; either value
    is valid for the key.
    """

    def __init__(
        self,
        ttl_seconds: int,
        max_entries: int,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._timer = timer
        self._entries: OrderedDict[str, tuple[float, dict]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> dict | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self._timer():
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: dict) -> None:
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_entries:
                self._entries.popitem(last=False)
            self._entries[key] = (self._timer() + self.ttl_seconds, value)

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            for k in keys:
                del self._entries[k]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisAvailabilityCache(AvailabilityCache):
    """Redis storage wrapper: one JSON string per key, expiring via EX."""

    def __init__(self, redis: Redis, ttl_seconds: int):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    def get(self, key: str) -> dict | None:
        raw = self.redis.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Dropping undecodable cache entry %s", key)
            self.redis.delete(key)
            return None

    def set(self, key: str, value: dict) -> None:
        self.redis.set(key, json.dumps(value), ex=self.ttl_seconds)

    def delete_prefix(self, prefix: str) -> int:
        keys = list(self.redis.scan_iter(match=f"{prefix}*"))
        if not keys:
            return 0
        return self.redis.delete(*keys)


@dataclass
class AvailabilityCaches:
    """The day-slot cache and the heatmap cache, constructed once per process."""
    day: AvailabilityCache
    heatmap: AvailabilityCache

    def invalidate(self, service_id=None, location_id=None) -> int:
        return (
            self.day.delete_prefix(scope_prefix(DAY_PREFIX, service_id, location_id))
            + self.heatmap.delete_prefix(scope_prefix(HEATMAP_PREFIX, service_id, location_id))
        )


def build_memory_caches(config: AvailabilityConfig | None = None) -> AvailabilityCaches:
    config = config or get_availability_config()
    return AvailabilityCaches(
        day=InMemoryAvailabilityCache(config.cache_ttl_seconds, config.cache_max_entries),
        heatmap=InMemoryAvailabilityCache(config.cache_ttl_seconds, config.cache_max_entries),
    )


def build_redis_caches(redis: Redis, config: AvailabilityConfig | None = None) -> AvailabilityCaches:
    config = config or get_availability_config()
    return AvailabilityCaches(
        day=RedisAvailabilityCache(redis, config.cache_ttl_seconds),
        heatmap=RedisAvailabilityCache(redis, config.cache_ttl_seconds),
    )
