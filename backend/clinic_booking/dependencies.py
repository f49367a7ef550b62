"""
FastAPI dependencies for the availability engine.

Caches and the wall-clock projector are built once per process; tests
swap them through app.dependency_overrides.
"""

from collections.abc import Callable
from datetime import datetime
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .services.availability import (
    AvailabilityCaches,
    AvailabilityRepository,
    AvailabilityService,
    WallClockProjector,
    build_memory_caches,
    build_redis_caches,
    get_availability_config,
)
from .services.availability.orchestrator import utc_now


@lru_cache
def get_availability_caches() -> AvailabilityCaches:
    if settings.availability_cache_backend == "redis":
        from .redis_client import get_redis_client
        return build_redis_caches(get_redis_client())
    return build_memory_caches()


@lru_cache
def get_projector() -> WallClockProjector:
    return WallClockProjector(settings.clinic_timezone)


def get_clock() -> Callable[[], datetime]:
    return utc_now


def get_availability_service(
    db: Session = Depends(get_db),
    caches: AvailabilityCaches = Depends(get_availability_caches),
    projector: WallClockProjector = Depends(get_projector),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> AvailabilityService:
    return AvailabilityService(
        repository=AvailabilityRepository(db),
        caches=caches,
        projector=projector,
        config=get_availability_config(),
        clock=clock,
    )
