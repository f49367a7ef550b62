# backend/clinic_booking/routers/availability.py
"""
Availability API endpoints.

GET  /availability            - Slots for a service on one day
GET  /availability/heatmap    - Per-day slot counts over a date range
POST /availability/invalidate - Drop cached results (admin endpoint)
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import JSONResponse

from ..dependencies import get_availability_caches, get_availability_service
from ..schemas.availability import (
    DaySlotsResponse,
    HeatmapResponse,
    InvalidateResponse,
)
from ..services.availability import (
    AvailabilityCaches,
    AvailabilityService,
    BadRequestError,
    DayQuery,
    RangeQuery,
    get_availability_config,
)

router = APIRouter(prefix="/availability", tags=["availability"])

NO_CACHE_HEADERS = {"Cache-Control": "no-store"}


def _parse_day(value: str, name: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise BadRequestError(f"Invalid {name}: expected YYYY-MM-DD")


def _cache_headers() -> dict[str, str]:
    return {"Cache-Control": get_availability_config().cache_control_header}


@router.get("", response_model=DaySlotsResponse)
def get_day_availability(
    service_id: Optional[int] = Query(None, alias="serviceId"),
    location_id: Optional[int] = Query(None, alias="locationId"),
    date_str: Optional[str] = Query(None, alias="date"),
    staff_id: Optional[int] = Query(None, alias="staffId"),
    exclude_booking_id: Optional[int] = Query(None, alias="excludeBookingId"),
    is_twin: bool = Query(False, alias="isTwin"),
    continuation_token: Optional[str] = Query(None, alias="continuationToken"),
    cache_buster: Optional[str] = Query(None, alias="_t"),
    cache_control: Optional[str] = Header(None),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Get bookable slots for a service at a location on one day."""
    if service_id is None or location_id is None or not date_str:
        raise BadRequestError("Missing serviceId, locationId, or date")

    query = DayQuery(
        service_id=service_id,
        location_id=location_id,
        date=_parse_day(date_str, "date"),
        staff_id=staff_id,
        is_twin=is_twin,
        continuation_token=continuation_token or None,
        exclude_booking_id=exclude_booking_id,
        no_cache=cache_control == "no-cache" or bool(cache_buster),
    )
    result = service.get_day_slots(query)

    body = DaySlotsResponse(slots=[s.to_dict() for s in result.slots])
    return JSONResponse(
        content=body.model_dump(by_alias=True),
        headers=NO_CACHE_HEADERS if result.skip_cache else _cache_headers(),
    )


@router.get("/heatmap", response_model=HeatmapResponse)
def get_availability_heatmap(
    service_id: Optional[int] = Query(None, alias="serviceId"),
    location_id: Optional[int] = Query(None, alias="locationId"),
    start: Optional[str] = None,
    end: Optional[str] = None,
    staff_id: Optional[int] = Query(None, alias="staffId"),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Get available slot counts per day for a calendar range."""
    if service_id is None or location_id is None or not start or not end:
        raise BadRequestError("Missing serviceId, locationId, start, or end")

    query = RangeQuery(
        service_id=service_id,
        location_id=location_id,
        start=_parse_day(start, "start"),
        end=_parse_day(end, "end"),
        staff_id=staff_id,
    )
    result = service.get_heatmap(query)

    body = HeatmapResponse(days=[d.to_dict() for d in result.days])
    return JSONResponse(content=body.model_dump(by_alias=True), headers=_cache_headers())


@router.post("/invalidate", response_model=InvalidateResponse)
def invalidate_availability_cache(
    service_id: Optional[int] = Query(None, alias="serviceId"),
    location_id: Optional[int] = Query(None, alias="locationId"),
    caches: AvailabilityCaches = Depends(get_availability_caches),
):
    """Manually invalidate cached availability (admin endpoint)."""
    if location_id is not None and service_id is None:
        raise BadRequestError("locationId requires serviceId")

    deleted = caches.invalidate(service_id, location_id)

    return InvalidateResponse(
        service_id=service_id,
        location_id=location_id,
        deleted_keys=deleted,
    ).model_dump(by_alias=True)
