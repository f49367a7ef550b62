# backend/clinic_booking/routers/booking_locks.py
"""
Checkout lock endpoints.

POST   /bookings/lock                    - Hold a slot during checkout
DELETE /bookings/lock?sessionToken=...   - Release a session's locks
"""

from collections.abc import Callable
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_clock
from ..schemas.availability import LockCreate, LockRead
from ..services.availability import BadRequestError
from ..services.availability.timezones import parse_instant
from ..services.booking_locks import acquire_lock, release_locks

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("/lock", response_model=LockRead)
def create_lock(
    data: LockCreate,
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    start = parse_instant(data.start_time)
    end = parse_instant(data.end_time)
    if end <= start:
        raise BadRequestError("endTime must be after startTime")

    lock = acquire_lock(
        db,
        service_id=data.service_id,
        location_id=data.location_id,
        staff_id=data.staff_id,
        shift_id=data.shift_id,
        start_time=start,
        end_time=end,
        session_token=data.session_token,
        now=clock(),
    )
    return LockRead(lock_id=lock.id, expires_at=lock.expires_at).model_dump(by_alias=True)


@router.delete("/lock")
def delete_locks(
    session_token: Optional[str] = Query(None, alias="sessionToken"),
    db: Session = Depends(get_db),
):
    if not session_token:
        raise BadRequestError("Missing sessionToken")
    release_locks(db, session_token)
    return {"success": True}
