"""
Checkout reservation locks.

A lock hides a slot of one shift from other sessions while a client is in
checkout. Locks are advisory and time-boxed: they expire on their own and
the booking commit re-validates against real bookings.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.generated import BookingLocks, Bookings
from .availability.config import AvailabilityConfig, get_availability_config
from .availability.errors import ConflictError, StorageError
from .availability.timezones import to_utc_iso

logger = logging.getLogger(__name__)


def acquire_lock(
    db: Session,
    *,
    service_id: int,
    location_id: int,
    staff_id: int,
    shift_id: int,
    start_time: datetime,
    end_time: datetime,
    session_token: str,
    now: datetime,
    config: AvailabilityConfig | None = None,
) -> BookingLocks:
    """
    Create (or refresh) a lock for [start_time, end_time) on a shift.

    Raises:
        ConflictError("SLOT_BOOKED"): a non-cancelled booking overlaps
        ConflictError("SLOT_LOCKED"): another session holds an active lock
    """
    config = config or get_availability_config()
    start_iso = to_utc_iso(start_time)
    end_iso = to_utc_iso(end_time)

    try:
        booked = db.query(Bookings).filter(
            Bookings.shift_id == shift_id,
            Bookings.status != "cancelled",
            Bookings.start_time < end_iso,
            Bookings.end_time > start_iso,
        ).count()
        if booked:
            raise ConflictError("SLOT_BOOKED")

        locked = db.query(BookingLocks).filter(
            BookingLocks.shift_id == shift_id,
            BookingLocks.expires_at > to_utc_iso(now),
            BookingLocks.session_token != session_token,
            BookingLocks.start_time < end_iso,
            BookingLocks.end_time > start_iso,
        ).count()
        if locked:
            raise ConflictError("SLOT_LOCKED")

        # Re-locking the same start replaces this session's previous lock
        db.query(BookingLocks).filter(
            BookingLocks.session_token == session_token,
            BookingLocks.start_time == start_iso,
        ).delete(synchronize_session=False)

        lock = BookingLocks(
            service_id=service_id,
            location_id=location_id,
            staff_id=staff_id,
            shift_id=shift_id,
            start_time=start_iso,
            end_time=end_iso,
            expires_at=to_utc_iso(now + timedelta(minutes=config.lock_ttl_minutes)),
            session_token=session_token,
        )
        db.add(lock)
        db.commit()
        db.refresh(lock)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[booking-lock] failed to acquire lock")
        raise StorageError("Failed to acquire lock") from e

    logger.info("[booking-lock] shift=%s %s → %s locked", shift_id, start_iso, end_iso)
    return lock


def release_locks(db: Session, session_token: str) -> int:
    """Delete every lock held by a session. Returns the number removed."""
    try:
        deleted = db.query(BookingLocks).filter(
            BookingLocks.session_token == session_token
        ).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("[booking-lock] failed to release locks")
        raise StorageError("Failed to release lock") from e
    return deleted
