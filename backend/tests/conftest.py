from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clinic_booking.database import get_db
from clinic_booking.dependencies import get_availability_caches, get_clock, get_projector
from clinic_booking.main import app
from clinic_booking.models.generated import (
    Base,
    Locations,
    Services,
    Shifts,
    t_shift_services,
)
from clinic_booking.services.availability import WallClockProjector, build_memory_caches
from clinic_booking.services.availability.timezones import to_utc_iso

DAY = date(2030, 1, 15)  # Tuesday
NOW = datetime(2030, 1, 14, 8, 0, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


def iso(hour: int, minute: int = 0, day: date = DAY) -> str:
    return to_utc_iso(at(hour, minute, day))


class Clock:
    """Mutable clock handed to code that takes a `() -> datetime` callable."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def caches():
    return build_memory_caches()


@pytest.fixture
def client(db, caches, clock):
    def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_availability_caches] = lambda: caches
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_projector] = lambda: WallClockProjector("UTC")
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def clinic(db):
    """
    One location, one 30-minute service and a 09:00-17:00 shift on DAY
    qualified for it.
    """
    location = Locations(id=1, name="Centrum")
    service = Services(id=10, name="Echo", duration=30, buffer_time=0, lead_time=0)
    shift = Shifts(
        id=100,
        staff_id=7,
        location_id=1,
        start_time=iso(9),
        end_time=iso(17),
    )
    db.add_all([location, service, shift])
    db.flush()
    db.execute(t_shift_services.insert().values(shift_id=100, service_id=10))
    db.commit()
    return {"location": location, "service": service, "shift": shift}
