from sqlalchemy import Column, ForeignKey, Integer, Table, Text, UniqueConstraint, text

from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata

# Instants are stored as ISO-8601 UTC text ("2026-10-20T09:00:00+00:00"),
# local wall-clock times as "HH:MM:SS", calendar dates as "YYYY-MM-DD".


class Locations(Base):
    __tablename__ = 'locations'

    name = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    city = Column(Text)
    address = Column(Text)
    is_active = Column(Integer, nullable=False, server_default=text('1'))

    shifts = relationship('Shifts', back_populates='location')


class Services(Base):
    __tablename__ = 'services'

    name = Column(Text, nullable=False)
    duration = Column(Integer, nullable=False)
    id = Column(Integer, primary_key=True)
    buffer_time = Column(Integer, nullable=False, server_default=text('0'))
    lead_time = Column(Integer, nullable=False, server_default=text('0'))
    allows_twins = Column(Integer, nullable=False, server_default=text('0'))
    twin_duration_minutes = Column(Integer)
    is_active = Column(Integer, nullable=False, server_default=text('1'))

    repeat_types = relationship('ServiceRepeatTypes', back_populates='service')


class ServiceRepeatTypes(Base):
    __tablename__ = 'service_repeat_types'

    service_id = Column(ForeignKey('services.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    id = Column(Integer, primary_key=True)

    service = relationship('Services', back_populates='repeat_types')


class BookingContinuations(Base):
    __tablename__ = 'booking_continuations'

    token = Column(Text, nullable=False, unique=True)
    repeat_type_id = Column(ForeignKey('service_repeat_types.id', ondelete='CASCADE'), nullable=False)
    id = Column(Integer, primary_key=True)
    parent_booking_id = Column(ForeignKey('bookings.id', ondelete='SET NULL'))
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    repeat_type = relationship('ServiceRepeatTypes')


class StaffServices(Base):
    __tablename__ = 'staff_services'
    __table_args__ = (
        UniqueConstraint('staff_id', 'service_id'),
    )

    staff_id = Column(Integer, nullable=False)
    service_id = Column(ForeignKey('services.id', ondelete='CASCADE'), nullable=False)
    id = Column(Integer, primary_key=True)
    is_twin_qualified = Column(Integer, nullable=False, server_default=text('0'))


t_shift_services = Table(
    'shift_services', metadata,
    Column('shift_id', ForeignKey('shifts.id', ondelete='CASCADE'), nullable=False),
    Column('service_id', ForeignKey('services.id', ondelete='CASCADE'), nullable=False),
    Column('max_concurrent_bookings', Integer),
    UniqueConstraint('shift_id', 'service_id')
)


class Shifts(Base):
    __tablename__ = 'shifts'

    staff_id = Column(Integer, nullable=False)
    location_id = Column(ForeignKey('locations.id', ondelete='CASCADE'), nullable=False)
    start_time = Column(Text, nullable=False)
    end_time = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    is_recurring = Column(Integer, nullable=False, server_default=text('0'))
    recurrence_rule = Column(Text)
    parent_shift_id = Column(ForeignKey('shifts.id', ondelete='CASCADE'))
    exception_date = Column(Text)
    priority = Column(Integer, nullable=False, server_default=text('0'))
    notes = Column(Text)

    location = relationship('Locations', back_populates='shifts')


class BlackoutPeriods(Base):
    __tablename__ = 'blackout_periods'

    start_date = Column(Text, nullable=False)
    end_date = Column(Text, nullable=False)
    reason = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    location_id = Column(ForeignKey('locations.id', ondelete='CASCADE'))  # NULL = all locations
    is_active = Column(Integer, nullable=False, server_default=text('1'))


class Bookings(Base):
    __tablename__ = 'bookings'

    shift_id = Column(ForeignKey('shifts.id', ondelete='CASCADE'), nullable=False)
    service_id = Column(ForeignKey('services.id'), nullable=False)
    location_id = Column(ForeignKey('locations.id'), nullable=False)
    staff_id = Column(Integer, nullable=False)
    start_time = Column(Text, nullable=False)
    end_time = Column(Text, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'pending'"))
    id = Column(Integer, primary_key=True)
    client_id = Column(Integer)
    is_twin = Column(Integer, nullable=False, server_default=text('0'))
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))


class BookingLocks(Base):
    __tablename__ = 'booking_locks'

    shift_id = Column(ForeignKey('shifts.id', ondelete='CASCADE'), nullable=False)
    start_time = Column(Text, nullable=False)
    end_time = Column(Text, nullable=False)
    expires_at = Column(Text, nullable=False)
    session_token = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    service_id = Column(ForeignKey('services.id', ondelete='CASCADE'))
    location_id = Column(ForeignKey('locations.id', ondelete='CASCADE'))
    staff_id = Column(Integer)


class SitewideBreaks(Base):
    __tablename__ = 'sitewide_breaks'

    name = Column(Text, nullable=False)
    start_time = Column(Text, nullable=False)  # HH:MM:SS local
    end_time = Column(Text, nullable=False)    # HH:MM:SS local
    id = Column(Integer, primary_key=True)
    start_date = Column(Text)  # YYYY-MM-DD
    end_date = Column(Text)    # YYYY-MM-DD
    is_recurring = Column(Integer, nullable=False, server_default=text('1'))
    is_active = Column(Integer, nullable=False, server_default=text('1'))


class ShiftBreaks(Base):
    __tablename__ = 'shift_breaks'

    shift_id = Column(ForeignKey('shifts.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    start_time = Column(Text, nullable=False)
    end_time = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    sitewide_break_id = Column(ForeignKey('sitewide_breaks.id', ondelete='SET NULL'))


class StaffRecurringBreaks(Base):
    __tablename__ = 'staff_recurring_breaks'

    staff_id = Column(Integer, nullable=False)
    start_time = Column(Text, nullable=False)  # HH:MM:SS local
    end_time = Column(Text, nullable=False)    # HH:MM:SS local
    id = Column(Integer, primary_key=True)
    day_of_week = Column(Integer)  # 0 = Sunday .. 6 = Saturday, NULL = every day
