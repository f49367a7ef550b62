"""
Pydantic schemas for availability API.

Wire format is camelCase; instants are ISO-8601 UTC strings.
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class SlotRead(BaseModel):
    """A bookable window on one shift."""
    shift_id: int = Field(alias="shiftId")
    staff_id: int = Field(alias="staffId")
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")

    model_config = ConfigDict(populate_by_name=True)


class DaySlotsResponse(BaseModel):
    slots: list[SlotRead]


class HeatmapDay(BaseModel):
    date: str  # YYYY-MM-DD
    available_slots: int = Field(alias="availableSlots")

    model_config = ConfigDict(populate_by_name=True)


class HeatmapResponse(BaseModel):
    days: list[HeatmapDay]


class InvalidateResponse(BaseModel):
    service_id: int | None = Field(default=None, alias="serviceId")
    location_id: int | None = Field(default=None, alias="locationId")
    deleted_keys: int = Field(alias="deletedKeys")

    model_config = ConfigDict(populate_by_name=True)


class LockCreate(BaseModel):
    service_id: int = Field(alias="serviceId")
    location_id: int = Field(alias="locationId")
    staff_id: int = Field(alias="staffId")
    shift_id: int = Field(alias="shiftId")
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")
    session_token: str = Field(alias="sessionToken", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class LockRead(BaseModel):
    success: bool = True
    lock_id: int = Field(alias="lockId")
    expires_at: str = Field(alias="expiresAt")

    model_config = ConfigDict(populate_by_name=True)
