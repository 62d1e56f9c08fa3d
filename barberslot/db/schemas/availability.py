import datetime as dt

from pydantic import BaseModel


class TimeSlot(BaseModel):
    time: str
    total_capacity: int
    booked_count: int
    available_count: int
    is_available: bool
    status: str
    capacity_source: str

    class Config:
        from_attributes = True


class DayAvailability(BaseModel):
    date: dt.date
    day_of_week: str
    base_capacity: int
    override_capacity: int | None = None
    is_blocked: bool
    slots: list[TimeSlot]

    class Config:
        from_attributes = True


class DaySummary(BaseModel):
    date: dt.date
    day_of_week: str
    base_capacity: int
    override_capacity: int | None = None
    effective_capacity: int
    booked_count: int
    available_spots: int
    is_blocked: bool
    is_available: bool

    class Config:
        from_attributes = True
