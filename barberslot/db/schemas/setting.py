from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field


class ShopSettings(BaseModel):
    shop_name: str = ""
    shop_address: str = ""
    shop_phone: str = ""
    shop_email: str = ""
    operating_hours: str = ""
    capacity_mon_wed: int
    capacity_thu_sun: int
    booking_window_days: int
    same_day_cutoff_hours: int
    reminder_hours_before: int
    time_slots: list[str]


class ShopSettingsUpdate(BaseModel):
    shop_name: str | None = None
    shop_address: str | None = None
    shop_phone: str | None = None
    shop_email: str | None = None
    operating_hours: str | None = None
    capacity_mon_wed: int | None = Field(default=None, ge=0)
    capacity_thu_sun: int | None = Field(default=None, ge=0)
    booking_window_days: int | None = Field(default=None, ge=0)
    same_day_cutoff_hours: int | None = Field(default=None, ge=0)
    reminder_hours_before: int | None = Field(default=None, ge=0)
    time_slots: list[str] | None = None
    acknowledge_conflict: bool = False


class ConflictingDate(BaseModel):
    date: dt.date
    booked_count: int
    new_capacity: int
    conflicting_slots: list[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class DefaultCapacityResult(BaseModel):
    applied: bool
    conflicts: list[ConflictingDate] = Field(default_factory=list)
    settings: ShopSettings | None = None

    class Config:
        from_attributes = True
