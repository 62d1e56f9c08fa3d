from datetime import date, datetime
from pydantic import BaseModel, Field

from ...core.constants import DAY_LEVEL_SLOT
from .booking import TIME_SLOT_PATTERN


class CapacityOverrideCreate(BaseModel):
    override_date: date
    time_slot: str = Field(default=DAY_LEVEL_SLOT, pattern=TIME_SLOT_PATTERN)
    capacity: int = Field(ge=0)
    is_active: bool = True
    acknowledge_conflict: bool = False


class CapacityOverrideUpdate(BaseModel):
    override_date: date | None = None
    time_slot: str | None = Field(default=None, pattern=TIME_SLOT_PATTERN)
    capacity: int | None = Field(default=None, ge=0)
    is_active: bool | None = None
    acknowledge_conflict: bool = False


class CapacityOverride(BaseModel):
    id: int
    override_date: date
    time_slot: str
    capacity: int
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class CapacityImpactRequest(BaseModel):
    override_date: date
    capacity: int = Field(ge=0)
    time_slot: str = Field(default=DAY_LEVEL_SLOT, pattern=TIME_SLOT_PATTERN)


class CapacityImpact(BaseModel):
    conflict: bool
    booked_count: int
    conflicting_slots: list[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class OverrideSaveResult(BaseModel):
    applied: bool
    impact: CapacityImpact
    override: CapacityOverride | None = None

    class Config:
        from_attributes = True
