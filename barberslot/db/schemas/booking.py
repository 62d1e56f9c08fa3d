import re
from datetime import date, datetime
from pydantic import BaseModel, EmailStr, Field, field_validator

from ...core.constants import MAX_INSPIRATION_PHOTOS
from ..models.booking import BookingSource, BookingStatus

TIME_SLOT_PATTERN = r"^\d{2}:\d{2}$"
_PHONE_RE = re.compile(r"^\+?[1-9]\d{1,14}$")
_PHONE_SEPARATORS_RE = re.compile(r"[\s\-().]")


def normalize_phone(value: str) -> str:
    cleaned = _PHONE_SEPARATORS_RE.sub("", value.strip())
    if not _PHONE_RE.match(cleaned):
        raise ValueError("Invalid phone number format")
    return cleaned


class BookingBase(BaseModel):
    appointment_date: date
    appointment_time: str = Field(pattern=TIME_SLOT_PATTERN)
    customer_name: str = Field(min_length=1, max_length=255)
    customer_email: EmailStr
    customer_phone: str = Field(min_length=7, max_length=20)
    booking_for_name: str | None = Field(default=None, max_length=255)
    service_id: int | None = None
    special_request: str | None = Field(default=None, max_length=1000)
    inspiration_photos: list[str] | None = Field(default=None, max_length=MAX_INSPIRATION_PHOTOS)

    @field_validator("customer_name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Customer name is required")
        return value

    @field_validator("customer_phone")
    @classmethod
    def _check_phone(cls, value: str) -> str:
        return normalize_phone(value)


class BookingCreate(BookingBase):
    pass


class ManualBookingCreate(BookingBase):
    admin_notes: str | None = None
    override_capacity: bool = False
    skip_confirmation: bool = False
    mark_as_prepaid: bool = False


class BookingCancel(BaseModel):
    cancellation_reason: str = Field(min_length=1, max_length=255)


class BookingReschedule(BaseModel):
    new_appointment_date: date
    new_appointment_time: str = Field(pattern=TIME_SLOT_PATTERN)
    service_id: int | None = None
    special_request: str | None = Field(default=None, max_length=1000)


class BookingUpdate(BaseModel):
    admin_notes: str | None = None


class Booking(BaseModel):
    id: int
    ticket_number: str
    user_id: str | None = None
    customer_id: str | None = None
    status: BookingStatus
    source: BookingSource
    appointment_date: date
    appointment_time: str
    slot_duration: int
    customer_name: str
    customer_email: str
    customer_phone: str
    booking_for_name: str | None = None
    service_id: int | None = None
    service_name: str | None = None
    special_request: str | None = None
    admin_notes: str | None = None
    inspiration_photos: list[str] | None = None
    is_prepaid: bool = False
    over_capacity: bool = False
    original_booking_id: int | None = None
    created_at: datetime | None = None
    confirmed_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    cancelled_by: str | None = None

    class Config:
        from_attributes = True


class BookingSearchResult(BaseModel):
    bookings: list[Booking]
    total: int
