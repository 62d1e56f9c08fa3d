from datetime import date, datetime
from pydantic import BaseModel, Field


class CustomerNoteCreate(BaseModel):
    note_text: str = Field(min_length=1)


class CustomerNoteUpdate(CustomerNoteCreate):
    pass


class CustomerNote(BaseModel):
    id: int
    customer_id: str
    note_text: str
    created_by: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class CustomerSummary(BaseModel):
    customer_id: str
    name: str
    email: str
    phone: str
    is_registered: bool
    total_bookings: int
    completed_bookings: int
    cancelled_bookings: int
    no_shows: int
    last_booking_date: date | None = None


class CustomerListItem(BaseModel):
    customer_id: str
    customer_type: str
    name: str
    email: str
    phone: str
    total_bookings: int
    completed_bookings: int
    cancelled_bookings: int
    last_booking_date: date | None = None
    first_booking_date: datetime | None = None

    class Config:
        from_attributes = True


class CustomerList(BaseModel):
    customers: list[CustomerListItem]
    total: int
