from datetime import date, datetime
from enum import Enum as PyEnum
from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ...core.constants import GUEST_CUSTOMER_PREFIX
from ..session import Base


class BookingStatus(str, PyEnum):
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"


TERMINAL_STATUSES = (BookingStatus.completed, BookingStatus.cancelled)
CAPACITY_HOLDING_STATUSES = (
    BookingStatus.pending,
    BookingStatus.confirmed,
    BookingStatus.completed,
)


class BookingSource(str, PyEnum):
    public = "public"
    admin = "admin"


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        UniqueConstraint("ticket_number", name="uq_bookings_ticket_number"),
        Index("ix_bookings_slot", "appointment_date", "appointment_time"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_number: Mapped[str] = mapped_column(String(32), nullable=False)
    user_id: Mapped[str | None] = mapped_column(String(64), index=True)
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus), default=BookingStatus.pending, index=True
    )
    source: Mapped[BookingSource] = mapped_column(Enum(BookingSource), default=BookingSource.public)
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    appointment_time: Mapped[str] = mapped_column(String(5), nullable=False)
    slot_duration: Mapped[int] = mapped_column(Integer, default=40, nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(32), nullable=False)
    booking_for_name: Mapped[str | None] = mapped_column(String(255))
    service_id: Mapped[int | None] = mapped_column(ForeignKey("services.id", ondelete="SET NULL"))
    special_request: Mapped[str | None] = mapped_column(Text)
    admin_notes: Mapped[str | None] = mapped_column(Text)
    inspiration_photos: Mapped[list | None] = mapped_column(JSON)
    is_prepaid: Mapped[bool] = mapped_column(Boolean, default=False)
    over_capacity: Mapped[bool] = mapped_column(Boolean, default=False)
    original_booking_id: Mapped[int | None] = mapped_column(
        ForeignKey("bookings.id", ondelete="SET NULL")
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancellation_reason: Mapped[str | None] = mapped_column(String(255))
    cancelled_by: Mapped[str | None] = mapped_column(String(64))
    reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    service = relationship("Service", back_populates="bookings")
    original_booking = relationship("Booking", remote_side=[id])

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def customer_id(self) -> str:
        return self.user_id or f"{GUEST_CUSTOMER_PREFIX}{self.customer_email}"

    @property
    def service_name(self) -> str | None:
        return self.service.name if self.service else None
