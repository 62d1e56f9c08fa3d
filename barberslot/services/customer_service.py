"""Customer profile view and staff notes.

Customers are not stored separately: a registered customer is keyed by
the identity provider's user id, a guest by ``guest-<email>``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone

from sqlalchemy import case, func, literal, or_, select
from sqlalchemy.orm import Session

from ..core.constants import GUEST_CUSTOMER_PREFIX, NO_SHOW_REASON
from ..core.exceptions import NotFound, ValidationError
from ..db import models
from ..db.models.booking import BookingStatus
from .booking_service import customer_filter

logger = logging.getLogger(__name__)

CUSTOMER_TYPES = ("registered", "guest")


@dataclass(slots=True)
class CustomerSummary:
    customer_id: str
    name: str
    email: str
    phone: str
    is_registered: bool
    total_bookings: int
    completed_bookings: int
    cancelled_bookings: int
    no_shows: int
    last_booking_date: date | None


def _clean_text(note_text: str) -> str:
    text = (note_text or "").strip()
    if not text:
        raise ValidationError("Note text is required")
    return text


def get_customer_summary(db: Session, customer_id: str) -> CustomerSummary:
    bookings = (
        db.query(models.Booking)
        .filter(customer_filter(customer_id))
        .order_by(models.Booking.appointment_date.desc(), models.Booking.appointment_time.desc())
        .all()
    )
    if not bookings:
        raise NotFound("Customer not found")
    latest = bookings[0]
    cancelled = [b for b in bookings if b.status == BookingStatus.cancelled]
    no_shows = sum(1 for b in cancelled if b.cancellation_reason == NO_SHOW_REASON)
    return CustomerSummary(
        customer_id=customer_id,
        name=latest.customer_name,
        email=latest.customer_email,
        phone=latest.customer_phone,
        is_registered=not customer_id.startswith(GUEST_CUSTOMER_PREFIX),
        total_bookings=len(bookings),
        completed_bookings=sum(1 for b in bookings if b.status == BookingStatus.completed),
        cancelled_bookings=len(cancelled) - no_shows,
        no_shows=no_shows,
        last_booking_date=latest.appointment_date,
    )


@dataclass(slots=True)
class CustomerListItem:
    customer_id: str
    customer_type: str
    name: str
    email: str
    phone: str
    total_bookings: int
    completed_bookings: int
    cancelled_bookings: int
    last_booking_date: date | None
    first_booking_date: datetime | None


def _customer_key():
    return func.coalesce(
        models.Booking.user_id,
        literal(GUEST_CUSTOMER_PREFIX) + models.Booking.customer_email,
    )


def _count_where(condition):
    return func.sum(case((condition, 1), else_=0))


def list_customers(
    db: Session,
    *,
    search: str | None = None,
    customer_type: str | None = None,
    sort_by: str = "total_bookings",
    sort_order: str = "desc",
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[CustomerListItem], int]:
    """Customers derived from bookings, one row per customer id, with booking totals."""
    if customer_type not in (None, *CUSTOMER_TYPES):
        raise ValidationError(f"Customer type must be one of: {', '.join(CUSTOMER_TYPES)}")
    booking = models.Booking
    key = _customer_key()
    columns = {
        "name": func.max(booking.customer_name).label("name"),
        "email": func.max(booking.customer_email).label("email"),
        "total_bookings": func.count(booking.id).label("total_bookings"),
        "last_booking_date": func.max(booking.appointment_date).label("last_booking_date"),
        "first_booking_date": func.min(booking.created_at).label("first_booking_date"),
    }
    stmt = select(
        key.label("customer_id"),
        func.max(booking.user_id).label("user_id"),
        func.max(booking.customer_phone).label("phone"),
        _count_where(booking.status == BookingStatus.completed).label("completed_bookings"),
        _count_where(booking.status == BookingStatus.cancelled).label("cancelled_bookings"),
        *columns.values(),
    ).group_by(key)
    if customer_type == "registered":
        stmt = stmt.where(booking.user_id.is_not(None))
    elif customer_type == "guest":
        stmt = stmt.where(booking.user_id.is_(None))
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        matching = select(key).where(
            or_(
                booking.customer_name.ilike(pattern),
                booking.customer_email.ilike(pattern),
                booking.customer_phone.ilike(pattern),
            )
        )
        stmt = stmt.where(key.in_(matching))

    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    column = columns.get(sort_by, columns["total_bookings"])
    order = column.asc() if sort_order.lower() == "asc" else column.desc()
    rows = db.execute(stmt.order_by(order, key).limit(limit).offset(offset)).all()
    items = [
        CustomerListItem(
            customer_id=row.customer_id,
            customer_type="registered" if row.user_id else "guest",
            name=row.name,
            email=row.email,
            phone=row.phone,
            total_bookings=row.total_bookings,
            completed_bookings=int(row.completed_bookings or 0),
            cancelled_bookings=int(row.cancelled_bookings or 0),
            last_booking_date=row.last_booking_date,
            first_booking_date=row.first_booking_date,
        )
        for row in rows
    ]
    return items, total


def list_notes(db: Session, customer_id: str) -> list[models.CustomerNote]:
    return (
        db.query(models.CustomerNote)
        .filter(models.CustomerNote.customer_id == customer_id)
        .order_by(models.CustomerNote.created_at.desc(), models.CustomerNote.id.desc())
        .all()
    )


def _get_note(db: Session, customer_id: str, note_id: int) -> models.CustomerNote:
    note = db.get(models.CustomerNote, note_id)
    if not note or note.customer_id != customer_id:
        raise NotFound("Note not found")
    return note


def add_note(db: Session, customer_id: str, note_text: str, created_by: str) -> models.CustomerNote:
    note = models.CustomerNote(
        customer_id=customer_id,
        note_text=_clean_text(note_text),
        created_by=created_by,
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    logger.info("Customer note added", extra={"customer_id": customer_id, "note_id": note.id})
    return note


def update_note(db: Session, customer_id: str, note_id: int, note_text: str) -> models.CustomerNote:
    note = _get_note(db, customer_id, note_id)
    note.note_text = _clean_text(note_text)
    note.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(note)
    return note


def delete_note(db: Session, customer_id: str, note_id: int) -> None:
    note = _get_note(db, customer_id, note_id)
    db.delete(note)
    db.commit()
