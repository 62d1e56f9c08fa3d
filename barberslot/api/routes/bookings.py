from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from ...api import deps
from ...core.constants import CUSTOMER_ACTOR
from ...core.exceptions import BookingError
from ...db.session import get_db
from ...db import schemas
from ...services import booking_service
from ..errors import http_error

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=schemas.Booking, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: schemas.BookingCreate,
    db: Session = Depends(get_db),
    customer_id: str | None = Depends(deps.get_customer_id),
):
    try:
        return booking_service.create_booking(db, payload, user_id=customer_id)
    except BookingError as exc:
        raise http_error(exc) from exc


@router.get("/search", response_model=schemas.BookingSearchResult)
def search_bookings(
    ticket_number: str | None = None,
    phone: str | None = None,
    day: date | None = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
):
    try:
        bookings = booking_service.search_bookings(
            db, ticket_number=ticket_number, phone=phone, day=day
        )
    except BookingError as exc:
        raise http_error(exc) from exc
    return schemas.BookingSearchResult(
        bookings=[schemas.Booking.model_validate(b) for b in bookings], total=len(bookings)
    )


@router.get("/{ticket_number}", response_model=schemas.Booking)
def get_booking(ticket_number: str, db: Session = Depends(get_db)):
    try:
        return booking_service.get_by_ticket(db, ticket_number)
    except BookingError as exc:
        raise http_error(exc) from exc


@router.post("/{ticket_number}/cancel", response_model=schemas.Booking)
def cancel_booking(
    ticket_number: str,
    payload: schemas.BookingCancel,
    db: Session = Depends(get_db),
):
    try:
        booking = booking_service.get_by_ticket(db, ticket_number)
        return booking_service.cancel_booking(
            db, booking.id, payload.cancellation_reason, CUSTOMER_ACTOR
        )
    except BookingError as exc:
        raise http_error(exc) from exc


@router.post("/{ticket_number}/reschedule", response_model=schemas.Booking)
def reschedule_booking(
    ticket_number: str,
    payload: schemas.BookingReschedule,
    db: Session = Depends(get_db),
):
    try:
        new_booking, _ = booking_service.reschedule_booking(
            db,
            ticket_number,
            payload.new_appointment_date,
            payload.new_appointment_time,
            service_id=payload.service_id,
            special_request=payload.special_request,
        )
    except BookingError as exc:
        raise http_error(exc) from exc
    return new_booking
