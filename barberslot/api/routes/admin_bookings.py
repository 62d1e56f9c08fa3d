from datetime import date, timedelta

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from ...api import deps
from ...core.constants import NO_SHOW_REASON
from ...core.exceptions import BookingError
from ...db.session import get_db
from ...db import models, schemas
from ...db.models.booking import CAPACITY_HOLDING_STATUSES, BookingStatus
from ...services import booking_service, calendar_rules
from ..errors import http_error

router = APIRouter(prefix="/admin/bookings", tags=["admin-bookings"])


@router.get("", response_model=schemas.BookingSearchResult)
def list_bookings(
    status_filter: BookingStatus | None = Query(default=None, alias="status"),
    service_id: int | None = None,
    customer_id: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    q: str | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    sort_by: str = "appointment_date",
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
    _: models.AdminUser = Depends(deps.staff),
):
    items, total = booking_service.list_bookings(
        db,
        status=status_filter,
        service_id=service_id,
        customer_id=customer_id,
        date_from=date_from,
        date_to=date_to,
        query=q,
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return schemas.BookingSearchResult(
        bookings=[schemas.Booking.model_validate(b) for b in items], total=total
    )


@router.post("", response_model=schemas.Booking, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: schemas.ManualBookingCreate,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(deps.editor),
):
    try:
        return booking_service.create_manual_booking(db, payload, actor=admin.login)
    except BookingError as exc:
        raise http_error(exc) from exc


@router.get("/stats")
def booking_stats(db: Session = Depends(get_db), _: models.AdminUser = Depends(deps.staff)):
    today = calendar_rules.shop_now().date()
    week_end = today + timedelta(days=7)

    by_status = dict(
        db.query(models.Booking.status, func.count(models.Booking.id))
        .group_by(models.Booking.status)
        .all()
    )
    bookings_today = (
        db.query(models.Booking)
        .filter(models.Booking.appointment_date == today)
        .filter(models.Booking.status.in_(CAPACITY_HOLDING_STATUSES))
        .count()
    )
    upcoming_week = (
        db.query(models.Booking)
        .filter(models.Booking.appointment_date >= today)
        .filter(models.Booking.appointment_date < week_end)
        .filter(models.Booking.status.in_([BookingStatus.pending, BookingStatus.confirmed]))
        .count()
    )
    no_shows = (
        db.query(models.Booking)
        .filter(models.Booking.status == BookingStatus.cancelled)
        .filter(models.Booking.cancellation_reason == NO_SHOW_REASON)
        .count()
    )
    over_capacity = (
        db.query(models.Booking)
        .filter(models.Booking.over_capacity.is_(True))
        .filter(models.Booking.status.in_(CAPACITY_HOLDING_STATUSES))
        .count()
    )
    completed = by_status.get(BookingStatus.completed, 0)
    attended_base = completed + no_shows
    return {
        "total": sum(by_status.values()),
        "pending": by_status.get(BookingStatus.pending, 0),
        "confirmed": by_status.get(BookingStatus.confirmed, 0),
        "completed": completed,
        "cancelled": by_status.get(BookingStatus.cancelled, 0),
        "no_shows": no_shows,
        "over_capacity": over_capacity,
        "bookings_today": bookings_today,
        "upcoming_week": upcoming_week,
        "attendance_rate": (completed / attended_base) * 100 if attended_base else 0.0,
    }


@router.get("/{booking_id}", response_model=schemas.Booking)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    _: models.AdminUser = Depends(deps.staff),
):
    try:
        return booking_service.get_booking(db, booking_id)
    except BookingError as exc:
        raise http_error(exc) from exc


@router.patch("/{booking_id}", response_model=schemas.Booking)
def update_booking(
    booking_id: int,
    payload: schemas.BookingUpdate,
    db: Session = Depends(get_db),
    _: models.AdminUser = Depends(deps.editor),
):
    try:
        return booking_service.update_admin_notes(db, booking_id, payload.admin_notes)
    except BookingError as exc:
        raise http_error(exc) from exc


@router.post("/{booking_id}/confirm", response_model=schemas.Booking)
def confirm_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    _: models.AdminUser = Depends(deps.editor),
):
    try:
        return booking_service.confirm_booking(db, booking_id)
    except BookingError as exc:
        raise http_error(exc) from exc


@router.post("/{booking_id}/complete", response_model=schemas.Booking)
def complete_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    _: models.AdminUser = Depends(deps.editor),
):
    try:
        return booking_service.complete_booking(db, booking_id)
    except BookingError as exc:
        raise http_error(exc) from exc


@router.post("/{booking_id}/cancel", response_model=schemas.Booking)
def cancel_booking(
    booking_id: int,
    payload: schemas.BookingCancel,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(deps.editor),
):
    try:
        return booking_service.cancel_booking(
            db, booking_id, payload.cancellation_reason, admin.login
        )
    except BookingError as exc:
        raise http_error(exc) from exc


@router.post("/{booking_id}/no-show", response_model=schemas.Booking)
def mark_no_show(
    booking_id: int,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(deps.editor),
):
    try:
        return booking_service.mark_no_show(db, booking_id, admin.login)
    except BookingError as exc:
        raise http_error(exc) from exc
