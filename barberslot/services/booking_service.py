from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..config import get_settings
from ..core.constants import (
    ADMIN_ACTOR,
    CUSTOMER_ACTOR,
    DAY_LEVEL_SLOT,
    GUEST_CUSTOMER_PREFIX,
    NO_SHOW_REASON,
    RESCHEDULED_REASON_TEMPLATE,
    TICKET_PREFIX,
    TICKET_SEQUENCE_WIDTH,
)
from ..core.exceptions import (
    AlreadyTerminal,
    InvalidDate,
    InvalidTransition,
    NotFound,
    SlotFull,
    ValidationError,
)
from ..db import models, schemas
from ..db.models.booking import BookingSource, BookingStatus
from ..db.schemas.booking import normalize_phone
from . import availability_service, calendar_rules, slot_locks
from .notification_service import BookingEvent, Notifier, notify_booking
from .override_service import active_overrides_for, slots_shadowed_by
from .settings_service import get_schedule_settings

logger = logging.getLogger(__name__)

TICKET_CONSTRAINT = "uq_bookings_ticket_number"

SORTABLE_FIELDS = {
    "appointment_date": models.Booking.appointment_date,
    "appointment_time": models.Booking.appointment_time,
    "customer_name": models.Booking.customer_name,
    "ticket_number": models.Booking.ticket_number,
    "created_at": models.Booking.created_at,
    "status": models.Booking.status,
}


@dataclass(slots=True)
class CapacityImpact:
    conflict: bool
    booked_count: int
    conflicting_slots: list[str] = field(default_factory=list)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_offered_slot(time_slot: str, time_slots: tuple[str, ...]) -> None:
    if time_slot not in time_slots:
        raise ValidationError(f"Time slot {time_slot} is not offered")


def _resolve_service(
    db: Session, service_id: int | None, *, allow_inactive: bool = False
) -> models.Service | None:
    if service_id is None:
        return None
    service = db.get(models.Service, service_id)
    if not service:
        raise NotFound("Service not found")
    if not service.is_active and not allow_inactive:
        raise ValidationError("Service is not available for booking")
    return service


def _next_ticket_number(db: Session, day: date) -> str:
    prefix = f"{TICKET_PREFIX}-{day.strftime('%Y%m%d')}-"
    tickets = db.execute(
        select(models.Booking.ticket_number).where(models.Booking.ticket_number.like(f"{prefix}%"))
    ).scalars()
    highest = 0
    for ticket in tickets:
        suffix = ticket[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1:0{TICKET_SEQUENCE_WIDTH}d}"


def _is_ticket_violation(exc: IntegrityError) -> bool:
    constraint = getattr(getattr(exc.orig, "diag", None), "constraint_name", "") or ""
    return constraint == TICKET_CONSTRAINT or "bookings.ticket_number" in str(exc.orig)


def _insert(
    db: Session,
    booking: models.Booking,
    before_commit: Callable[[models.Booking], None] | None = None,
) -> models.Booking:
    with slot_locks.hold_key(db, slot_locks.ticket_key(booking.appointment_date)):
        booking.ticket_number = _next_ticket_number(db, booking.appointment_date)
        db.add(booking)
        if before_commit:
            before_commit(booking)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if _is_ticket_violation(exc):
                raise SlotFull("Time slot is busy, please pick another time") from exc
            raise
    db.refresh(booking)
    return booking


def _over_capacity_audit(
    booking: models.Booking, slot: availability_service.TimeSlot, actor: str
) -> models.AuditLog:
    return models.AuditLog(
        actor_type=models.ActorType.admin,
        actor_id=actor,
        action="booking_over_capacity",
        payload={
            "ticket_number": booking.ticket_number,
            "appointment_date": booking.appointment_date.isoformat(),
            "appointment_time": booking.appointment_time,
            "total_capacity": slot.total_capacity,
            "booked_count": slot.booked_count,
        },
    )


def _reserve(
    db: Session,
    booking: models.Booking,
    *,
    override_capacity: bool,
    now: datetime,
    actor: str,
    before_commit: Callable[[models.Booking], None] | None = None,
) -> models.Booking:
    """Re-validate the slot and insert the booking while holding the slot lock."""
    with slot_locks.hold(db, booking.appointment_date, booking.appointment_time):
        slot = availability_service.slot_availability(
            db, booking.appointment_date, booking.appointment_time, now=now
        )
        if slot.available_count == 0:
            if not override_capacity:
                raise SlotFull()
            booking.over_capacity = True

        def _finalize(new_booking: models.Booking) -> None:
            if new_booking.over_capacity:
                db.add(_over_capacity_audit(new_booking, slot, actor))
            if before_commit:
                before_commit(new_booking)

        _insert(db, booking, _finalize)

    if booking.over_capacity:
        logger.warning(
            "Booking %s created over capacity",
            booking.ticket_number,
            extra={"slot": slot_locks.slot_key(booking.appointment_date, booking.appointment_time)},
        )
    return booking


def _initial_status() -> tuple[BookingStatus, datetime | None]:
    if get_settings().require_confirmation:
        return BookingStatus.pending, None
    return BookingStatus.confirmed, _utc_now()


def create_booking(
    db: Session,
    payload: schemas.BookingCreate,
    *,
    user_id: str | None = None,
    override_capacity: bool = False,
    now: datetime | None = None,
    notifier: Notifier | None = None,
) -> models.Booking:
    now = now or calendar_rules.shop_now()
    schedule = get_schedule_settings(db)
    day = calendar_rules.ensure_within_window(payload.appointment_date, now, schedule)
    _ensure_offered_slot(payload.appointment_time, schedule.time_slots)
    if not calendar_rules.is_bookable(day, payload.appointment_time, now, schedule):
        raise InvalidDate(
            f"Same-day bookings close {schedule.same_day_cutoff_hours} hours before the appointment"
        )
    service = _resolve_service(db, payload.service_id)
    status, confirmed_at = _initial_status()
    booking = models.Booking(
        user_id=user_id,
        status=status,
        source=BookingSource.public,
        appointment_date=day,
        appointment_time=payload.appointment_time,
        slot_duration=service.duration if service else get_settings().default_slot_duration,
        customer_name=payload.customer_name,
        customer_email=str(payload.customer_email),
        customer_phone=payload.customer_phone,
        booking_for_name=payload.booking_for_name,
        service_id=service.id if service else None,
        special_request=payload.special_request,
        inspiration_photos=payload.inspiration_photos or [],
        confirmed_at=confirmed_at,
    )
    _reserve(db, booking, override_capacity=override_capacity, now=now, actor=CUSTOMER_ACTOR)
    logger.info(
        "Booking created",
        extra={"ticket_number": booking.ticket_number, "status": booking.status.value},
    )
    notify_booking(booking, BookingEvent.created, notifier=notifier)
    return booking


def create_manual_booking(
    db: Session,
    payload: schemas.ManualBookingCreate,
    *,
    actor: str = ADMIN_ACTOR,
    now: datetime | None = None,
    notifier: Notifier | None = None,
) -> models.Booking:
    """Admin entry: past dates are recorded as completed, capacity may be overridden."""
    now = now or calendar_rules.shop_now()
    day = payload.appointment_date
    service = _resolve_service(db, payload.service_id, allow_inactive=True)
    booking = models.Booking(
        source=BookingSource.admin,
        appointment_date=day,
        appointment_time=payload.appointment_time,
        slot_duration=service.duration if service else get_settings().default_slot_duration,
        customer_name=payload.customer_name,
        customer_email=str(payload.customer_email),
        customer_phone=payload.customer_phone,
        booking_for_name=payload.booking_for_name,
        service_id=service.id if service else None,
        special_request=payload.special_request,
        admin_notes=payload.admin_notes,
        inspiration_photos=payload.inspiration_photos or [],
        is_prepaid=payload.mark_as_prepaid,
    )

    if day < now.date():
        booking.status = BookingStatus.completed
        booking.completed_at = _utc_now()
        _insert(db, booking)
        logger.info("Past booking recorded", extra={"ticket_number": booking.ticket_number})
        return booking

    _ensure_offered_slot(payload.appointment_time, get_schedule_settings(db).time_slots)
    booking.status = BookingStatus.confirmed
    booking.confirmed_at = _utc_now()
    _reserve(
        db,
        booking,
        override_capacity=payload.override_capacity,
        now=now,
        actor=actor,
    )
    logger.info(
        "Manual booking created",
        extra={"ticket_number": booking.ticket_number, "actor": actor},
    )
    if not payload.skip_confirmation:
        notify_booking(booking, BookingEvent.created, notifier=notifier)
    return booking


def get_booking(db: Session, booking_id: int) -> models.Booking:
    booking = db.get(models.Booking, booking_id)
    if not booking:
        raise NotFound("Booking not found")
    return booking


def get_by_ticket(db: Session, ticket_number: str) -> models.Booking:
    booking = (
        db.query(models.Booking)
        .options(selectinload(models.Booking.service))
        .filter(func.upper(models.Booking.ticket_number) == ticket_number.strip().upper())
        .first()
    )
    if not booking:
        raise NotFound("Booking not found")
    return booking


def confirm_booking(db: Session, booking_id: int) -> models.Booking:
    booking = get_booking(db, booking_id)
    if booking.is_terminal:
        raise AlreadyTerminal(f"Booking is already {booking.status.value}")
    if booking.status != BookingStatus.pending:
        raise InvalidTransition("Only pending bookings can be confirmed")
    booking.status = BookingStatus.confirmed
    booking.confirmed_at = _utc_now()
    db.commit()
    db.refresh(booking)
    return booking


def cancel_booking(
    db: Session,
    booking_id: int,
    reason: str,
    cancelled_by: str,
    *,
    notify: bool = True,
    notifier: Notifier | None = None,
) -> models.Booking:
    booking = get_booking(db, booking_id)
    if booking.status == BookingStatus.cancelled:
        raise AlreadyTerminal("Booking already cancelled")
    if booking.status == BookingStatus.completed:
        raise AlreadyTerminal("Cannot cancel completed booking")
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Cancellation reason is required")
    booking.status = BookingStatus.cancelled
    booking.cancelled_at = _utc_now()
    booking.cancellation_reason = reason
    booking.cancelled_by = cancelled_by
    db.commit()
    db.refresh(booking)
    logger.info(
        "Booking cancelled",
        extra={"ticket_number": booking.ticket_number, "cancelled_by": cancelled_by},
    )
    if notify:
        notify_booking(booking, BookingEvent.cancelled, notifier=notifier)
    return booking


def complete_booking(
    db: Session,
    booking_id: int,
    *,
    notifier: Notifier | None = None,
) -> models.Booking:
    booking = get_booking(db, booking_id)
    if booking.status == BookingStatus.completed:
        raise AlreadyTerminal("Booking already completed")
    if booking.status == BookingStatus.cancelled:
        raise AlreadyTerminal("Cannot complete cancelled booking")
    if booking.status == BookingStatus.pending and get_settings().require_confirmation:
        raise InvalidTransition("Booking must be confirmed before it can be completed")
    booking.status = BookingStatus.completed
    booking.completed_at = _utc_now()
    db.commit()
    db.refresh(booking)
    notify_booking(booking, BookingEvent.completed, notifier=notifier)
    return booking


def mark_no_show(db: Session, booking_id: int, actor: str) -> models.Booking:
    return cancel_booking(db, booking_id, NO_SHOW_REASON, actor, notify=False)


def reschedule_booking(
    db: Session,
    ticket_number: str,
    new_date: date,
    new_time: str,
    *,
    service_id: int | None = None,
    special_request: str | None = None,
    now: datetime | None = None,
    notifier: Notifier | None = None,
) -> tuple[models.Booking, models.Booking]:
    """Book the new slot and cancel the original in one transaction."""
    now = now or calendar_rules.shop_now()
    original = get_by_ticket(db, ticket_number)
    if original.status != BookingStatus.confirmed:
        raise InvalidTransition("Can only reschedule confirmed bookings")
    schedule = get_schedule_settings(db)
    day = calendar_rules.ensure_within_window(new_date, now, schedule)
    _ensure_offered_slot(new_time, schedule.time_slots)
    if not calendar_rules.is_bookable(day, new_time, now, schedule):
        raise InvalidDate(
            f"Same-day bookings close {schedule.same_day_cutoff_hours} hours before the appointment"
        )
    service = _resolve_service(db, service_id) if service_id else original.service
    new_booking = models.Booking(
        user_id=original.user_id,
        status=BookingStatus.confirmed,
        source=original.source,
        appointment_date=day,
        appointment_time=new_time,
        slot_duration=service.duration if service else original.slot_duration,
        customer_name=original.customer_name,
        customer_email=original.customer_email,
        customer_phone=original.customer_phone,
        booking_for_name=original.booking_for_name,
        service_id=service.id if service else None,
        special_request=special_request or original.special_request,
        inspiration_photos=original.inspiration_photos,
        is_prepaid=original.is_prepaid,
        original_booking_id=original.id,
        confirmed_at=_utc_now(),
    )

    def _cancel_original(created: models.Booking) -> None:
        original.status = BookingStatus.cancelled
        original.cancelled_at = _utc_now()
        original.cancelled_by = CUSTOMER_ACTOR
        original.cancellation_reason = RESCHEDULED_REASON_TEMPLATE.format(
            ticket=created.ticket_number
        )

    _reserve(
        db,
        new_booking,
        override_capacity=False,
        now=now,
        actor=CUSTOMER_ACTOR,
        before_commit=_cancel_original,
    )
    db.refresh(original)
    logger.info(
        "Booking rescheduled",
        extra={"from_ticket": original.ticket_number, "to_ticket": new_booking.ticket_number},
    )
    notify_booking(new_booking, BookingEvent.rescheduled, notifier=notifier)
    return new_booking, original


def update_admin_notes(db: Session, booking_id: int, admin_notes: str | None) -> models.Booking:
    booking = get_booking(db, booking_id)
    booking.admin_notes = admin_notes
    db.commit()
    db.refresh(booking)
    return booking


def check_impact_of_capacity_change(
    db: Session,
    day: date | str,
    new_capacity: int,
    time_slot: str = DAY_LEVEL_SLOT,
) -> CapacityImpact:
    """Would ``new_capacity`` leave any slot with more bookings than it allows?

    A day-level change only affects slots that do not carry their own
    slot-level override. Bookings are never touched here.
    """
    day = calendar_rules.parse_date(day)
    if isinstance(new_capacity, bool) or not isinstance(new_capacity, int) or new_capacity < 0:
        raise ValidationError("Capacity must be a non-negative integer")
    time_slot = calendar_rules.normalize_time_slot(time_slot)
    counts = availability_service.booked_counts(db, day)
    if time_slot == DAY_LEVEL_SLOT:
        schedule = get_schedule_settings(db)
        overrides = active_overrides_for(db, day)
        shadowed = slots_shadowed_by(overrides, overrides.keys())
        affected = {
            slot: counts.get((day, slot), 0)
            for slot in schedule.time_slots
            if slot not in shadowed
        }
        # bookings on times no longer in the schedule still hold capacity
        for (_, slot), count in counts.items():
            if slot not in schedule.time_slots and slot not in shadowed:
                affected[slot] = count
    else:
        affected = {time_slot: counts.get((day, time_slot), 0)}
    conflicting = sorted(slot for slot, count in affected.items() if count > new_capacity)
    booked = max(affected.values(), default=0)
    return CapacityImpact(
        conflict=bool(conflicting),
        booked_count=booked,
        conflicting_slots=conflicting,
    )


def customer_filter(customer_id: str):
    if customer_id.startswith(GUEST_CUSTOMER_PREFIX):
        email = customer_id[len(GUEST_CUSTOMER_PREFIX):]
        return and_(models.Booking.user_id.is_(None), models.Booking.customer_email == email)
    return models.Booking.user_id == customer_id


def search_bookings(
    db: Session,
    *,
    ticket_number: str | None = None,
    phone: str | None = None,
    day: date | str | None = None,
) -> list[models.Booking]:
    if ticket_number is not None:
        if not ticket_number.strip():
            raise ValidationError("Invalid ticket number format")
        try:
            return [get_by_ticket(db, ticket_number)]
        except NotFound:
            return []
    if phone and day:
        try:
            phone = normalize_phone(phone)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        day = calendar_rules.parse_date(day)
        return (
            db.query(models.Booking)
            .filter(models.Booking.customer_phone == phone)
            .filter(models.Booking.appointment_date == day)
            .order_by(models.Booking.appointment_time)
            .all()
        )
    raise ValidationError("Provide either 'ticket_number' or both 'phone' and 'date'")


def list_bookings(
    db: Session,
    *,
    status: BookingStatus | str | None = None,
    service_id: int | None = None,
    customer_id: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    query: str | None = None,
    limit: int = 50,
    offset: int = 0,
    sort_by: str = "appointment_date",
    sort_order: str = "desc",
) -> tuple[list[models.Booking], int]:
    stmt = db.query(models.Booking).options(selectinload(models.Booking.service))
    if status:
        stmt = stmt.filter(models.Booking.status == BookingStatus(status))
    if service_id:
        stmt = stmt.filter(models.Booking.service_id == service_id)
    if customer_id:
        stmt = stmt.filter(customer_filter(customer_id))
    if date_from:
        stmt = stmt.filter(models.Booking.appointment_date >= date_from)
    if date_to:
        stmt = stmt.filter(models.Booking.appointment_date <= date_to)
    if query:
        pattern = f"%{query.strip()}%"
        stmt = stmt.filter(
            or_(
                models.Booking.ticket_number.ilike(pattern),
                models.Booking.customer_name.ilike(pattern),
                models.Booking.customer_phone.ilike(pattern),
                models.Booking.customer_email.ilike(pattern),
            )
        )
    total = stmt.count()
    column = SORTABLE_FIELDS.get(sort_by, models.Booking.appointment_date)
    descending = sort_order.lower() != "asc"
    order = [column.desc() if descending else column.asc()]
    if column is not models.Booking.appointment_time:
        time_column = models.Booking.appointment_time
        order.append(time_column.desc() if descending else time_column.asc())
    items = stmt.order_by(*order).limit(limit).offset(offset).all()
    return items, total


__all__ = [
    "CapacityImpact",
    "cancel_booking",
    "check_impact_of_capacity_change",
    "complete_booking",
    "confirm_booking",
    "create_booking",
    "create_manual_booking",
    "get_booking",
    "get_by_ticket",
    "list_bookings",
    "mark_no_show",
    "reschedule_booking",
    "search_bookings",
    "update_admin_notes",
]
