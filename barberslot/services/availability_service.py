from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.constants import DAY_LEVEL_SLOT
from ..core.exceptions import InvalidDate, ValidationError
from ..db import models
from ..db.models.booking import CAPACITY_HOLDING_STATUSES
from . import calendar_rules
from .override_service import active_overrides_for, resolve_capacity
from .settings_service import ScheduleSettings, get_schedule_settings


class SlotStatus:
    available = "available"
    limited = "limited"
    full = "full"
    blocked = "blocked"


@dataclass(slots=True)
class TimeSlot:
    time: str
    total_capacity: int
    booked_count: int
    available_count: int
    is_available: bool
    status: str
    capacity_source: str = "default"


@dataclass(slots=True)
class DayAvailability:
    date: date
    day_of_week: str
    base_capacity: int
    override_capacity: int | None
    is_blocked: bool
    slots: list[TimeSlot]


@dataclass(slots=True)
class DaySummary:
    date: date
    day_of_week: str
    base_capacity: int
    override_capacity: int | None
    effective_capacity: int
    booked_count: int
    available_spots: int
    is_blocked: bool
    is_available: bool


def slot_status(is_available: bool, available_count: int) -> str:
    if not is_available:
        return SlotStatus.blocked
    if available_count == 0:
        return SlotStatus.full
    if available_count == 1:
        return SlotStatus.limited
    return SlotStatus.available


def booked_counts(
    db: Session,
    day_from: date,
    day_to: date | None = None,
    service_id: int | None = None,
) -> dict[tuple[date, str], int]:
    query = (
        db.query(
            models.Booking.appointment_date,
            models.Booking.appointment_time,
            func.count(models.Booking.id),
        )
        .filter(models.Booking.appointment_date >= day_from)
        .filter(models.Booking.appointment_date <= (day_to or day_from))
        .filter(models.Booking.status.in_(CAPACITY_HOLDING_STATUSES))
    )
    if service_id is not None:
        query = query.filter(models.Booking.service_id == service_id)
    rows = query.group_by(
        models.Booking.appointment_date, models.Booking.appointment_time
    ).all()
    return {(row[0], row[1]): int(row[2]) for row in rows}


def _build_slot(
    day: date,
    time_slot: str,
    overrides: dict[str, models.CapacityOverride],
    schedule: ScheduleSettings,
    booked: int,
    now: datetime,
) -> TimeSlot:
    resolved = resolve_capacity(day, time_slot, overrides, schedule)
    available = max(0, resolved.capacity - booked)
    is_available = resolved.capacity > 0 and calendar_rules.is_bookable(
        day, time_slot, now, schedule
    )
    return TimeSlot(
        time=time_slot,
        total_capacity=resolved.capacity,
        booked_count=booked,
        available_count=available,
        is_available=is_available,
        status=slot_status(is_available, available),
        capacity_source=resolved.source,
    )


def availability(
    db: Session,
    day: date | str,
    service_id: int | None = None,
    now: datetime | None = None,
) -> list[TimeSlot]:
    """Slots of the business day in chronological order."""
    return day_availability(db, day, service_id=service_id, now=now).slots


def day_availability(
    db: Session,
    day: date | str,
    service_id: int | None = None,
    now: datetime | None = None,
) -> DayAvailability:
    day = calendar_rules.parse_date(day)
    now = now or calendar_rules.shop_now()
    schedule = get_schedule_settings(db)
    overrides = active_overrides_for(db, day)
    counts = booked_counts(db, day, service_id=service_id)
    slots = [
        _build_slot(day, time_slot, overrides, schedule, counts.get((day, time_slot), 0), now)
        for time_slot in schedule.time_slots
    ]
    day_override = resolve_capacity(day, DAY_LEVEL_SLOT, overrides, schedule)
    return DayAvailability(
        date=day,
        day_of_week=calendar_rules.day_of_week(day),
        base_capacity=calendar_rules.default_capacity(day, schedule),
        override_capacity=day_override.capacity if day_override.override else None,
        is_blocked=all(slot.total_capacity == 0 for slot in slots),
        slots=slots,
    )


def slot_availability(
    db: Session,
    day: date | str,
    time_slot: str,
    now: datetime | None = None,
) -> TimeSlot:
    day = calendar_rules.parse_date(day)
    schedule = get_schedule_settings(db)
    if time_slot not in schedule.time_slots:
        raise ValidationError(f"Time slot {time_slot} is not offered")
    counts = booked_counts(db, day)
    return _build_slot(
        day,
        time_slot,
        active_overrides_for(db, day),
        schedule,
        counts.get((day, time_slot), 0),
        now or calendar_rules.shop_now(),
    )


def availability_range(
    db: Session,
    start: date | str,
    end: date | str,
    service_id: int | None = None,
    now: datetime | None = None,
) -> list[DaySummary]:
    start = calendar_rules.parse_date(start)
    end = calendar_rules.parse_date(end)
    if end < start:
        raise InvalidDate("end_date must not be before start_date")
    now = now or calendar_rules.shop_now()
    schedule = get_schedule_settings(db)
    if (end - start).days > schedule.booking_window_days:
        raise InvalidDate(
            f"Date range cannot exceed {schedule.booking_window_days} days"
        )
    counts = booked_counts(db, start, end, service_id=service_id)
    overrides_by_day: dict[date, dict[str, models.CapacityOverride]] = {}
    for row in (
        db.query(models.CapacityOverride)
        .filter(models.CapacityOverride.override_date >= start)
        .filter(models.CapacityOverride.override_date <= end)
        .filter(models.CapacityOverride.is_active.is_(True))
    ):
        overrides_by_day.setdefault(row.override_date, {})[row.time_slot] = row

    summaries = []
    day = start
    while day <= end:
        overrides = overrides_by_day.get(day, {})
        slots = [
            _build_slot(day, time_slot, overrides, schedule, counts.get((day, time_slot), 0), now)
            for time_slot in schedule.time_slots
        ]
        day_override = overrides.get(DAY_LEVEL_SLOT)
        open_slots = [slot for slot in slots if slot.is_available]
        available_spots = sum(slot.available_count for slot in open_slots)
        summaries.append(
            DaySummary(
                date=day,
                day_of_week=calendar_rules.day_of_week(day),
                base_capacity=calendar_rules.default_capacity(day, schedule),
                override_capacity=day_override.capacity if day_override else None,
                effective_capacity=max((slot.total_capacity for slot in slots), default=0),
                booked_count=sum(slot.booked_count for slot in slots),
                available_spots=available_spots,
                is_blocked=not open_slots,
                is_available=available_spots > 0,
            )
        )
        day += timedelta(days=1)
    return summaries


def next_available_slot(
    db: Session,
    day: date | str,
    service_id: int | None = None,
    now: datetime | None = None,
) -> TimeSlot | None:
    for slot in availability(db, day, service_id=service_id, now=now):
        if slot.is_available and slot.available_count > 0:
            return slot
    return None


__all__ = [
    "DayAvailability",
    "DaySummary",
    "SlotStatus",
    "TimeSlot",
    "availability",
    "availability_range",
    "booked_counts",
    "day_availability",
    "next_available_slot",
    "slot_availability",
    "slot_status",
]
