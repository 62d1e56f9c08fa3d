"""Weekday capacity rules and booking-window checks.

Everything here is pure: callers pass the schedule settings and the
current shop-local time explicitly, so the same rules serve the
availability calculator, the booking path and the admin console.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo

from ..config import get_settings
from ..core.exceptions import InvalidDate, ValidationError

# Monday=0 ... Sunday=6
MON_WED = frozenset({0, 1, 2})

DAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


class CapacityRuleLike(Protocol):
    capacity_mon_wed: int
    capacity_thu_sun: int


class WindowLike(Protocol):
    booking_window_days: int
    same_day_cutoff_hours: int


@dataclass(frozen=True, slots=True)
class CapacityRule:
    capacity_mon_wed: int
    capacity_thu_sun: int


def shop_now() -> datetime:
    """Current wall-clock time in the shop's timezone, without tzinfo."""
    tz = ZoneInfo(get_settings().timezone)
    return datetime.now(tz).replace(tzinfo=None)


def parse_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as exc:
            raise InvalidDate(f"Invalid date '{value}', use YYYY-MM-DD") from exc
    raise InvalidDate(f"Invalid date {value!r}")


def parse_time_slot(value: str) -> time:
    try:
        hours, minutes = value.split(":")
        return time(int(hours), int(minutes))
    except (AttributeError, ValueError) as exc:
        raise ValidationError(f"Invalid time slot {value!r}, use HH:MM") from exc


def normalize_time_slot(value: str) -> str:
    """Canonical ``HH:MM`` form, so ``9:00`` matches the configured ``09:00``."""
    return parse_time_slot(value).strftime("%H:%M")


def day_of_week(day: date | str) -> str:
    return DAY_NAMES[parse_date(day).weekday()]


def default_capacity(day: date | str, rule: CapacityRuleLike) -> int:
    if parse_date(day).weekday() in MON_WED:
        return rule.capacity_mon_wed
    return rule.capacity_thu_sun


def booking_window(now: datetime, schedule: WindowLike) -> tuple[date, date]:
    today = now.date()
    return today, today + timedelta(days=schedule.booking_window_days)


def is_bookable(
    day: date | str,
    appointment_time: str,
    now: datetime,
    schedule: WindowLike,
) -> bool:
    day = parse_date(day)
    first_day, last_day = booking_window(now, schedule)
    if day < first_day or day > last_day:
        return False
    if day == first_day:
        starts_at = datetime.combine(day, parse_time_slot(appointment_time))
        return now + timedelta(hours=schedule.same_day_cutoff_hours) <= starts_at
    return True


def ensure_within_window(day: date | str, now: datetime, schedule: WindowLike) -> date:
    day = parse_date(day)
    first_day, last_day = booking_window(now, schedule)
    if day < first_day:
        raise InvalidDate("Cannot book appointments in the past")
    if day > last_day:
        raise InvalidDate(
            f"Cannot book appointments more than {schedule.booking_window_days} days in advance"
        )
    return day


__all__ = [
    "CapacityRule",
    "DAY_NAMES",
    "booking_window",
    "day_of_week",
    "default_capacity",
    "ensure_within_window",
    "is_bookable",
    "parse_date",
    "normalize_time_slot",
    "parse_time_slot",
    "shop_now",
]
