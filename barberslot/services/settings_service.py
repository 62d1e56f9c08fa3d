from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping

from sqlalchemy.orm import Session

from ..config import get_settings
from ..core.exceptions import ValidationError
from ..db import models

logger = logging.getLogger(__name__)

INT_KEYS = (
    "capacity_mon_wed",
    "capacity_thu_sun",
    "booking_window_days",
    "same_day_cutoff_hours",
    "reminder_hours_before",
)
TEXT_KEYS = (
    "shop_name",
    "shop_address",
    "shop_phone",
    "shop_email",
    "operating_hours",
)
TIME_SLOTS_KEY = "time_slots"
_SLOT_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


@dataclass(frozen=True, slots=True)
class ScheduleSettings:
    capacity_mon_wed: int
    capacity_thu_sun: int
    booking_window_days: int
    same_day_cutoff_hours: int
    reminder_hours_before: int
    time_slots: tuple[str, ...]


def parse_time_slots(raw: str | list[str] | tuple[str, ...]) -> tuple[str, ...]:
    items = raw.split(",") if isinstance(raw, str) else raw
    slots = [item.strip() for item in items if item and item.strip()]
    if not slots:
        raise ValidationError("At least one time slot is required")
    for slot in slots:
        if not _SLOT_RE.match(slot):
            raise ValidationError(f"Invalid time slot '{slot}', use HH:MM")
    if len(set(slots)) != len(slots):
        raise ValidationError("Time slots must be unique")
    return tuple(sorted(slots))


def _stored_values(db: Session) -> dict[str, str | None]:
    rows = db.query(models.Setting).all()
    return {row.key: row.value for row in rows}


def _int_value(stored: Mapping[str, str | None], key: str, default: int) -> int:
    raw = stored.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer setting %s=%r", key, raw)
        return default


def get_schedule_settings(db: Session) -> ScheduleSettings:
    defaults = get_settings()
    stored = _stored_values(db)
    slots_raw = stored.get(TIME_SLOTS_KEY) or defaults.time_slots
    return ScheduleSettings(
        capacity_mon_wed=_int_value(stored, "capacity_mon_wed", defaults.capacity_mon_wed),
        capacity_thu_sun=_int_value(stored, "capacity_thu_sun", defaults.capacity_thu_sun),
        booking_window_days=_int_value(stored, "booking_window_days", defaults.booking_window_days),
        same_day_cutoff_hours=_int_value(
            stored, "same_day_cutoff_hours", defaults.same_day_cutoff_hours
        ),
        reminder_hours_before=_int_value(
            stored, "reminder_hours_before", defaults.reminder_hours_before
        ),
        time_slots=parse_time_slots(slots_raw),
    )


def get_shop_settings(db: Session) -> dict[str, Any]:
    schedule = get_schedule_settings(db)
    stored = _stored_values(db)
    result: dict[str, Any] = {key: stored.get(key) or "" for key in TEXT_KEYS}
    result.update(
        capacity_mon_wed=schedule.capacity_mon_wed,
        capacity_thu_sun=schedule.capacity_thu_sun,
        booking_window_days=schedule.booking_window_days,
        same_day_cutoff_hours=schedule.same_day_cutoff_hours,
        reminder_hours_before=schedule.reminder_hours_before,
        time_slots=list(schedule.time_slots),
    )
    return result


def _set_value(db: Session, key: str, value: str) -> None:
    setting = db.get(models.Setting, key)
    if not setting:
        setting = models.Setting(key=key)
        db.add(setting)
    setting.value = value


def update_settings(db: Session, values: Mapping[str, Any], *, commit: bool = True) -> dict[str, Any]:
    """Persist the provided settings; keys that are ``None`` are left untouched."""
    for key, value in values.items():
        if value is None:
            continue
        if key in INT_KEYS:
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValidationError(f"Setting '{key}' must be a non-negative integer")
            _set_value(db, key, str(value))
        elif key in TEXT_KEYS:
            _set_value(db, key, str(value).strip())
        elif key == TIME_SLOTS_KEY:
            _set_value(db, key, ",".join(parse_time_slots(value)))
        else:
            raise ValidationError(f"Unknown setting '{key}'")
    if commit:
        db.commit()
    else:
        db.flush()
    return get_shop_settings(db)


__all__ = [
    "ScheduleSettings",
    "get_schedule_settings",
    "get_shop_settings",
    "parse_time_slots",
    "update_settings",
]
