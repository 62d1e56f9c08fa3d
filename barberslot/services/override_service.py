from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.constants import DAY_LEVEL_SLOT
from ..core.exceptions import DuplicateOverride, NotFound, ValidationError
from ..db import models
from .calendar_rules import CapacityRuleLike, default_capacity, normalize_time_slot, parse_date
from .settings_service import get_schedule_settings

logger = logging.getLogger(__name__)

ACTIVE_SLOT_INDEX = "uq_capacity_override_active_slot"
UPDATABLE_FIELDS = ("override_date", "time_slot", "capacity", "is_active")


@dataclass(frozen=True, slots=True)
class ResolvedCapacity:
    capacity: int
    source: str
    override: models.CapacityOverride | None = None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _is_active_slot_violation(exc: IntegrityError) -> bool:
    constraint = getattr(getattr(exc.orig, "diag", None), "constraint_name", "") or ""
    if constraint == ACTIVE_SLOT_INDEX:
        return True
    message = str(exc.orig)
    return "capacity_overrides.override_date" in message and "UNIQUE" in message.upper()


def _check_capacity(capacity: Any) -> int:
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 0:
        raise ValidationError("Capacity must be a non-negative integer")
    return capacity


def _active_override(
    db: Session,
    override_date: date,
    time_slot: str,
    exclude_id: int | None = None,
) -> models.CapacityOverride | None:
    stmt = select(models.CapacityOverride).where(
        models.CapacityOverride.override_date == override_date,
        models.CapacityOverride.time_slot == time_slot,
        models.CapacityOverride.is_active.is_(True),
    )
    if exclude_id is not None:
        stmt = stmt.where(models.CapacityOverride.id != exclude_id)
    return db.execute(stmt).scalars().first()


def get_override(db: Session, override_id: int) -> models.CapacityOverride:
    override = db.get(models.CapacityOverride, override_id)
    if not override:
        raise NotFound("Override not found")
    return override


def list_overrides(
    db: Session,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    include_inactive: bool = False,
) -> list[models.CapacityOverride]:
    query = db.query(models.CapacityOverride)
    if not include_inactive:
        query = query.filter(models.CapacityOverride.is_active.is_(True))
    if date_from:
        query = query.filter(models.CapacityOverride.override_date >= date_from)
    if date_to:
        query = query.filter(models.CapacityOverride.override_date <= date_to)
    return query.order_by(
        models.CapacityOverride.override_date, models.CapacityOverride.time_slot
    ).all()


def create_override(
    db: Session,
    override_date: date | str,
    time_slot: str,
    capacity: int,
    is_active: bool = True,
) -> models.CapacityOverride:
    override_date = parse_date(override_date)
    time_slot = normalize_time_slot(time_slot)
    capacity = _check_capacity(capacity)
    if is_active and _active_override(db, override_date, time_slot):
        raise DuplicateOverride()
    override = models.CapacityOverride(
        override_date=override_date,
        time_slot=time_slot,
        capacity=capacity,
        is_active=is_active,
    )
    db.add(override)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if _is_active_slot_violation(exc):
            raise DuplicateOverride() from exc
        raise
    db.refresh(override)
    logger.info(
        "Capacity override created",
        extra={"override_id": override.id, "date": str(override_date), "time_slot": time_slot},
    )
    return override


def update_override(db: Session, override_id: int, **fields: Any) -> models.CapacityOverride:
    override = get_override(db, override_id)
    changes = {key: value for key, value in fields.items() if value is not None}
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown override fields: {', '.join(sorted(unknown))}")
    if not changes:
        raise ValidationError("No fields to update")
    if "override_date" in changes:
        changes["override_date"] = parse_date(changes["override_date"])
    if "time_slot" in changes:
        changes["time_slot"] = normalize_time_slot(changes["time_slot"])
    if "capacity" in changes:
        _check_capacity(changes["capacity"])

    target_date = changes.get("override_date", override.override_date)
    target_slot = changes.get("time_slot", override.time_slot)
    target_active = changes.get("is_active", override.is_active)
    if target_active and _active_override(db, target_date, target_slot, exclude_id=override.id):
        raise DuplicateOverride()

    for key, value in changes.items():
        setattr(override, key, value)
    override.updated_at = _utc_now()
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if _is_active_slot_violation(exc):
            raise DuplicateOverride() from exc
        raise
    db.refresh(override)
    return override


def delete_override(db: Session, override_id: int) -> None:
    override = get_override(db, override_id)
    db.delete(override)
    db.commit()
    logger.info("Capacity override deleted", extra={"override_id": override_id})


def active_overrides_for(
    db: Session, override_date: date
) -> dict[str, models.CapacityOverride]:
    rows = (
        db.query(models.CapacityOverride)
        .filter(models.CapacityOverride.override_date == override_date)
        .filter(models.CapacityOverride.is_active.is_(True))
        .all()
    )
    return {row.time_slot: row for row in rows}


def resolve_capacity(
    day: date,
    time_slot: str,
    overrides: dict[str, models.CapacityOverride],
    rule: CapacityRuleLike,
) -> ResolvedCapacity:
    """Slot-level override first, then the whole-day override, then the weekday rule."""
    slot_override = overrides.get(time_slot) if time_slot != DAY_LEVEL_SLOT else None
    if slot_override is not None:
        return ResolvedCapacity(slot_override.capacity, "slot_override", slot_override)
    day_override = overrides.get(DAY_LEVEL_SLOT)
    if day_override is not None:
        return ResolvedCapacity(day_override.capacity, "day_override", day_override)
    return ResolvedCapacity(default_capacity(day, rule), "default")


def effective_capacity(db: Session, day: date | str, time_slot: str) -> int:
    day = parse_date(day)
    time_slot = normalize_time_slot(time_slot)
    schedule = get_schedule_settings(db)
    return resolve_capacity(day, time_slot, active_overrides_for(db, day), schedule).capacity


def slots_shadowed_by(
    overrides: dict[str, models.CapacityOverride], time_slots: Iterable[str]
) -> set[str]:
    """Slots whose capacity comes from their own override, not the day-level one."""
    return {slot for slot in time_slots if slot in overrides and slot != DAY_LEVEL_SLOT}


__all__ = [
    "ResolvedCapacity",
    "active_overrides_for",
    "create_override",
    "delete_override",
    "effective_capacity",
    "get_override",
    "list_overrides",
    "resolve_capacity",
    "slots_shadowed_by",
    "update_override",
]
