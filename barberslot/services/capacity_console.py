"""Admin-facing capacity changes with an impact check in front of them.

A change that would leave a slot holding more bookings than its new
capacity is not applied unless the caller acknowledges the conflict.
Existing bookings are never cancelled or moved.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from ..core.constants import ADMIN_ACTOR, DAY_LEVEL_SLOT
from ..core.exceptions import ValidationError
from ..db import models
from . import availability_service, calendar_rules, override_service, settings_service
from .booking_service import CapacityImpact, check_impact_of_capacity_change

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OverrideSaveResult:
    applied: bool
    impact: CapacityImpact
    override: models.CapacityOverride | None = None


@dataclass(slots=True)
class ConflictingDate:
    date: date
    booked_count: int
    new_capacity: int
    conflicting_slots: list[str] = field(default_factory=list)


@dataclass(slots=True)
class DefaultCapacityResult:
    applied: bool
    conflicts: list[ConflictingDate]
    settings: dict[str, Any] | None = None


def _no_impact() -> CapacityImpact:
    return CapacityImpact(conflict=False, booked_count=0)


def _audit_acknowledged(
    db: Session, actor: str, action: str, payload: dict[str, Any]
) -> None:
    db.add(
        models.AuditLog(
            actor_type=models.ActorType.admin,
            actor_id=actor,
            action=action,
            payload=payload,
        )
    )
    db.commit()
    logger.warning("Capacity conflict acknowledged", extra={"action": action, **payload})


def save_override(
    db: Session,
    override_date: date | str,
    time_slot: str,
    capacity: int,
    is_active: bool = True,
    *,
    acknowledge_conflict: bool = False,
    actor: str = ADMIN_ACTOR,
) -> OverrideSaveResult:
    override_date = calendar_rules.parse_date(override_date)
    time_slot = calendar_rules.normalize_time_slot(time_slot)
    impact = (
        check_impact_of_capacity_change(db, override_date, capacity, time_slot)
        if is_active
        else _no_impact()
    )
    if impact.conflict and not acknowledge_conflict:
        return OverrideSaveResult(applied=False, impact=impact)

    override = override_service.create_override(
        db, override_date, time_slot, capacity, is_active
    )
    if impact.conflict:
        _audit_acknowledged(
            db,
            actor,
            "capacity_override_conflict_acknowledged",
            {
                "override_id": override.id,
                "date": override_date.isoformat(),
                "time_slot": time_slot,
                "capacity": capacity,
                "booked_count": impact.booked_count,
            },
        )
    return OverrideSaveResult(applied=True, impact=impact, override=override)


def _release_impact(db: Session, override: models.CapacityOverride) -> CapacityImpact:
    """Impact of ``override`` no longer applying to its (date, slot).

    The slots it governed fall back to the next rule in precedence, which
    may allow fewer bookings than are already held.
    """
    if not override.is_active:
        return _no_impact()
    day = override.override_date
    schedule = settings_service.get_schedule_settings(db)
    remaining = {
        slot: row
        for slot, row in override_service.active_overrides_for(db, day).items()
        if row.id != override.id
    }
    counts = availability_service.booked_counts(db, day)
    if override.time_slot == DAY_LEVEL_SLOT:
        slots = set(schedule.time_slots) | {slot for _, slot in counts}
        slots -= override_service.slots_shadowed_by(remaining, slots)
    else:
        slots = {override.time_slot}

    booked = {slot: counts.get((day, slot), 0) for slot in slots}
    conflicting = sorted(
        slot
        for slot, count in booked.items()
        if count > override_service.resolve_capacity(day, slot, remaining, schedule).capacity
    )
    return CapacityImpact(
        conflict=bool(conflicting),
        booked_count=max(booked.values(), default=0),
        conflicting_slots=conflicting,
    )


def _merge(first: CapacityImpact, second: CapacityImpact) -> CapacityImpact:
    return CapacityImpact(
        conflict=first.conflict or second.conflict,
        booked_count=max(first.booked_count, second.booked_count),
        conflicting_slots=sorted(set(first.conflicting_slots) | set(second.conflicting_slots)),
    )


def change_override(
    db: Session,
    override_id: int,
    changes: dict[str, Any],
    *,
    acknowledge_conflict: bool = False,
    actor: str = ADMIN_ACTOR,
) -> OverrideSaveResult:
    current = override_service.get_override(db, override_id)
    changes = {key: value for key, value in changes.items() if value is not None}
    if "time_slot" in changes:
        changes["time_slot"] = calendar_rules.normalize_time_slot(changes["time_slot"])
    target_date = calendar_rules.parse_date(changes.get("override_date", current.override_date))
    target_slot = changes.get("time_slot", current.time_slot)
    target_capacity = changes.get("capacity", current.capacity)
    target_active = changes.get("is_active", current.is_active)
    leaves_pair = not target_active or (target_date, target_slot) != (
        current.override_date,
        current.time_slot,
    )

    impact = _no_impact()
    if target_active:
        impact = check_impact_of_capacity_change(db, target_date, target_capacity, target_slot)
    if leaves_pair:
        impact = _merge(impact, _release_impact(db, current))
    if impact.conflict and not acknowledge_conflict:
        return OverrideSaveResult(applied=False, impact=impact, override=current)

    override = override_service.update_override(db, override_id, **changes)
    if impact.conflict:
        _audit_acknowledged(
            db,
            actor,
            "capacity_override_conflict_acknowledged",
            {
                "override_id": override.id,
                "date": target_date.isoformat(),
                "time_slot": target_slot,
                "capacity": target_capacity,
                "is_active": target_active,
                "booked_count": impact.booked_count,
            },
        )
    return OverrideSaveResult(applied=True, impact=impact, override=override)


def remove_override(
    db: Session,
    override_id: int,
    *,
    acknowledge_conflict: bool = False,
    actor: str = ADMIN_ACTOR,
) -> OverrideSaveResult:
    """Delete an override once its (date, slot) can fall back without stranding bookings."""
    override = override_service.get_override(db, override_id)
    impact = _release_impact(db, override)
    if impact.conflict and not acknowledge_conflict:
        return OverrideSaveResult(applied=False, impact=impact, override=override)

    payload = {
        "override_id": override.id,
        "date": override.override_date.isoformat(),
        "time_slot": override.time_slot,
        "booked_count": impact.booked_count,
    }
    override_service.delete_override(db, override_id)
    if impact.conflict:
        _audit_acknowledged(db, actor, "capacity_override_removal_acknowledged", payload)
    return OverrideSaveResult(applied=True, impact=impact)


def _default_conflicts(
    db: Session,
    mon_wed: int,
    thu_sun: int,
    now: datetime,
) -> list[ConflictingDate]:
    schedule = settings_service.get_schedule_settings(db)
    new_rule = calendar_rules.CapacityRule(capacity_mon_wed=mon_wed, capacity_thu_sun=thu_sun)
    first_day, last_day = calendar_rules.booking_window(now, schedule)
    counts = availability_service.booked_counts(db, first_day, last_day)
    if not counts:
        return []

    conflicts: list[ConflictingDate] = []
    day = first_day
    while day <= last_day:
        new_capacity = calendar_rules.default_capacity(day, new_rule)
        if new_capacity < calendar_rules.default_capacity(day, schedule):
            overrides = override_service.active_overrides_for(db, day)
            if DAY_LEVEL_SLOT not in overrides:
                slots = sorted(
                    slot
                    for (booked_day, slot), count in counts.items()
                    if booked_day == day and slot not in overrides and count > new_capacity
                )
                if slots:
                    conflicts.append(
                        ConflictingDate(
                            date=day,
                            booked_count=max(counts[(day, slot)] for slot in slots),
                            new_capacity=new_capacity,
                            conflicting_slots=slots,
                        )
                    )
        day += timedelta(days=1)
    return conflicts


def update_default_capacity(
    db: Session,
    mon_wed: int,
    thu_sun: int,
    *,
    acknowledge_conflict: bool = False,
    now: datetime | None = None,
    actor: str = ADMIN_ACTOR,
) -> DefaultCapacityResult:
    """Change the weekday buckets after checking every date in the booking window."""
    for value in (mon_wed, thu_sun):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError("Capacity must be a non-negative integer")
    now = now or calendar_rules.shop_now()
    conflicts = _default_conflicts(db, mon_wed, thu_sun, now)
    if conflicts and not acknowledge_conflict:
        return DefaultCapacityResult(applied=False, conflicts=conflicts)

    updated = settings_service.update_settings(
        db, {"capacity_mon_wed": mon_wed, "capacity_thu_sun": thu_sun}
    )
    if conflicts:
        _audit_acknowledged(
            db,
            actor,
            "default_capacity_conflict_acknowledged",
            {
                "capacity_mon_wed": mon_wed,
                "capacity_thu_sun": thu_sun,
                "dates": [conflict.date.isoformat() for conflict in conflicts],
            },
        )
    return DefaultCapacityResult(applied=True, conflicts=conflicts, settings=updated)


__all__ = [
    "ConflictingDate",
    "DefaultCapacityResult",
    "OverrideSaveResult",
    "change_override",
    "remove_override",
    "save_override",
    "update_default_capacity",
]
