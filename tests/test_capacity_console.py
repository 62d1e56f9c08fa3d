from datetime import date, timedelta

import pytest
from barberslot.core.exceptions import NotFound, ValidationError
from barberslot.db import models
from barberslot.services import (
    availability_service,
    booking_service,
    capacity_console,
    override_service,
    settings_service,
)

from conftest import NOW, THURSDAY, TUESDAY, add_booking


def _slot(day, time, db):
    return availability_service.slot_availability(db, day, time, now=NOW)


def test_lowering_override_below_bookings_is_flagged_then_applied(db_session):
    override = override_service.create_override(db_session, THURSDAY, "12:00", 3)
    first = add_booking(db_session, THURSDAY, "12:00")
    second = add_booking(db_session, THURSDAY, "12:00")

    impact = booking_service.check_impact_of_capacity_change(db_session, THURSDAY, 1, "12:00")
    assert impact.conflict is True
    assert impact.booked_count == 2

    result = capacity_console.change_override(db_session, override.id, {"capacity": 1})
    assert result.applied is False
    db_session.refresh(override)
    assert override.capacity == 3

    result = capacity_console.change_override(
        db_session, override.id, {"capacity": 1}, acknowledge_conflict=True, actor="owner"
    )
    assert result.applied is True
    assert result.override.capacity == 1

    for booking in (first, second):
        db_session.refresh(booking)
        assert booking.status == models.BookingStatus.confirmed
    slot = _slot(THURSDAY, "12:00", db_session)
    assert slot.status == "full"
    assert slot.booked_count == 2
    audit = (
        db_session.query(models.AuditLog)
        .filter_by(action="capacity_override_conflict_acknowledged")
        .one()
    )
    assert audit.actor_id == "owner"
    assert audit.payload["booked_count"] == 2


def test_save_override_without_conflict_applies_directly(db_session):
    add_booking(db_session, TUESDAY, "10:00")

    result = capacity_console.save_override(db_session, TUESDAY, "10:00", 1)

    assert result.applied is True
    assert result.impact.conflict is False
    assert result.override.capacity == 1
    assert db_session.query(models.AuditLog).count() == 0


def test_save_conflicting_override_is_not_applied(db_session):
    add_booking(db_session, TUESDAY, "10:00")
    add_booking(db_session, TUESDAY, "10:00")

    result = capacity_console.save_override(db_session, TUESDAY, "00:00", 0)

    assert result.applied is False
    assert result.impact.conflicting_slots == ["10:00"]
    assert db_session.query(models.CapacityOverride).count() == 0


def test_inactive_override_never_conflicts(db_session):
    add_booking(db_session, TUESDAY, "10:00")
    add_booking(db_session, TUESDAY, "10:00")

    result = capacity_console.save_override(db_session, TUESDAY, "10:00", 0, is_active=False)
    assert result.applied is True


def test_day_level_impact_ignores_slots_with_own_override(db_session):
    override_service.create_override(db_session, TUESDAY, "10:00", 3)
    for _ in range(3):
        add_booking(db_session, TUESDAY, "10:00")
    add_booking(db_session, TUESDAY, "12:00")
    add_booking(db_session, TUESDAY, "12:00")

    impact = booking_service.check_impact_of_capacity_change(db_session, TUESDAY, 1)

    assert impact.conflict is True
    assert impact.conflicting_slots == ["12:00"]
    assert impact.booked_count == 2


def test_impact_check_never_touches_bookings(db_session):
    booking = add_booking(db_session, TUESDAY, "10:00")
    booking_service.check_impact_of_capacity_change(db_session, TUESDAY, 0)
    db_session.refresh(booking)
    assert booking.status == models.BookingStatus.confirmed


def test_impact_check_validates_input(db_session):
    with pytest.raises(ValidationError):
        booking_service.check_impact_of_capacity_change(db_session, TUESDAY, -1)


def test_remove_override_reverts_to_default(db_session):
    result = capacity_console.save_override(db_session, TUESDAY, "10:00", 0)
    capacity_console.remove_override(db_session, result.override.id)

    assert _slot(TUESDAY, "10:00", db_session).total_capacity == 2
    with pytest.raises(NotFound):
        capacity_console.remove_override(db_session, result.override.id)


def test_update_default_capacity_reports_conflicting_dates(db_session):
    add_booking(db_session, TUESDAY, "10:00")
    add_booking(db_session, TUESDAY, "10:00")
    add_booking(db_session, THURSDAY, "11:20")
    add_booking(db_session, THURSDAY, "11:20")
    # a date outside the booking window is ignored
    add_booking(db_session, NOW.date() - timedelta(days=7), "10:00")
    add_booking(db_session, NOW.date() - timedelta(days=7), "10:00")

    result = capacity_console.update_default_capacity(db_session, 1, 3, now=NOW)

    assert result.applied is False
    assert [conflict.date for conflict in result.conflicts] == [TUESDAY]
    assert result.conflicts[0].booked_count == 2
    assert result.conflicts[0].new_capacity == 1
    assert settings_service.get_schedule_settings(db_session).capacity_mon_wed == 2

    result = capacity_console.update_default_capacity(
        db_session, 1, 3, acknowledge_conflict=True, now=NOW
    )
    assert result.applied is True
    assert result.settings["capacity_mon_wed"] == 1
    assert _slot(TUESDAY, "10:00", db_session).status == "full"


def test_update_default_capacity_skips_dates_with_day_override(db_session):
    override_service.create_override(db_session, TUESDAY, "00:00", 2)
    add_booking(db_session, TUESDAY, "10:00")
    add_booking(db_session, TUESDAY, "10:00")

    result = capacity_console.update_default_capacity(db_session, 1, 3, now=NOW)

    assert result.applied is True
    assert result.conflicts == []


def test_raising_default_capacity_never_conflicts(db_session):
    add_booking(db_session, date(2026, 3, 4), "10:00")
    add_booking(db_session, date(2026, 3, 4), "10:00")

    result = capacity_console.update_default_capacity(db_session, 4, 5, now=NOW)

    assert result.applied is True
    assert settings_service.get_schedule_settings(db_session).capacity_thu_sun == 5


def test_update_default_capacity_validates(db_session):
    with pytest.raises(ValidationError):
        capacity_console.update_default_capacity(db_session, -1, 3, now=NOW)


def _raise_and_fill(db, time_slot, capacity, bookings):
    override = override_service.create_override(db, TUESDAY, time_slot, capacity)
    for _ in range(bookings):
        add_booking(db, TUESDAY, "10:00")
    return override


def test_deactivating_day_override_checks_the_default_it_falls_back_to(db_session):
    override = _raise_and_fill(db_session, "00:00", 4, 4)

    result = capacity_console.change_override(db_session, override.id, {"is_active": False})

    assert result.applied is False
    assert result.impact.conflict is True
    assert result.impact.conflicting_slots == ["10:00"]
    assert result.impact.booked_count == 4
    db_session.refresh(override)
    assert override.is_active is True
    assert _slot(TUESDAY, "10:00", db_session).total_capacity == 4

    result = capacity_console.change_override(
        db_session, override.id, {"is_active": False}, acknowledge_conflict=True, actor="owner"
    )
    assert result.applied is True
    assert _slot(TUESDAY, "10:00", db_session).total_capacity == 2
    audit = (
        db_session.query(models.AuditLog)
        .filter_by(action="capacity_override_conflict_acknowledged")
        .one()
    )
    assert audit.payload["is_active"] is False


def test_removing_slot_override_checks_the_default_it_falls_back_to(db_session):
    override = _raise_and_fill(db_session, "10:00", 4, 4)

    result = capacity_console.remove_override(db_session, override.id)

    assert result.applied is False
    assert result.impact.conflicting_slots == ["10:00"]
    assert override_service.get_override(db_session, override.id).capacity == 4

    result = capacity_console.remove_override(
        db_session, override.id, acknowledge_conflict=True, actor="owner"
    )
    assert result.applied is True
    assert _slot(TUESDAY, "10:00", db_session).status == "full"
    with pytest.raises(NotFound):
        override_service.get_override(db_session, override.id)
    assert (
        db_session.query(models.AuditLog)
        .filter_by(action="capacity_override_removal_acknowledged")
        .count()
        == 1
    )


def test_removing_slot_override_falls_back_to_day_override(db_session):
    override_service.create_override(db_session, TUESDAY, "00:00", 4)
    slot_override = _raise_and_fill(db_session, "10:00", 5, 4)

    result = capacity_console.remove_override(db_session, slot_override.id)

    assert result.applied is True
    assert result.impact.conflict is False
    assert _slot(TUESDAY, "10:00", db_session).total_capacity == 4


def test_moving_override_checks_the_slot_it_leaves(db_session):
    override = _raise_and_fill(db_session, "10:00", 4, 3)

    result = capacity_console.change_override(db_session, override.id, {"time_slot": "12:00"})

    assert result.applied is False
    assert result.impact.conflicting_slots == ["10:00"]
    db_session.refresh(override)
    assert override.time_slot == "10:00"


def test_removing_override_without_bookings_reports_no_impact(db_session):
    override = _raise_and_fill(db_session, "00:00", 0, 0)

    result = capacity_console.remove_override(db_session, override.id)

    assert result.applied is True
    assert result.impact.conflict is False
    assert _slot(TUESDAY, "10:00", db_session).total_capacity == 2
