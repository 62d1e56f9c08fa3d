from datetime import date, datetime, timedelta

import pytest
from barberslot.core.exceptions import InvalidDate, NotFound, SlotFull, ValidationError
from barberslot.db import models
from barberslot.services import booking_service, override_service

from conftest import NOW, THURSDAY, TUESDAY, add_booking, booking_request, manual_request


def test_create_booking_confirms_and_issues_ticket(db_session, notifier):
    booking = booking_service.create_booking(db_session, booking_request(), now=NOW)

    assert booking.ticket_number == "TKT-20260303-001"
    assert booking.status == models.BookingStatus.confirmed
    assert booking.confirmed_at is not None
    assert booking.source == models.BookingSource.public
    assert booking.customer_phone == "+353871234567"
    assert booking.slot_duration == 40
    assert [n.event for n in notifier.sent] == ["booking_created"]


def test_ticket_numbers_are_sequential_per_date(db_session, notifier):
    first = booking_service.create_booking(db_session, booking_request(time="10:00"), now=NOW)
    second = booking_service.create_booking(db_session, booking_request(time="10:40"), now=NOW)
    other_day = booking_service.create_booking(
        db_session, booking_request(day=THURSDAY), now=NOW
    )

    assert first.ticket_number == "TKT-20260303-001"
    assert second.ticket_number == "TKT-20260303-002"
    assert other_day.ticket_number == "TKT-20260305-001"


def test_pending_when_confirmation_required(db_session, notifier, require_confirmation):
    booking = booking_service.create_booking(db_session, booking_request(), now=NOW)

    assert booking.status == models.BookingStatus.pending
    assert booking.confirmed_at is None


def test_full_slot_raises_slot_full(db_session, notifier):
    booking_service.create_booking(db_session, booking_request(), now=NOW)
    booking_service.create_booking(db_session, booking_request(), now=NOW)

    with pytest.raises(SlotFull):
        booking_service.create_booking(db_session, booking_request(), now=NOW)

    assert db_session.query(models.Booking).count() == 2


def test_blocked_slot_raises_slot_full(db_session, notifier):
    override_service.create_override(db_session, TUESDAY, "10:00", 0)

    with pytest.raises(SlotFull):
        booking_service.create_booking(db_session, booking_request(), now=NOW)


def test_public_booking_rejects_past_and_far_dates(db_session, notifier):
    with pytest.raises(InvalidDate, match="past"):
        booking_service.create_booking(
            db_session, booking_request(day=NOW.date() - timedelta(days=1)), now=NOW
        )
    with pytest.raises(InvalidDate, match="in advance"):
        booking_service.create_booking(
            db_session, booking_request(day=NOW.date() + timedelta(days=91)), now=NOW
        )
    assert notifier.sent == []


def test_same_day_cutoff_is_enforced(db_session, notifier):
    nine_am = NOW.replace(hour=9)
    with pytest.raises(InvalidDate):
        booking_service.create_booking(
            db_session, booking_request(day=NOW.date(), time="10:40"), now=nine_am
        )
    booking = booking_service.create_booking(
        db_session, booking_request(day=NOW.date(), time="11:20"), now=nine_am
    )
    assert booking.appointment_date == NOW.date()


def test_unknown_time_slot_is_rejected(db_session):
    with pytest.raises(ValidationError):
        booking_service.create_booking(db_session, booking_request(time="10:15"), now=NOW)


def test_service_must_exist_and_be_active(db_session, notifier):
    with pytest.raises(NotFound):
        booking_service.create_booking(db_session, booking_request(service_id=99), now=NOW)

    retired = models.Service(name="Hot towel shave", is_active=False)
    db_session.add(retired)
    db_session.commit()
    with pytest.raises(ValidationError):
        booking_service.create_booking(
            db_session, booking_request(service_id=retired.id), now=NOW
        )


def test_service_duration_is_copied(db_session, notifier):
    service = models.Service(name="Kids cut", duration=20)
    db_session.add(service)
    db_session.commit()

    booking = booking_service.create_booking(
        db_session, booking_request(service_id=service.id), now=NOW
    )
    assert booking.slot_duration == 20
    assert booking.service_name == "Kids cut"


def test_invalid_contact_details_are_rejected():
    with pytest.raises(ValueError):
        booking_request(customer_phone="call me maybe")
    with pytest.raises(ValueError):
        booking_request(customer_email="not-an-email")
    with pytest.raises(ValueError):
        booking_request(customer_name="   ")
    with pytest.raises(ValueError):
        booking_request(inspiration_photos=[f"https://img/{i}.jpg" for i in range(11)])


def test_manual_past_booking_is_recorded_as_completed(db_session, notifier):
    past = NOW.date() - timedelta(days=3)
    add_booking(db_session, past, "10:00")
    add_booking(db_session, past, "10:00")
    add_booking(db_session, past, "10:00")

    booking = booking_service.create_manual_booking(
        db_session, manual_request(day=past), actor="owner", now=NOW
    )

    assert booking.status == models.BookingStatus.completed
    assert booking.completed_at is not None
    assert booking.source == models.BookingSource.admin
    assert booking.over_capacity is False
    assert notifier.sent == []


def test_manual_booking_over_capacity_is_flagged(db_session, notifier):
    add_booking(db_session, TUESDAY, "10:00")
    add_booking(db_session, TUESDAY, "10:00")

    with pytest.raises(SlotFull):
        booking_service.create_manual_booking(db_session, manual_request(), now=NOW)

    booking = booking_service.create_manual_booking(
        db_session,
        manual_request(override_capacity=True, mark_as_prepaid=True, admin_notes="regular"),
        actor="owner",
        now=NOW,
    )

    assert booking.over_capacity is True
    assert booking.is_prepaid is True
    assert booking.admin_notes == "regular"
    audit = db_session.query(models.AuditLog).filter_by(action="booking_over_capacity").one()
    assert audit.actor_id == "owner"
    assert audit.payload["ticket_number"] == booking.ticket_number


def test_manual_override_with_room_left_is_not_flagged(db_session, notifier):
    booking = booking_service.create_manual_booking(
        db_session, manual_request(override_capacity=True), now=NOW
    )

    assert booking.over_capacity is False
    assert db_session.query(models.AuditLog).count() == 0


def test_manual_booking_skip_confirmation(db_session, notifier):
    booking_service.create_manual_booking(
        db_session, manual_request(skip_confirmation=True), now=NOW
    )
    assert notifier.sent == []

    booking_service.create_manual_booking(db_session, manual_request(time="10:40"), now=NOW)
    assert [n.event for n in notifier.sent] == ["booking_created"]


def test_reschedule_moves_booking_and_cancels_original(db_session, notifier):
    original = booking_service.create_booking(db_session, booking_request(), now=NOW)

    new_booking, old = booking_service.reschedule_booking(
        db_session, original.ticket_number.lower(), THURSDAY, "12:00", now=NOW
    )

    assert new_booking.status == models.BookingStatus.confirmed
    assert new_booking.appointment_date == THURSDAY
    assert new_booking.original_booking_id == original.id
    assert old.status == models.BookingStatus.cancelled
    assert old.cancellation_reason == f"Rescheduled to {new_booking.ticket_number}"
    assert old.cancelled_by == "customer"
    assert notifier.sent[-1].event == "booking_rescheduled"


def test_reschedule_into_full_slot_keeps_original(db_session, notifier):
    original = booking_service.create_booking(db_session, booking_request(), now=NOW)
    add_booking(db_session, THURSDAY, "12:00")
    add_booking(db_session, THURSDAY, "12:00")
    add_booking(db_session, THURSDAY, "12:00")

    with pytest.raises(SlotFull):
        booking_service.reschedule_booking(
            db_session, original.ticket_number, THURSDAY, "12:00", now=NOW
        )

    db_session.refresh(original)
    assert original.status == models.BookingStatus.confirmed


def test_search_by_ticket_and_phone(db_session, notifier):
    booking = booking_service.create_booking(db_session, booking_request(), now=NOW)

    assert booking_service.search_bookings(db_session, ticket_number=booking.ticket_number) == [
        booking
    ]
    assert booking_service.search_bookings(db_session, ticket_number="TKT-19990101-001") == []
    by_phone = booking_service.search_bookings(
        db_session, phone="+353 (87) 123-4567", day=TUESDAY
    )
    assert [b.id for b in by_phone] == [booking.id]
    with pytest.raises(ValidationError):
        booking_service.search_bookings(db_session, phone="+353871234567")


def test_get_by_ticket_unknown(db_session):
    with pytest.raises(NotFound):
        booking_service.get_by_ticket(db_session, "TKT-20260303-404")


def test_list_bookings_filters_and_paging(db_session):
    add_booking(db_session, TUESDAY, "10:00", customer_name="Ciara Walsh")
    add_booking(db_session, TUESDAY, "12:00", status=models.BookingStatus.cancelled)
    add_booking(db_session, THURSDAY, "10:00", user_id="user-7")

    items, total = booking_service.list_bookings(db_session, date_from=TUESDAY, date_to=TUESDAY)
    assert total == 2
    assert [b.appointment_time for b in items] == ["12:00", "10:00"]

    items, total = booking_service.list_bookings(db_session, status="cancelled")
    assert total == 1

    items, total = booking_service.list_bookings(db_session, query="walsh")
    assert [b.customer_name for b in items] == ["Ciara Walsh"]

    items, total = booking_service.list_bookings(db_session, customer_id="user-7")
    assert total == 1 and items[0].appointment_date == THURSDAY

    items, total = booking_service.list_bookings(
        db_session, sort_by="appointment_date", sort_order="asc", limit=1, offset=1
    )
    assert total == 3
    assert len(items) == 1
    assert (items[0].appointment_date, items[0].appointment_time) == (TUESDAY, "12:00")


def test_customer_id_for_guest_and_registered(db_session):
    guest = add_booking(db_session, TUESDAY, "10:00", customer_email="guest@shop.ie")
    member = add_booking(db_session, TUESDAY, "10:40", user_id="auth0|abc")

    assert guest.customer_id == "guest-guest@shop.ie"
    assert member.customer_id == "auth0|abc"


def test_update_admin_notes(db_session):
    booking = add_booking(db_session)
    updated = booking_service.update_admin_notes(db_session, booking.id, "prefers scissors")
    assert updated.admin_notes == "prefers scissors"


def test_naive_now_defaults_to_shop_time(db_session, notifier, monkeypatch):
    fixed = datetime(2026, 3, 2, 8, 0)
    monkeypatch.setattr(booking_service.calendar_rules, "shop_now", lambda: fixed)

    booking = booking_service.create_booking(db_session, booking_request(day=date(2026, 3, 3)))
    assert booking.ticket_number.startswith("TKT-20260303-")
