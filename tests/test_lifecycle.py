import pytest
from barberslot.core.exceptions import (
    AlreadyTerminal,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from barberslot.db import models
from barberslot.services import availability_service, booking_service

from conftest import NOW, TUESDAY, add_booking, booking_request


def test_cancel_completed_booking_fails_and_keeps_completion(db_session, notifier):
    booking = booking_service.create_booking(db_session, booking_request(), now=NOW)
    completed = booking_service.complete_booking(db_session, booking.id)
    completed_at = completed.completed_at

    with pytest.raises(AlreadyTerminal):
        booking_service.cancel_booking(db_session, booking.id, "changed mind", "customer")

    db_session.refresh(completed)
    assert completed.status == models.BookingStatus.completed
    assert completed.completed_at == completed_at
    assert completed.cancelled_at is None


@pytest.mark.parametrize("terminal", [models.BookingStatus.completed, models.BookingStatus.cancelled])
def test_no_transition_leaves_a_terminal_state(db_session, terminal):
    booking = add_booking(db_session, status=terminal)

    with pytest.raises(AlreadyTerminal):
        booking_service.complete_booking(db_session, booking.id)
    with pytest.raises(AlreadyTerminal):
        booking_service.cancel_booking(db_session, booking.id, "reason", "admin")
    with pytest.raises(InvalidTransition):
        booking_service.confirm_booking(db_session, booking.id)
    with pytest.raises(AlreadyTerminal):
        booking_service.mark_no_show(db_session, booking.id, "admin")

    db_session.refresh(booking)
    assert booking.status == terminal


def test_complete_cancelled_booking_is_an_invalid_transition(db_session):
    booking = add_booking(db_session, status=models.BookingStatus.cancelled)
    with pytest.raises(InvalidTransition):
        booking_service.complete_booking(db_session, booking.id)


def test_cancel_sets_audit_fields_and_frees_capacity(db_session, notifier):
    booking = booking_service.create_booking(db_session, booking_request(), now=NOW)
    booking_service.create_booking(db_session, booking_request(), now=NOW)

    cancelled = booking_service.cancel_booking(db_session, booking.id, "sick", "customer")

    assert cancelled.status == models.BookingStatus.cancelled
    assert cancelled.cancelled_at is not None
    assert cancelled.cancellation_reason == "sick"
    assert cancelled.cancelled_by == "customer"
    assert cancelled.completed_at is None
    slot = availability_service.slot_availability(db_session, TUESDAY, "10:00", now=NOW)
    assert slot.available_count == 1
    assert notifier.sent[-1].event == "booking_cancelled"


def test_cancel_requires_reason(db_session):
    booking = add_booking(db_session)
    with pytest.raises(ValidationError):
        booking_service.cancel_booking(db_session, booking.id, "  ", "admin")


def test_unknown_booking(db_session):
    with pytest.raises(NotFound):
        booking_service.cancel_booking(db_session, 404, "reason", "admin")
    with pytest.raises(NotFound):
        booking_service.complete_booking(db_session, 404)


def test_pending_can_complete_without_confirm_step(db_session, notifier):
    booking = add_booking(db_session, status=models.BookingStatus.pending)

    completed = booking_service.complete_booking(db_session, booking.id)

    assert completed.status == models.BookingStatus.completed
    assert notifier.sent[-1].event == "booking_completed"


def test_pending_must_be_confirmed_when_required(db_session, notifier, require_confirmation):
    booking = booking_service.create_booking(db_session, booking_request(), now=NOW)
    assert booking.status == models.BookingStatus.pending

    with pytest.raises(InvalidTransition):
        booking_service.complete_booking(db_session, booking.id)

    confirmed = booking_service.confirm_booking(db_session, booking.id)
    assert confirmed.status == models.BookingStatus.confirmed
    assert confirmed.confirmed_at is not None
    with pytest.raises(InvalidTransition):
        booking_service.confirm_booking(db_session, booking.id)

    completed = booking_service.complete_booking(db_session, booking.id)
    assert completed.status == models.BookingStatus.completed
    assert completed.confirmed_at is not None


def test_no_show_is_a_silent_cancellation(db_session, notifier):
    booking = add_booking(db_session)

    result = booking_service.mark_no_show(db_session, booking.id, "owner")

    assert result.status == models.BookingStatus.cancelled
    assert result.cancellation_reason == "no_show"
    assert result.cancelled_by == "owner"
    assert notifier.sent == []


def test_reschedule_requires_confirmed_booking(db_session):
    booking = add_booking(db_session, status=models.BookingStatus.pending)
    with pytest.raises(InvalidTransition):
        booking_service.reschedule_booking(
            db_session, booking.ticket_number, TUESDAY, "12:00", now=NOW
        )
