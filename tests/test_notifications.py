import json

import httpx
from barberslot.db import models
from barberslot.services import booking_service, notification_service
from barberslot.services.notification_service import (
    BookingEvent,
    LogOnlyNotifier,
    WebhookNotifier,
    build_booking_message,
    notify_booking,
)

from conftest import NOW, RecordingNotifier, add_booking, booking_request


def test_webhook_posts_booking_payload(db_session):
    booking = add_booking(db_session)
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(json.loads(request.content))
        return httpx.Response(202)

    notifier = WebhookNotifier("https://notify.example/hook", transport=httpx.MockTransport(handler))

    assert notify_booking(booking, BookingEvent.created, notifier=notifier) is True
    assert received[0]["event"] == "booking_created"
    assert received[0]["ticket_number"] == booking.ticket_number
    assert received[0]["appointment_time"] == "10:00"


def test_webhook_error_is_swallowed_and_logged(db_session, caplog):
    booking = add_booking(db_session)
    notifier = WebhookNotifier(
        "https://notify.example/hook",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )

    assert notify_booking(booking, BookingEvent.cancelled, notifier=notifier) is False
    assert "Failed to deliver booking notification" in caplog.text


def test_failing_notifier_never_rolls_back_booking(db_session):
    notification_service.set_notifier(RecordingNotifier(fail=True))
    try:
        booking = booking_service.create_booking(db_session, booking_request(), now=NOW)
    finally:
        notification_service.set_notifier(None)

    stored = db_session.get(models.Booking, booking.id)
    assert stored.status == models.BookingStatus.confirmed


def test_default_notifier_without_webhook_only_logs(monkeypatch):
    notification_service.set_notifier(None)
    monkeypatch.setattr(notification_service.get_settings(), "notifier_webhook_url", "")
    try:
        assert isinstance(notification_service.get_notifier(), LogOnlyNotifier)
    finally:
        notification_service.set_notifier(None)


def test_messages_mention_ticket_and_time(db_session):
    booking = add_booking(db_session, cancellation_reason="sick")

    cancelled = build_booking_message(BookingEvent.cancelled, booking)
    assert booking.ticket_number in cancelled
    assert "03.03.2026 10:00" in cancelled
    assert "Reason: sick" in cancelled
    assert "Reminder" in build_booking_message(BookingEvent.reminder, booking)
