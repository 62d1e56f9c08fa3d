from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Protocol

import httpx

from ..config import get_settings
from ..db import models

logger = logging.getLogger(__name__)


class BookingEvent:
    created = "booking_created"
    cancelled = "booking_cancelled"
    completed = "booking_completed"
    rescheduled = "booking_rescheduled"
    reminder = "booking_reminder"


_SUBJECTS = {
    BookingEvent.created: "Booking confirmed",
    BookingEvent.cancelled: "Booking cancelled",
    BookingEvent.completed: "Thanks for visiting",
    BookingEvent.rescheduled: "Booking rescheduled",
    BookingEvent.reminder: "Appointment reminder",
}


@dataclass(slots=True)
class BookingNotification:
    event: str
    ticket_number: str
    customer_name: str
    customer_email: str
    customer_phone: str
    appointment_date: str
    appointment_time: str
    subject: str
    message: str


class Notifier(Protocol):
    def send(self, notification: BookingNotification) -> None: ...


class WebhookNotifier:
    """Hands notifications to the external email/SMS gateway over HTTP."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    def send(self, notification: BookingNotification) -> None:
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            response = client.post(self.url, json=asdict(notification))
            response.raise_for_status()


class LogOnlyNotifier:
    def send(self, notification: BookingNotification) -> None:
        logger.warning(
            "Notifier webhook is not configured; skipping %s notification",
            notification.event,
            extra={"ticket_number": notification.ticket_number},
        )


_notifier: Notifier | None = None


def get_notifier() -> Notifier:
    global _notifier
    if _notifier is None:
        settings = get_settings()
        if settings.notifier_webhook_url:
            _notifier = WebhookNotifier(
                settings.notifier_webhook_url, settings.notifier_timeout_seconds
            )
        else:
            _notifier = LogOnlyNotifier()
    return _notifier


def set_notifier(notifier: Notifier | None) -> None:
    global _notifier
    _notifier = notifier


def build_booking_message(event: str, booking: models.Booking) -> str:
    when = datetime.combine(
        booking.appointment_date, datetime.strptime(booking.appointment_time, "%H:%M").time()
    ).strftime("%d.%m.%Y %H:%M")
    if event == BookingEvent.cancelled:
        reason = f" Reason: {booking.cancellation_reason}." if booking.cancellation_reason else ""
        return f"Your booking {booking.ticket_number} for {when} has been cancelled.{reason}"
    if event == BookingEvent.completed:
        return f"Thanks for visiting us on {when}. Ticket {booking.ticket_number}."
    if event == BookingEvent.reminder:
        return f"Reminder: your appointment {booking.ticket_number} is at {when}."
    if event == BookingEvent.rescheduled:
        return f"Your booking has been moved to {when}. New ticket {booking.ticket_number}."
    return f"Booking {booking.ticket_number} confirmed for {when}."


def notify_booking(
    booking: models.Booking,
    event: str,
    *,
    notifier: Notifier | None = None,
) -> bool:
    """Send a notification without letting delivery failures escape."""
    notification = BookingNotification(
        event=event,
        ticket_number=booking.ticket_number,
        customer_name=booking.customer_name,
        customer_email=booking.customer_email,
        customer_phone=booking.customer_phone,
        appointment_date=booking.appointment_date.isoformat(),
        appointment_time=booking.appointment_time,
        subject=_SUBJECTS.get(event, "Booking update"),
        message=build_booking_message(event, booking),
    )
    try:
        (notifier or get_notifier()).send(notification)
    except httpx.HTTPError:
        logger.exception(
            "Failed to deliver booking notification",
            extra={"ticket_number": booking.ticket_number, "event": event},
        )
        return False
    except Exception:
        logger.exception(
            "Notifier raised while sending booking notification",
            extra={"ticket_number": booking.ticket_number, "event": event},
        )
        return False
    return True


__all__ = [
    "BookingEvent",
    "BookingNotification",
    "LogOnlyNotifier",
    "Notifier",
    "WebhookNotifier",
    "build_booking_message",
    "get_notifier",
    "notify_booking",
    "set_notifier",
]
