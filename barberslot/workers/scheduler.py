from datetime import datetime, timedelta, timezone
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.orm import Session

from ..core.constants import REMINDER_SCAN_INTERVAL
from ..db import models
from ..db.session import SessionLocal
from ..services import calendar_rules
from ..services.notification_service import BookingEvent, Notifier, notify_booking
from ..services.settings_service import get_schedule_settings

logger = logging.getLogger(__name__)


def due_reminders(db: Session, now: datetime) -> list[models.Booking]:
    """Confirmed bookings starting within the reminder horizon that were not reminded yet."""
    horizon = now + timedelta(hours=get_schedule_settings(db).reminder_hours_before)
    candidates = (
        db.query(models.Booking)
        .filter(models.Booking.status == models.BookingStatus.confirmed)
        .filter(models.Booking.reminder_sent_at.is_(None))
        .filter(models.Booking.appointment_date >= now.date())
        .filter(models.Booking.appointment_date <= horizon.date())
        .all()
    )
    due = []
    for booking in candidates:
        starts_at = datetime.combine(
            booking.appointment_date, calendar_rules.parse_time_slot(booking.appointment_time)
        )
        if now <= starts_at <= horizon:
            due.append(booking)
    return due


def send_reminders(
    db: Session | None = None,
    *,
    now: datetime | None = None,
    notifier: Notifier | None = None,
) -> int:
    if db is None:
        with SessionLocal() as session:
            return send_reminders(session, now=now, notifier=notifier)

    now = now or calendar_rules.shop_now()
    sent = 0
    for booking in due_reminders(db, now):
        if notify_booking(booking, BookingEvent.reminder, notifier=notifier):
            booking.reminder_sent_at = datetime.now(timezone.utc)
            sent += 1
    db.commit()
    if sent:
        logger.info("Sent %s booking reminders", sent)
    return sent


def get_scheduler() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        send_reminders,
        "interval",
        minutes=int(REMINDER_SCAN_INTERVAL.total_seconds() // 60),
    )
    return scheduler
