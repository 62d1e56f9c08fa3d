from datetime import date, datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from barberslot.api import deps
from barberslot.api.routes import (
    admin_bookings,
    availability,
    bookings,
    capacity,
    customers,
    misc,
    services,
    settings,
)
from barberslot.config import get_settings
from barberslot.db.session import Base, get_db
from barberslot.db import models, schemas
from barberslot.services import notification_service
from barberslot.services.calendar_rules import shop_now

# Monday 2 March 2026, 08:00 shop time
NOW = datetime(2026, 3, 2, 8, 0)
TUESDAY = date(2026, 3, 3)
THURSDAY = date(2026, 3, 5)


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    def send(self, notification):
        if self.fail:
            raise RuntimeError("gateway down")
        self.sent.append(notification)


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def notifier():
    recorder = RecordingNotifier()
    notification_service.set_notifier(recorder)
    yield recorder
    notification_service.set_notifier(None)


@pytest.fixture()
def require_confirmation(monkeypatch):
    monkeypatch.setattr(get_settings(), "require_confirmation", True)


def booking_request(day=TUESDAY, time="10:00", **overrides) -> schemas.BookingCreate:
    data = {
        "appointment_date": day,
        "appointment_time": time,
        "customer_name": "Sean Murphy",
        "customer_email": "sean@murphy.ie",
        "customer_phone": "+353 87 123 4567",
    }
    data.update(overrides)
    return schemas.BookingCreate(**data)


def manual_request(day=TUESDAY, time="10:00", **overrides) -> schemas.ManualBookingCreate:
    data = {
        "appointment_date": day,
        "appointment_time": time,
        "customer_name": "Aoife Byrne",
        "customer_email": "aoife@byrne.ie",
        "customer_phone": "0871234567",
    }
    data.update(overrides)
    return schemas.ManualBookingCreate(**data)


def add_booking(session, day=TUESDAY, time="10:00", status=models.BookingStatus.confirmed, **fields):
    """Insert a booking row directly, bypassing capacity checks."""
    count = session.query(models.Booking).count()
    booking = models.Booking(
        ticket_number=f"SEED-{count + 1:04d}",
        status=status,
        appointment_date=day,
        appointment_time=time,
        customer_name=fields.pop("customer_name", "Walk In"),
        customer_email=fields.pop("customer_email", f"walkin{count}@shop.ie"),
        customer_phone=fields.pop("customer_phone", "+353870000000"),
        **fields,
    )
    session.add(booking)
    session.commit()
    session.refresh(booking)
    return booking


@pytest.fixture()
def api_client():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    def override_get_current_admin():
        return models.AdminUser(id=1, login="owner", role="admin")

    test_app = FastAPI()
    for module in (misc, services, settings, availability, bookings, admin_bookings, capacity, customers):
        test_app.include_router(module.router, prefix="/api/v1")

    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[deps.get_current_admin] = override_get_current_admin
    notification_service.set_notifier(RecordingNotifier())

    with TestClient(test_app) as client:
        yield client, TestingSessionLocal

    test_app.dependency_overrides.clear()
    notification_service.set_notifier(None)


def next_weekday(weekday: int, *, weeks_ahead: int = 0) -> date:
    """Next date strictly after today in shop time falling on ``weekday``."""
    today = shop_now().date()
    days = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=days + 7 * weeks_ahead)
