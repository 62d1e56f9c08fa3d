import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .api.routes import (
    admin_bookings,
    auth,
    availability,
    bookings,
    capacity,
    customers,
    misc,
    services,
    settings,
)
from .db.session import Base, engine, SessionLocal
from .config import get_settings
from .services.admin import ensure_admin_exists
from .workers.scheduler import get_scheduler

logger = logging.getLogger(__name__)

app = FastAPI(title="BarberSlot API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/api/v1")
app.include_router(services.router, prefix="/api/v1")
app.include_router(settings.router, prefix="/api/v1")
app.include_router(availability.router, prefix="/api/v1")
app.include_router(bookings.router, prefix="/api/v1")
app.include_router(admin_bookings.router, prefix="/api/v1")
app.include_router(capacity.router, prefix="/api/v1")
app.include_router(customers.router, prefix="/api/v1")
app.include_router(misc.router, prefix="/api/v1")

scheduler = get_scheduler()


@app.on_event("startup")
async def startup_event() -> None:
    config = get_settings()
    logging.basicConfig(level=config.log_level.upper())
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        ensure_admin_exists(session, config.default_admin_login, config.default_admin_password)
    scheduler.start()
    logger.info("BarberSlot API started", extra={"env": config.env})


@app.on_event("shutdown")
async def shutdown_event() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
