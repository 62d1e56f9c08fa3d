from . import (
    auth,
    misc,
    services,
    settings,
    availability,
    bookings,
    admin_bookings,
    capacity,
    customers,
)

__all__ = [
    "auth",
    "misc",
    "services",
    "settings",
    "availability",
    "bookings",
    "admin_bookings",
    "capacity",
    "customers",
]
