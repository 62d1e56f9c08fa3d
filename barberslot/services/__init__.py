from . import (
    availability_service,
    booking_service,
    calendar_rules,
    capacity_console,
    catalog_service,
    customer_service,
    notification_service,
    override_service,
    settings_service,
    slot_locks,
)
__all__ = [
    "availability_service",
    "booking_service",
    "calendar_rules",
    "capacity_console",
    "catalog_service",
    "customer_service",
    "notification_service",
    "override_service",
    "settings_service",
    "slot_locks",
]
