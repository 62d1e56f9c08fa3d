"""Common application-wide constants."""

from datetime import timedelta

# ``time_slot`` value marking a capacity override that covers the whole day
DAY_LEVEL_SLOT = "00:00"

TICKET_PREFIX = "TKT"
TICKET_SEQUENCE_WIDTH = 3

MAX_INSPIRATION_PHOTOS = 10

# Metadata for bookkeeping cancellations
NO_SHOW_REASON = "no_show"
RESCHEDULED_REASON_TEMPLATE = "Rescheduled to {ticket}"
CUSTOMER_ACTOR = "customer"
ADMIN_ACTOR = "admin"

GUEST_CUSTOMER_PREFIX = "guest-"

REMINDER_SCAN_INTERVAL = timedelta(minutes=15)


__all__ = [
    "DAY_LEVEL_SLOT",
    "TICKET_PREFIX",
    "TICKET_SEQUENCE_WIDTH",
    "MAX_INSPIRATION_PHOTOS",
    "NO_SHOW_REASON",
    "RESCHEDULED_REASON_TEMPLATE",
    "CUSTOMER_ACTOR",
    "ADMIN_ACTOR",
    "GUEST_CUSTOMER_PREFIX",
    "REMINDER_SCAN_INTERVAL",
]
