"""Domain errors raised by the booking engine.

Every error carries a stable ``code`` so that callers (the HTTP layer,
scripts, tests) can branch on it without parsing messages.
"""


class BookingError(Exception):
    code = "BOOKING_ERROR"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.code)


class ValidationError(BookingError):
    """Invalid input"""

    code = "VALIDATION_ERROR"


class InvalidDate(BookingError):
    """Date is invalid or outside the booking window"""

    code = "INVALID_DATE"


class NotFound(BookingError):
    """Not found"""

    code = "NOT_FOUND"


class SlotFull(BookingError):
    """Time slot is fully booked"""

    code = "SLOT_FULL"


class DuplicateOverride(BookingError):
    """An active capacity override already exists for this date and time slot"""

    code = "DUPLICATE_OVERRIDE"


class InvalidTransition(BookingError):
    """Booking status transition is not allowed"""

    code = "INVALID_TRANSITION"


class AlreadyTerminal(InvalidTransition):
    """Booking is already completed or cancelled"""

    code = "ALREADY_TERMINAL"


__all__ = [
    "BookingError",
    "ValidationError",
    "InvalidDate",
    "NotFound",
    "SlotFull",
    "DuplicateOverride",
    "InvalidTransition",
    "AlreadyTerminal",
]
