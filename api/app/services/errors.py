"""Typed errors raised by the booking engine.

The engine raises, the route layer translates (see the exception handlers in
app.main). None of these are fatal to the process; all are per-request.
"""


class BookingError(Exception):
    """Base class for booking engine errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(BookingError):
    """Malformed, missing or out-of-range input. Fix the request; never retried."""

    def __init__(self, rule: str, message: str):
        self.rule = rule
        super().__init__(message)


class ConflictError(BookingError):
    """The requested slot is taken. Retry with a different slot, not the same request."""

    def __init__(self, message: str = "This time slot is already booked"):
        super().__init__(message)


class NotFoundError(BookingError):
    """A referenced facility, membership or booking does not exist."""


class InvalidTransitionError(BookingError):
    """The requested status change is not allowed from the current state."""
