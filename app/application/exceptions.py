from __future__ import annotations

from app.domain.entities.slot import SlotCheck


class InvalidInputError(ValueError):
    """Raised for malformed dates, months outside 1-12, unknown duration types or statuses."""
    pass


class SlotUnavailableError(RuntimeError):
    """Raised when a requested slot fails validation; carries the first failing check."""

    def __init__(self, check: SlotCheck) -> None:
        super().__init__(check.message)
        self.check = check


class SlotConflictError(RuntimeError):
    """Raised when a slot was taken between the availability check and the write."""
    pass


class BookingNotFoundError(LookupError):
    pass


class InvalidTransitionError(RuntimeError):
    """Raised when a status change is not allowed from the booking's current status."""
    pass


class CalendarFeedError(RuntimeError):
    """Raised by feed adapters when the external calendar cannot be fetched."""
    pass


class BookingLimitError(RuntimeError):
    """Raised when a client already holds the maximum number of upcoming bookings."""
    pass
