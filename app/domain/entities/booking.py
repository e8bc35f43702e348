from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum


class BookingStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"
    no_show = "no_show"


class DurationType(str, Enum):
    discovery = "discovery"
    regular = "regular"


ACTIVE_STATUSES = frozenset({BookingStatus.pending, BookingStatus.confirmed})

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.pending: frozenset({BookingStatus.confirmed, BookingStatus.cancelled}),
    BookingStatus.confirmed: frozenset(
        {BookingStatus.completed, BookingStatus.cancelled, BookingStatus.no_show}
    ),
    BookingStatus.completed: frozenset(),
    BookingStatus.cancelled: frozenset(),
    BookingStatus.no_show: frozenset(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


@dataclass(frozen=True)
class Booking:
    id: str
    session_start: datetime
    duration_type: DurationType
    display_minutes: int
    blocked_minutes: int  # display + pause, frozen at creation
    status: BookingStatus
    confirmation_token: str
    created_at: datetime
    client_ref: str | None = None
    beneficiary_ref: str | None = None
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def session_end(self) -> datetime:
        return self.session_start + timedelta(minutes=self.blocked_minutes)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.status]

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.session_start < end and self.session_end > start

    def with_status(self, status: BookingStatus, at: datetime) -> Booking:
        changes: dict[str, object] = {"status": status, "updated_at": at}
        if status == BookingStatus.confirmed:
            changes["confirmed_at"] = at
        elif status == BookingStatus.cancelled:
            changes["cancelled_at"] = at
        return replace(self, **changes)
