from __future__ import annotations

import threading
from datetime import date, datetime

from app.application.exceptions import SlotConflictError
from app.application.ports.booking_repository import BookingRepositoryPort
from app.application.ports.calendar_cache import CalendarCachePort, ReconcileStats
from app.domain.entities.booking import Booking, BookingStatus
from app.domain.entities.calendar_event import CalendarCacheEntry


class MemoryBookingRepository(BookingRepositoryPort):
    def __init__(self) -> None:
        self._bookings: dict[str, Booking] = {}
        self._lock = threading.RLock()

    def get(self, booking_id: str) -> Booking | None:
        with self._lock:
            return self._bookings.get(booking_id)

    def get_by_token(self, token: str) -> Booking | None:
        with self._lock:
            for booking in self._bookings.values():
                if booking.confirmation_token == token:
                    return booking
            return None

    def list_for_date(self, day: date) -> list[Booking]:
        with self._lock:
            found = [b for b in self._bookings.values() if b.is_active and b.session_start.date() == day]
        return sorted(found, key=lambda b: b.session_start)

    def find_overlapping(
        self,
        start: datetime,
        end: datetime,
        exclude_id: str | None = None,
    ) -> list[Booking]:
        with self._lock:
            return [
                b
                for b in self._bookings.values()
                if b.is_active and b.id != exclude_id and b.overlaps(start, end)
            ]

    def count_upcoming_for_client(self, client_ref: str, now: datetime) -> int:
        with self._lock:
            return sum(
                1
                for b in self._bookings.values()
                if b.is_active and b.client_ref == client_ref and b.session_start >= now
            )

    def list_by_status(self, status: BookingStatus | None = None) -> list[Booking]:
        with self._lock:
            found = [b for b in self._bookings.values() if status is None or b.status == status]
        return sorted(found, key=lambda b: b.session_start)

    def add_if_free(self, booking: Booking) -> Booking:
        with self._lock:
            if self.find_overlapping(booking.session_start, booking.session_end):
                raise SlotConflictError("This slot has just been booked by someone else")
            if self.get_by_token(booking.confirmation_token) is not None:
                raise ValueError("Duplicate confirmation token")
            self._bookings[booking.id] = booking
            return booking

    def update_status(
        self,
        booking_id: str,
        expected: BookingStatus,
        target: BookingStatus,
        at: datetime,
    ) -> Booking | None:
        with self._lock:
            current = self._bookings.get(booking_id)
            if current is None or current.status != expected:
                return None
            updated = current.with_status(target, at)
            self._bookings[booking_id] = updated
            return updated


class MemoryCalendarCache(CalendarCachePort):
    def __init__(self) -> None:
        self._entries: dict[str, CalendarCacheEntry] = {}
        self._last_fetched_at: datetime | None = None
        self._lock = threading.Lock()

    def all_entries(self) -> list[CalendarCacheEntry]:
        with self._lock:
            return sorted(self._entries.values(), key=lambda e: e.start_time)

    def last_fetched_at(self) -> datetime | None:
        with self._lock:
            return self._last_fetched_at

    def reconcile(self, entries: list[CalendarCacheEntry], fetched_at: datetime) -> ReconcileStats:
        with self._lock:
            fresh_uids = {entry.event_uid for entry in entries}
            stale = [uid for uid in self._entries if uid not in fresh_uids]
            for uid in stale:
                del self._entries[uid]
            for entry in entries:
                self._entries[entry.event_uid] = entry
            self._last_fetched_at = fetched_at
            return ReconcileStats(removed=len(stale), upserted=len(entries))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._last_fetched_at = None
