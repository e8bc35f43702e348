from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime

from app.domain.entities.booking import Booking, BookingStatus


class BookingRepositoryPort(ABC):
    @abstractmethod
    def get(self, booking_id: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def get_by_token(self, token: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def list_for_date(self, day: date) -> list[Booking]:
        """Pending and confirmed bookings starting on the given local date, ordered by start."""
        raise NotImplementedError

    @abstractmethod
    def find_overlapping(
        self,
        start: datetime,
        end: datetime,
        exclude_id: str | None = None,
    ) -> list[Booking]:
        """Pending and confirmed bookings whose blocked interval overlaps [start, end)."""
        raise NotImplementedError

    @abstractmethod
    def count_upcoming_for_client(self, client_ref: str, now: datetime) -> int:
        """Pending and confirmed bookings of this client starting at or after `now`."""
        raise NotImplementedError

    @abstractmethod
    def list_by_status(self, status: BookingStatus | None = None) -> list[Booking]:
        raise NotImplementedError

    @abstractmethod
    def add_if_free(self, booking: Booking) -> Booking:
        """
        Insert the booking only if no active booking overlaps its blocked interval.
        The check and the insert happen atomically. Raises SlotConflictError otherwise.
        """
        raise NotImplementedError

    @abstractmethod
    def update_status(
        self,
        booking_id: str,
        expected: BookingStatus,
        target: BookingStatus,
        at: datetime,
    ) -> Booking | None:
        """
        Compare-and-set status change. Returns the updated booking, or None when
        the stored status no longer equals `expected`.
        """
        raise NotImplementedError
