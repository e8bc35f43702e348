from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from app.application.ports.booking_repository import BookingRepositoryPort
from app.application.ports.clock import ClockPort
from app.application.use_cases.calendar_sync import CalendarSyncCache
from app.application.utils.schedule_rules import ScheduleRules
from app.domain.entities.booking import Booking, BookingStatus


@dataclass(frozen=True)
class MaintenanceReport:
    calendar_refreshed: bool
    expired_bookings: list[Booking]


class BookingMaintenanceUseCase:
    """Periodic housekeeping: refresh the calendar mirror and release stale pending bookings."""

    def __init__(
        self,
        bookings: BookingRepositoryPort,
        calendar_cache: CalendarSyncCache,
        rules: ScheduleRules,
        clock: ClockPort,
    ) -> None:
        self._bookings = bookings
        self._calendar = calendar_cache
        self._rules = rules
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def refresh_calendar(self) -> bool:
        refreshed = self._calendar.refresh()
        if not refreshed:
            self._logger.warning("Calendar cache refresh failed")
        return refreshed

    def expire_stale_pending(self) -> list[Booking]:
        now = self._clock.now()
        cutoff = now - timedelta(hours=self._rules.pending_expiry_hours())
        expired: list[Booking] = []
        for booking in self._bookings.list_by_status(BookingStatus.pending):
            if booking.created_at >= cutoff:
                continue
            updated = self._bookings.update_status(
                booking.id, BookingStatus.pending, BookingStatus.cancelled, now
            )
            if updated is not None:
                expired.append(updated)
                self._logger.info("Expired pending booking cancelled", extra={"booking_id": booking.id})
        return expired

    def run(self) -> MaintenanceReport:
        return MaintenanceReport(
            calendar_refreshed=self.refresh_calendar(),
            expired_bookings=self.expire_stale_pending(),
        )
