from __future__ import annotations

import calendar
import logging
from datetime import MAXYEAR, MINYEAR, date, datetime, timedelta
from typing import Any

from app.application.exceptions import InvalidInputError
from app.application.ports.booking_repository import BookingRepositoryPort
from app.application.ports.clock import ClockPort
from app.application.use_cases.calendar_sync import CalendarSyncCache
from app.application.use_cases.slot_generator import SlotGenerator
from app.application.utils.schedule_rules import ScheduleRules, parse_duration_type
from app.domain.entities.booking import DurationType
from app.domain.entities.slot import SessionDurations, Slot, SlotCheck, SlotRejection


def add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


class AvailabilityResolver:
    def __init__(
        self,
        rules: ScheduleRules,
        generator: SlotGenerator,
        calendar_cache: CalendarSyncCache,
        bookings: BookingRepositoryPort,
        clock: ClockPort,
    ) -> None:
        self._rules = rules
        self._generator = generator
        self._calendar = calendar_cache
        self._bookings = bookings
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def _localize(self, value: datetime) -> datetime:
        tz = self._rules.timezone
        if value.tzinfo is None:
            return value.replace(tzinfo=tz)
        return value.astimezone(tz)

    def first_bookable_day(self) -> date:
        now = self._clock.now()
        today = now.date()
        if now.time() >= self._rules.same_day_cutoff():
            today += timedelta(days=1)
        return today

    def durations(self, duration_type: DurationType | str) -> SessionDurations:
        return self._rules.durations(parse_duration_type(duration_type))

    def is_past_day(self, day: date) -> bool:
        return day < self._clock.now().date()

    def available_slots(self, day: date, duration_type: DurationType | str) -> list[Slot]:
        kind = parse_duration_type(duration_type)
        blocked = timedelta(minutes=self._rules.durations(kind).blocked)
        now = self._clock.now()

        candidates = [start for start in self._generator.generate(day, kind) if start > now]
        if not candidates:
            return []

        bookings = self._bookings.list_for_date(day)
        busy = self._calendar.busy_intervals_for_date(day)

        slots: list[Slot] = []
        for start in candidates:
            end = start + blocked
            if any(booking.overlaps(start, end) for booking in bookings):
                continue
            if any(entry.blocks(start, end) for entry in busy):
                continue
            slots.append(Slot(start=start, end=end))
        return slots

    def available_dates(self, year: int, month: int, duration_type: DurationType | str) -> list[date]:
        if not 1 <= month <= 12:
            raise InvalidInputError("Month must be between 1 and 12")
        if not MINYEAR <= year <= MAXYEAR:
            raise InvalidInputError(f"Year must be between {MINYEAR} and {MAXYEAR}")
        kind = parse_duration_type(duration_type)

        first_day = date(year, month, 1)
        horizon = add_months(self._clock.now().date(), self._rules.horizon_months())
        if first_day > horizon:
            return []

        start = max(first_day, self.first_bookable_day())
        last_day = date(year, month, calendar.monthrange(year, month)[1])

        dates: list[date] = []
        day = start
        while day <= last_day:
            if self._rules.is_day_open(day) and self.available_slots(day, kind):
                dates.append(day)
            day += timedelta(days=1)
        return dates

    def validate_slot(
        self,
        requested_start: datetime,
        duration_type: DurationType | str,
        ignore_booking_id: str | None = None,
    ) -> SlotCheck:
        """
        Authoritative eligibility chain for a specific start time.
        Returns the first failing check; no aggregation.
        """
        kind = parse_duration_type(duration_type)
        start = self._localize(requested_start)
        day = start.date()

        if start <= self._clock.now():
            return SlotCheck.failed(SlotRejection.in_past, "The requested slot is in the past")

        hours = self._rules.day_hours(day)
        if hours is None:
            return SlotCheck.failed(SlotRejection.day_closed, "This day is closed")

        tz = self._rules.timezone
        opening = datetime.combine(day, hours.open, tzinfo=tz)
        closing = datetime.combine(day, hours.close, tzinfo=tz)
        if start < opening:
            return SlotCheck.failed(
                SlotRejection.before_opening, f"Opening time is {hours.open.strftime('%H:%M')}"
            )

        end = start + timedelta(minutes=self._rules.durations(kind).blocked)
        if end > closing:
            return SlotCheck.failed(
                SlotRejection.after_closing,
                f"The slot runs past closing time ({hours.close.strftime('%H:%M')})",
            )

        if start not in set(self._generator.generate(day, kind)):
            return SlotCheck.failed(SlotRejection.off_grid, "Invalid slot")

        if self.is_blocked(start, end, ignore_booking_id=ignore_booking_id):
            return SlotCheck.failed(SlotRejection.unavailable, "This slot is no longer available")

        return SlotCheck.passed()

    def is_blocked(self, start: datetime, end: datetime, ignore_booking_id: str | None = None) -> bool:
        if self._calendar.is_interval_blocked(start, end):
            return True
        return bool(self._bookings.find_overlapping(start, end, exclude_id=ignore_booking_id))

    def schedule_info(self) -> dict[str, Any]:
        return self._rules.schedule_info()
