from __future__ import annotations

from collections.abc import Iterator
from datetime import date, datetime, timedelta

from app.application.utils.schedule_rules import ScheduleRules
from app.domain.entities.booking import DurationType


class SlotGenerator:
    """Produces the theoretical grid of start times for a day, before any conflict filtering."""

    def __init__(self, rules: ScheduleRules) -> None:
        self._rules = rules

    def generate(self, day: date, duration_type: DurationType | str) -> Iterator[datetime]:
        hours = self._rules.day_hours(day)
        if hours is None:
            return

        tz = self._rules.timezone
        blocked = timedelta(minutes=self._rules.durations(duration_type).blocked)

        # Never before opening, never before the configured first slot.
        start_time = max(self._rules.first_slot_time(), hours.open)

        current = datetime.combine(day, start_time, tzinfo=tz)
        close = datetime.combine(day, hours.close, tzinfo=tz)

        lunch = self._rules.lunch_break()
        lunch_start = datetime.combine(day, lunch[0], tzinfo=tz) if lunch else None
        lunch_end = datetime.combine(day, lunch[1], tzinfo=tz) if lunch else None

        while True:
            end = current + blocked
            if end > close:
                return
            if lunch_start is not None and current < lunch_end and end > lunch_start:
                # No partial slot against the break: resume at its end.
                current = lunch_end
                continue
            yield current
            current = end

    def candidates(self, day: date, duration_type: DurationType | str) -> list[datetime]:
        return list(self.generate(day, duration_type))
